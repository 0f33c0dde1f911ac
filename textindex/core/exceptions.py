"""Custom exceptions for the application."""


class ValidationError(Exception):
    """Raised when request input is missing or malformed."""

    pass


class NotFoundError(Exception):
    """Raised when a content id is unknown."""

    pass


class UpstreamFetchError(Exception):
    """Raised when a remote source is unreachable or returns a non-2xx status."""

    pass


class InternalError(Exception):
    """Raised when a storage operation fails."""

    pass


class BlobStoreError(InternalError):
    """Raised when blob storage operations fail."""

    pass


class StateStoreError(InternalError):
    """Raised when actor state persistence fails."""

    pass
