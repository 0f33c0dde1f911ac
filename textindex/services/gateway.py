"""Id resolution and dispatch of create, status and search operations."""

import logging
import re
import secrets
import string
from datetime import datetime, timezone
from typing import Any, Optional, Set

import httpx

from textindex.core.config import settings
from textindex.core.exceptions import (
    BlobStoreError,
    InternalError,
    NotFoundError,
    ValidationError,
)
from textindex.models.api import CreateResponse, StatusResponse
from textindex.models.content import ContentMetadata, SourceType
from textindex.monitoring.metrics import content_created_total, search_errors_total
from textindex.services.actor import NOT_AVAILABLE_TEXT, NOT_INITIALIZED_TEXT
from textindex.services.blob_store import BlobStore
from textindex.services.fetcher import RemoteFetcher
from textindex.services.registry import ActorRegistry, normalize_id
from textindex.services.retry import retry_with_backoff

logger = logging.getLogger(__name__)

ID_ALPHABET = string.digits + string.ascii_lowercase
LABEL_PATTERN = re.compile(r"^[a-z0-9_-]+$")
MAX_ID_ATTEMPTS = 5


def generate_content_id(length: Optional[int] = None) -> str:
    """Draw a random lower-case, URL-safe content id."""
    length = length or settings.content_id_length
    return "".join(secrets.choice(ID_ALPHABET) for _ in range(length))


def host_name(host: str) -> str:
    host = (host or "").strip().lower()
    if host.startswith("["):
        return host.split("]")[0] + "]"
    return host.split(":")[0].rstrip(".")


def reserved_labels(domain: Optional[str] = None) -> Set[str]:
    domain = (domain or settings.service_domain).lower()
    return {"www", domain.split(".")[0]}


def is_tenant_host(host: str, domain: Optional[str] = None) -> bool:
    """Whether a Host header addresses a per-content subdomain."""
    domain = (domain or settings.service_domain).lower()
    hostname = host_name(host)
    if hostname == domain or not hostname.endswith(f".{domain}"):
        return False
    return hostname.split(".")[0] not in reserved_labels(domain)


def resolve_id(host: str, path_id: Optional[str] = None, domain: Optional[str] = None) -> str:
    """
    Resolve the content id a request addresses.

    Args:
        host: Value of the Host header.
        path_id: Id taken from the request path, preferred when given.
        domain: Service domain whose bare label is reserved.

    Returns:
        Lower-cased content id.

    Raises:
        ValidationError: If the label is empty, reserved or malformed.
    """
    if path_id is not None:
        label = normalize_id(path_id)
    else:
        label = host_name(host).split(".")[0]

    if not label or label in reserved_labels(domain) or not LABEL_PATTERN.match(label):
        raise ValidationError("Invalid content id")
    return label


def validate_remote_url(url: Any) -> str:
    """Check that a URL is an absolute http(s) URL."""
    if url is None or (isinstance(url, str) and not url.strip()):
        raise ValidationError("No URL provided")
    if not isinstance(url, str):
        raise ValidationError("Invalid URL")
    try:
        parsed = httpx.URL(url.strip())
    except (httpx.InvalidURL, TypeError) as e:
        raise ValidationError("Invalid URL") from e
    if parsed.scheme not in ("http", "https") or not parsed.host:
        raise ValidationError("Invalid URL")
    return str(parsed)


class Gateway:
    """Entry point of the management API and per-tenant search."""

    def __init__(
        self,
        blob_store: BlobStore,
        registry: ActorRegistry,
        fetcher: RemoteFetcher,
        max_upload_bytes: Optional[int] = None,
    ) -> None:
        self.blob_store = blob_store
        self.registry = registry
        self.fetcher = fetcher
        self.max_upload_bytes = max_upload_bytes or settings.max_upload_bytes

    def public_url(self, content_id: str) -> str:
        return settings.public_url_template.format(id=content_id)

    async def _allocate_id(self) -> str:
        for _ in range(MAX_ID_ATTEMPTS):
            content_id = generate_content_id()
            if not await self.blob_store.exists(content_id):
                return content_id
            logger.warning(f"Content id collision on {content_id}, drawing again")
        raise BlobStoreError("Could not allocate a unique content id")

    async def _create(
        self,
        content: str,
        name: str,
        source_type: SourceType,
        source_url: Optional[str] = None,
    ) -> CreateResponse:
        content_id = await self._allocate_id()
        metadata = ContentMetadata(
            name=name,
            type=source_type,
            created_at=datetime.now(timezone.utc),
            source_url=source_url,
        )

        async def persist():
            await self.blob_store.put_content(content_id, content)
            await self.blob_store.put_metadata(content_id, metadata)

        await retry_with_backoff(persist, operation=f"Storing {content_id}")

        await self.registry.get(content_id).initialize(
            content,
            name,
            source_type,
            source_url=source_url,
            created_at=metadata.created_at,
            storage_key=content_id,
        )

        content_created_total.labels(source_type=source_type.value).inc()
        logger.info(f"Created {source_type.value} content {content_id} ({name})")
        return CreateResponse(id=content_id, url=self.public_url(content_id))

    async def create_from_upload(self, filename: Optional[str], data: Optional[bytes]) -> CreateResponse:
        """
        Create a content endpoint from an uploaded file.

        Args:
            filename: Original file name, used as display name.
            data: Raw file bytes.

        Returns:
            Id and public URL of the new endpoint.

        Raises:
            ValidationError: If no file was sent or it exceeds the size limit.
        """
        if data is None:
            raise ValidationError("No file provided")
        if len(data) > self.max_upload_bytes:
            raise ValidationError(
                f"File size must be less than {self.max_upload_bytes // (1024 * 1024)}MB")

        content = data.decode("utf-8", errors="replace")
        return await self._create(content, filename or "untitled.txt", SourceType.UPLOAD)

    async def create_from_remote(self, url: Any) -> CreateResponse:
        """
        Create a content endpoint from a remote URL.

        The URL is fetched once before any id is allocated.

        Args:
            url: Absolute http(s) URL.

        Returns:
            Id and public URL of the new endpoint.

        Raises:
            ValidationError: If the URL is missing or malformed.
            UpstreamFetchError: If the initial fetch fails.
        """
        url = validate_remote_url(url)
        content = await self.fetcher.fetch_text(url)
        return await self._create(content, url, SourceType.REMOTE, source_url=url)

    async def get_status(self, content_id: str) -> StatusResponse:
        """
        Look up stored metadata and content for an id.

        Raises:
            NotFoundError: If nothing is stored for the id.
        """
        content_id = normalize_id(content_id)
        storage_key = await self.blob_store.find_storage_key(content_id)
        if storage_key is None:
            raise NotFoundError("Not found")

        metadata = await self.blob_store.get_metadata(storage_key)
        if metadata is None:
            raise NotFoundError("Not found")

        content = await self.blob_store.get_content(storage_key) or ""
        state = await self.registry.get(content_id).snapshot()

        return StatusResponse(
            id=content_id,
            name=metadata.name,
            type=metadata.type,
            source_url=metadata.source_url,
            created_at=metadata.created_at,
            last_updated=state.last_updated if state else None,
            content=content,
        )

    async def search(self, content_id: str, query: str, k: Optional[int] = None) -> str:
        """
        Forward a search to the actor serving an id.

        Ids with nothing stored get the not-initialized text without an
        actor being allocated for them.
        """
        try:
            actor = await self.registry.lookup(content_id)
        except InternalError as e:
            logger.error(f"Failed to look up {content_id} for search: {str(e)}")
            search_errors_total.inc()
            return NOT_AVAILABLE_TEXT

        if actor is None:
            return NOT_INITIALIZED_TEXT
        return await actor.search(query, k)
