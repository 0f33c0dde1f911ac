"""Outbound HTTP fetching of remote content."""

import logging
from typing import Optional

import httpx

from textindex.core.config import settings
from textindex.core.exceptions import UpstreamFetchError

logger = logging.getLogger(__name__)


class RemoteFetcher:
    """Fetches remote text with a bounded timeout."""

    def __init__(
        self,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """
        Initialize the fetcher.

        Args:
            timeout: Seconds before a fetch is abandoned.
            transport: Optional transport override, used by tests.
        """
        self.timeout = timeout or settings.fetch_timeout_seconds
        self.transport = transport
        self.client: Optional[httpx.AsyncClient] = None

    async def connect(self) -> None:
        """Create the HTTP client."""
        if self.client is None:
            self.client = httpx.AsyncClient(
                timeout=self.timeout,
                follow_redirects=True,
                transport=self.transport,
            )

    async def disconnect(self) -> None:
        """Close the HTTP client."""
        if self.client:
            await self.client.aclose()
            self.client = None

    async def fetch_text(self, url: str) -> str:
        """
        Fetch the body of a URL as text.

        Args:
            url: Absolute http(s) URL.

        Returns:
            Response body decoded as text.

        Raises:
            UpstreamFetchError: On network errors, timeouts or non-2xx status.
        """
        await self.connect()
        try:
            response = await self.client.get(url)
        except httpx.HTTPError as e:
            raise UpstreamFetchError(f"Failed to fetch {url}: {str(e)}") from e

        if not response.is_success:
            raise UpstreamFetchError(
                f"Failed to fetch {url}: status {response.status_code}")

        return response.text
