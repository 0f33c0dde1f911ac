"""Blob storage for raw content and metadata."""

import json
import logging
from abc import ABC, abstractmethod
from fnmatch import fnmatchcase
from typing import Dict, List, Optional

import redis.asyncio as redis

from textindex.core.config import settings
from textindex.core.exceptions import BlobStoreError
from textindex.models.content import ContentMetadata

logger = logging.getLogger(__name__)

CONTENT_OBJECT = "content.txt"
METADATA_OBJECT = "metadata.json"


def content_key(content_id: str) -> str:
    return f"{content_id}/{CONTENT_OBJECT}"


def metadata_key(content_id: str) -> str:
    return f"{content_id}/{METADATA_OBJECT}"


class BlobStore(ABC):
    """Key-addressed durable storage for content objects."""

    async def connect(self) -> None:
        """Open the underlying connection, if any."""

    async def disconnect(self) -> None:
        """Close the underlying connection, if any."""

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """Get an object by key, or None if it does not exist."""

    @abstractmethod
    async def put(self, key: str, value: str) -> None:
        """Store an object under a key, replacing any previous value."""

    @abstractmethod
    async def list_keys(self, pattern: str = "*", limit: Optional[int] = None) -> List[str]:
        """List stored keys matching a glob pattern."""

    async def put_content(self, content_id: str, content: str) -> None:
        await self.put(content_key(content_id), content)

    async def put_metadata(self, content_id: str, metadata: ContentMetadata) -> None:
        await self.put(
            metadata_key(content_id),
            metadata.model_dump_json(by_alias=True, exclude_none=True),
        )

    async def get_content(self, content_id: str) -> Optional[str]:
        return await self.get(content_key(content_id))

    async def get_metadata(self, content_id: str) -> Optional[ContentMetadata]:
        """
        Get the metadata object for a content id.

        Args:
            content_id: Storage key prefix.

        Returns:
            Parsed metadata or None if not stored.

        Raises:
            BlobStoreError: If the stored object is not valid metadata.
        """
        raw = await self.get(metadata_key(content_id))
        if raw is None:
            return None
        try:
            return ContentMetadata.model_validate(json.loads(raw))
        except ValueError as e:
            raise BlobStoreError(
                f"Corrupt metadata for {content_id}: {str(e)}") from e

    async def exists(self, content_id: str) -> bool:
        return await self.get(metadata_key(content_id)) is not None

    async def find_storage_key(self, content_id: str) -> Optional[str]:
        """
        Find the key prefix holding a content id's objects.

        Tries the id as given first, then scans stored keys for a
        case-insensitive match.

        Args:
            content_id: Content id, usually lower-cased from a hostname.

        Returns:
            The stored key prefix or None if nothing matches.
        """
        if await self.get(content_key(content_id)) is not None:
            return content_id

        wanted = content_id.lower()
        for key in await self.list_keys(
            pattern=f"*/{CONTENT_OBJECT}", limit=settings.blob_list_limit
        ):
            prefix = key.split("/")[0]
            if prefix.lower() == wanted:
                logger.info(f"Adopted stored key {prefix} for content id {content_id}")
                return prefix
        return None


class RedisBlobStore(BlobStore):
    """Blob store backed by Redis string keys."""

    def __init__(self, url: Optional[str] = None) -> None:
        """Initialize the Redis blob store."""
        self.url = url or settings.redis_url
        self.client: Optional[redis.Redis] = None

    async def connect(self) -> None:
        """Connect to Redis."""
        try:
            self.client = redis.from_url(
                self.url,
                decode_responses=True,
                max_connections=settings.redis_pool_size,
                socket_connect_timeout=5.0,
            )
            await self.client.ping()
        except Exception as e:
            raise BlobStoreError(f"Failed to connect to Redis: {str(e)}") from e

    async def disconnect(self) -> None:
        """Disconnect from Redis."""
        if self.client:
            await self.client.close()

    async def get(self, key: str) -> Optional[str]:
        if not self.client:
            raise BlobStoreError("Blob store not connected")
        try:
            return await self.client.get(key)
        except Exception as e:
            raise BlobStoreError(f"Failed to read {key}: {str(e)}") from e

    async def put(self, key: str, value: str) -> None:
        if not self.client:
            raise BlobStoreError("Blob store not connected")
        try:
            await self.client.set(key, value)
        except Exception as e:
            raise BlobStoreError(f"Failed to write {key}: {str(e)}") from e

    async def list_keys(self, pattern: str = "*", limit: Optional[int] = None) -> List[str]:
        if not self.client:
            raise BlobStoreError("Blob store not connected")
        keys = []
        try:
            async for key in self.client.scan_iter(match=pattern, count=100):
                keys.append(key)
                if limit is not None and len(keys) >= limit:
                    break
        except Exception as e:
            raise BlobStoreError(f"Failed to list keys: {str(e)}") from e
        return keys


class InMemoryBlobStore(BlobStore):
    """Process-local blob store for development and tests."""

    def __init__(self) -> None:
        self.objects: Dict[str, str] = {}

    async def get(self, key: str) -> Optional[str]:
        return self.objects.get(key)

    async def put(self, key: str, value: str) -> None:
        self.objects[key] = value

    async def list_keys(self, pattern: str = "*", limit: Optional[int] = None) -> List[str]:
        keys = [key for key in sorted(self.objects) if fnmatchcase(key, pattern)]
        return keys if limit is None else keys[:limit]
