"""Dependency injection for services."""

from typing import Optional

from textindex.core.config import settings
from textindex.services.blob_store import BlobStore, InMemoryBlobStore, RedisBlobStore
from textindex.services.chunking import ChunkingService
from textindex.services.fetcher import RemoteFetcher
from textindex.services.gateway import Gateway
from textindex.services.registry import ActorRegistry
from textindex.services.scheduler import RefreshScheduler
from textindex.services.state_store import InMemoryStateStore, RedisStateStore, StateStore
from textindex.services.tool_handler import ToolHandler


class ServiceContainer:
    """Container for service instances."""

    def __init__(
        self,
        blob_store: Optional[BlobStore] = None,
        state_store: Optional[StateStore] = None,
        fetcher: Optional[RemoteFetcher] = None,
        scheduler: Optional[RefreshScheduler] = None,
    ) -> None:
        """
        Initialize service container.

        Storage defaults follow settings.storage_backend; any service can
        be passed in explicitly instead.
        """
        use_memory = settings.storage_backend == "memory"
        self.blob_store = blob_store or (
            InMemoryBlobStore() if use_memory else RedisBlobStore())
        self.state_store = state_store or (
            InMemoryStateStore() if use_memory else RedisStateStore())
        self.fetcher = fetcher or RemoteFetcher()
        self.scheduler = scheduler or RefreshScheduler()
        self.chunking_service = ChunkingService()
        self.registry = ActorRegistry(
            blob_store=self.blob_store,
            state_store=self.state_store,
            scheduler=self.scheduler,
            fetcher=self.fetcher,
            chunking_service=self.chunking_service,
        )
        self.gateway = Gateway(
            blob_store=self.blob_store,
            registry=self.registry,
            fetcher=self.fetcher,
        )
        self.tool_handler = ToolHandler(self.gateway)

    async def initialize(self) -> None:
        """Initialize all services."""
        await self.blob_store.connect()
        await self.state_store.connect()
        await self.fetcher.connect()
        await self.registry.restore_schedules()

    async def shutdown(self) -> None:
        """Shutdown all services."""
        await self.scheduler.shutdown()
        await self.fetcher.disconnect()
        await self.state_store.disconnect()
        await self.blob_store.disconnect()


services = ServiceContainer()
