"""
Shared test fixtures for the textindex test suite.

Provides: in-memory storage, a recording scheduler, a scripted remote source
Dependencies: pytest, httpx
"""

from datetime import datetime
from typing import Dict, List, Optional, Tuple

import httpx
import pytest

from textindex.core.dependencies import ServiceContainer
from textindex.services.blob_store import InMemoryBlobStore
from textindex.services.chunking import ChunkingService
from textindex.services.fetcher import RemoteFetcher
from textindex.services.gateway import Gateway
from textindex.services.registry import ActorRegistry
from textindex.services.scheduler import RefreshScheduler
from textindex.services.state_store import InMemoryStateStore


class RecordingScheduler(RefreshScheduler):
    """Scheduler that records arms instead of starting timers."""

    def __init__(self) -> None:
        super().__init__()
        self.armed: List[Tuple[str, datetime]] = []
        self.fire_times: Dict[str, datetime] = {}

    def arm(self, actor_id: str, fire_at: datetime) -> None:
        self.armed.append((actor_id, fire_at))
        self.fire_times[actor_id] = fire_at

    def cancel(self, actor_id: str) -> None:
        self.fire_times.pop(actor_id, None)

    def pending(self, actor_id: str) -> Optional[datetime]:
        return self.fire_times.get(actor_id)

    def arms_for(self, actor_id: str) -> int:
        return sum(1 for armed_id, _ in self.armed if armed_id == actor_id)


class RemoteSource:
    """Scripted remote server answering every request with one body."""

    def __init__(self, body: str = "Remote body about running services.", status_code: int = 200) -> None:
        self.body = body
        self.status_code = status_code
        self.error: Optional[Exception] = None
        self.requests: List[str] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(str(request.url))
        if self.error is not None:
            raise self.error
        return httpx.Response(self.status_code, text=self.body)


@pytest.fixture
def blob_store():
    return InMemoryBlobStore()


@pytest.fixture
def state_store():
    return InMemoryStateStore()


@pytest.fixture
def scheduler():
    return RecordingScheduler()


@pytest.fixture
def remote_source():
    return RemoteSource()


@pytest.fixture
def fetcher(remote_source):
    return RemoteFetcher(timeout=5.0, transport=httpx.MockTransport(remote_source.handler))


@pytest.fixture
def chunking_service():
    return ChunkingService(chunk_size=200, min_chars_per_chunk=20)


@pytest.fixture
def registry(blob_store, state_store, scheduler, fetcher, chunking_service):
    return ActorRegistry(
        blob_store=blob_store,
        state_store=state_store,
        scheduler=scheduler,
        fetcher=fetcher,
        chunking_service=chunking_service,
        refresh_interval_seconds=3600,
    )


@pytest.fixture
def gateway(blob_store, registry, fetcher):
    return Gateway(blob_store=blob_store, registry=registry, fetcher=fetcher)


@pytest.fixture
def container(blob_store, state_store, scheduler, fetcher):
    return ServiceContainer(
        blob_store=blob_store,
        state_store=state_store,
        fetcher=fetcher,
        scheduler=scheduler,
    )
