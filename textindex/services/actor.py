"""Per-content actor owning state, search and scheduled refresh."""

import asyncio
import logging
import time
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple

from textindex.core.config import settings
from textindex.core.exceptions import InternalError, UpstreamFetchError, ValidationError
from textindex.models.content import ActorState, SearchResult, SourceType
from textindex.monitoring.metrics import (
    index_build_seconds,
    refresh_failures_total,
    refreshes_total,
    search_errors_total,
    search_latency_seconds,
    searches_total,
)
from textindex.services.blob_store import BlobStore
from textindex.services.chunking import ChunkingService
from textindex.services.fetcher import RemoteFetcher
from textindex.services.scheduler import RefreshScheduler
from textindex.services.search_index import SearchIndex
from textindex.services.state_store import StateStore

logger = logging.getLogger(__name__)

NOT_INITIALIZED_TEXT = "No content available to search. The document may not be initialized."
NOT_AVAILABLE_TEXT = "Content is not available right now. Please try again later."
NO_RESULTS_TEXT = "No results found. Try using different keywords or modify the spelling."
DIVIDER = "---"


def _plural(count: int) -> str:
    return "" if count == 1 else "s"


def format_elapsed(seconds: float) -> str:
    """Render a duration the way search reports show it."""
    if seconds < 0.001:
        return f"{round(seconds * 1_000_000)}μs"
    if seconds < 1:
        return f"{round(seconds * 1000)}ms"
    return f"{seconds:.2f}s"


def format_results(result: SearchResult, query: str, source_name: str, elapsed: float) -> str:
    """
    Format a search result as a text report.

    Args:
        result: Result of the index query.
        query: Trimmed query string.
        source_name: Display name of the searched content.
        elapsed: Seconds spent building the index and querying it.

    Returns:
        Markdown report listing every returned hit.
    """
    output = "**Search Results**\n\n"
    output += (
        f'Found {result.count} result{_plural(result.count)} for "{query}" '
        f'in "{source_name}" ({format_elapsed(elapsed)})\n\n'
    )

    if result.count == 0:
        return output + NO_RESULTS_TEXT

    shown = len(result.hits)
    output += f"Showing top {shown} result{_plural(shown)}:\n\n"
    output += f"{DIVIDER}\n\n"

    for hit in result.hits:
        output += f"**Chunk {hit.document.chunk_index + 1}**\n\n"
        output += f"{hit.document.text}\n\n"
        output += f"{DIVIDER}\n\n"

    return output


class ContentActor:
    """Single-writer owner of one content id.

    Every public operation runs under the actor's lock, so initialize,
    search and refresh never interleave for the same id.
    """

    def __init__(
        self,
        actor_id: str,
        blob_store: BlobStore,
        state_store: StateStore,
        scheduler: RefreshScheduler,
        fetcher: RemoteFetcher,
        chunking_service: Optional[ChunkingService] = None,
        refresh_interval_seconds: Optional[int] = None,
    ) -> None:
        self.actor_id = actor_id
        self.blob_store = blob_store
        self.state_store = state_store
        self.scheduler = scheduler
        self.fetcher = fetcher
        self.chunking_service = chunking_service or ChunkingService()
        self.refresh_interval = timedelta(
            seconds=refresh_interval_seconds or settings.refresh_interval_seconds)
        self._state: Optional[ActorState] = None
        self._lock = asyncio.Lock()

    def _arm_refresh(self) -> None:
        self.scheduler.arm(
            self.actor_id, datetime.now(timezone.utc) + self.refresh_interval)

    async def initialize(
        self,
        content: str,
        name: str,
        source_type: SourceType,
        source_url: Optional[str] = None,
        created_at: Optional[datetime] = None,
        storage_key: Optional[str] = None,
    ) -> ActorState:
        """
        Replace the actor's state wholesale.

        Args:
            content: Full text content.
            name: Display name.
            source_type: Upload or remote.
            source_url: Remote source, required for remote content.
            created_at: Creation time recorded in the blob store.
            storage_key: Blob store key prefix holding this content.

        Returns:
            The new state.

        Raises:
            ValidationError: If remote content has no source URL.
            InternalError: If the state cannot be persisted.
        """
        source_type = SourceType(source_type)
        if source_type == SourceType.REMOTE and not source_url:
            raise ValidationError("Remote content requires a source URL")

        async with self._lock:
            now = datetime.now(timezone.utc)
            state = ActorState(
                id=self.actor_id,
                content=content,
                name=name,
                type=source_type,
                source_url=source_url if source_type == SourceType.REMOTE else None,
                created_at=created_at or now,
                last_updated=now,
                storage_key=storage_key or self.actor_id,
            )
            await self.state_store.save(state)
            self._state = state

            if state.is_remote:
                self._arm_refresh()
            else:
                self.scheduler.cancel(self.actor_id)

            logger.info(f"Initialized {self.actor_id} ({source_type.value}, {len(content)} chars)")
            return state

    async def _hydrate(self) -> Optional[ActorState]:
        storage_key = await self.blob_store.find_storage_key(self.actor_id)
        if storage_key is None:
            return None

        content = await self.blob_store.get_content(storage_key)
        if content is None:
            return None

        metadata = await self.blob_store.get_metadata(storage_key)
        now = datetime.now(timezone.utc)
        state = ActorState(
            id=self.actor_id,
            content=content,
            name=metadata.name if metadata else self.actor_id,
            type=metadata.type if metadata else SourceType.UPLOAD,
            source_url=metadata.source_url if metadata else None,
            created_at=metadata.created_at if metadata else now,
            last_updated=now,
            storage_key=storage_key,
        )
        await self.state_store.save(state)
        logger.info(f"Hydrated {self.actor_id} from blob store key {storage_key}")
        return state

    async def _ensure_state(self) -> Optional[ActorState]:
        if self._state is not None:
            return self._state

        state = await self.state_store.load(self.actor_id)
        if state is None:
            state = await self._hydrate()
            if state is not None and state.is_remote and self.scheduler.pending(self.actor_id) is None:
                self._arm_refresh()

        self._state = state
        return state

    async def load_content(self) -> Optional[Tuple[str, str]]:
        """
        Return the current content and display name.

        Falls back to the durable state store, then to the blob store.

        Returns:
            (content, name) or None if nothing is stored for this id.

        Raises:
            InternalError: If storage cannot be read.
        """
        async with self._lock:
            state = await self._ensure_state()
        return (state.content, state.name) if state else None

    async def snapshot(self) -> Optional[ActorState]:
        """Return the current state without hydrating from the blob store."""
        async with self._lock:
            if self._state is None:
                self._state = await self.state_store.load(self.actor_id)
            return self._state

    def _run_query(self, content: str, name: str, term: str, k: int) -> str:
        start_time = time.perf_counter()
        index = SearchIndex.build(self.chunking_service.chunk_document(content, name))
        index_build_seconds.observe(time.perf_counter() - start_time)

        result = index.search(term, k)
        return format_results(result, term, name, time.perf_counter() - start_time)

    async def search(self, query: str, k: Optional[int] = None) -> str:
        """
        Search the current content.

        Args:
            query: Search terms.
            k: Maximum number of hits to show; clamped to the hit count.

        Returns:
            Text report. Missing or unreadable content yields an
            informational message instead of an error.
        """
        k = settings.default_k if k is None else k
        start_time = time.perf_counter()
        searches_total.inc()

        async with self._lock:
            try:
                state = await self._ensure_state()
            except InternalError as e:
                logger.error(f"Failed to load content for {self.actor_id}: {str(e)}")
                search_errors_total.inc()
                return NOT_AVAILABLE_TEXT

            if state is None:
                return NOT_INITIALIZED_TEXT

            report = await asyncio.to_thread(
                self._run_query, state.content, state.name, query.strip(), k)

        search_latency_seconds.observe(time.perf_counter() - start_time)
        return report

    async def _refresh_from_source(self, state: ActorState) -> None:
        body = await self.fetcher.fetch_text(state.source_url)
        updated = state.model_copy(
            update={"content": body, "last_updated": datetime.now(timezone.utc)})
        await self.state_store.save(updated)
        self._state = updated

        try:
            await self.blob_store.put_content(updated.storage_key or self.actor_id, body)
        except InternalError as e:
            logger.warning(
                f"Refreshed {self.actor_id} but blob copy is stale until next refresh: {str(e)}")

        logger.info(f"Refreshed {self.actor_id} from {state.source_url} ({len(body)} chars)")

    async def refresh(self) -> None:
        """
        Re-fetch remote content.

        Failures leave the state untouched. Every run on remote content
        arms exactly one new wake, whether the fetch succeeded or not.
        """
        async with self._lock:
            try:
                state = await self._ensure_state()
            except InternalError as e:
                logger.error(f"Failed to load state for refresh of {self.actor_id}: {str(e)}")
                refresh_failures_total.inc()
                self._arm_refresh()
                return

            if state is None or not state.is_remote:
                logger.info(f"Skipping refresh for {self.actor_id}: not remote content")
                return

            refreshes_total.inc()
            try:
                await self._refresh_from_source(state)
            except UpstreamFetchError as e:
                logger.warning(f"Refresh of {self.actor_id} failed: {str(e)}")
                refresh_failures_total.inc()
            except InternalError as e:
                logger.error(f"Refresh of {self.actor_id} could not persist: {str(e)}")
                refresh_failures_total.inc()
            finally:
                self._arm_refresh()
