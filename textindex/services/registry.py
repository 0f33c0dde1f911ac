"""Registry mapping content ids to their actors."""

import logging
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional

from textindex.core.config import settings
from textindex.core.exceptions import InternalError
from textindex.monitoring.metrics import active_actors
from textindex.services.actor import ContentActor
from textindex.services.blob_store import BlobStore
from textindex.services.chunking import ChunkingService
from textindex.services.fetcher import RemoteFetcher
from textindex.services.scheduler import RefreshScheduler
from textindex.services.state_store import StateStore

logger = logging.getLogger(__name__)


def normalize_id(content_id: str) -> str:
    return content_id.strip().lower()


class ActorRegistry:
    """Locates or allocates the single actor for a content id.

    Holds actor handles only; business state lives in the state store.
    """

    def __init__(
        self,
        blob_store: BlobStore,
        state_store: StateStore,
        scheduler: RefreshScheduler,
        fetcher: RemoteFetcher,
        chunking_service: Optional[ChunkingService] = None,
        refresh_interval_seconds: Optional[int] = None,
    ) -> None:
        self.blob_store = blob_store
        self.state_store = state_store
        self.scheduler = scheduler
        self.fetcher = fetcher
        self.chunking_service = chunking_service or ChunkingService()
        self.refresh_interval_seconds = (
            refresh_interval_seconds or settings.refresh_interval_seconds)
        self._actors: Dict[str, ContentActor] = {}
        self.scheduler.bind(self.refresh)

    def get(self, content_id: str) -> ContentActor:
        """
        Get the actor for a content id, allocating it on first use.

        Args:
            content_id: Content id in any case.

        Returns:
            The one actor serving this id.
        """
        actor_id = normalize_id(content_id)
        actor = self._actors.get(actor_id)
        if actor is None:
            actor = ContentActor(
                actor_id,
                blob_store=self.blob_store,
                state_store=self.state_store,
                scheduler=self.scheduler,
                fetcher=self.fetcher,
                chunking_service=self.chunking_service,
                refresh_interval_seconds=self.refresh_interval_seconds,
            )
            self._actors[actor_id] = actor
            active_actors.set(len(self._actors))
        return actor

    async def lookup(self, content_id: str) -> Optional[ContentActor]:
        """
        Get the actor for a content id only if something is stored for it.

        Unknown ids never allocate an actor.

        Args:
            content_id: Content id in any case.

        Returns:
            The actor, or None if neither actor state nor blob objects exist.

        Raises:
            InternalError: If storage cannot be read.
        """
        actor_id = normalize_id(content_id)
        if actor_id in self._actors:
            return self._actors[actor_id]

        if await self.state_store.load(actor_id) is None:
            if await self.blob_store.find_storage_key(actor_id) is None:
                return None
        return self.get(actor_id)

    def __len__(self) -> int:
        return len(self._actors)

    def __contains__(self, content_id: str) -> bool:
        return normalize_id(content_id) in self._actors

    async def refresh(self, content_id: str) -> None:
        """Scheduler callback: run the actor's refresh."""
        await self.get(content_id).refresh()

    async def restore_schedules(self) -> int:
        """
        Re-arm refresh wakes for persisted remote actors after a restart.

        Returns:
            Number of wakes armed.
        """
        try:
            actor_ids = await self.state_store.list_ids()
        except InternalError as e:
            logger.error(f"Failed to restore refresh schedules: {str(e)}")
            return 0

        now = datetime.now(timezone.utc)
        interval = timedelta(seconds=self.refresh_interval_seconds)
        armed = 0
        for actor_id in actor_ids:
            try:
                state = await self.state_store.load(actor_id)
            except InternalError as e:
                logger.error(f"Failed to load state for {actor_id}: {str(e)}")
                continue
            if state is None or not state.is_remote:
                continue
            self.scheduler.arm(actor_id, max(now, state.last_updated + interval))
            armed += 1

        logger.info(f"Restored {armed} refresh schedules")
        return armed
