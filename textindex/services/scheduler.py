"""Single-fire, overwritable refresh scheduling per actor."""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Awaitable, Callable, Dict, Optional, Set

logger = logging.getLogger(__name__)

RefreshCallback = Callable[[str], Awaitable[None]]


@dataclass
class _Wake:
    fire_at: datetime
    task: asyncio.Task


class RefreshScheduler:
    """Holds at most one pending wake per actor id."""

    def __init__(self, callback: Optional[RefreshCallback] = None) -> None:
        """
        Initialize the scheduler.

        Args:
            callback: Coroutine invoked with the actor id when a wake fires.
        """
        self._callback = callback
        self._pending: Dict[str, _Wake] = {}
        # Every live task, pending or already running its callback.
        self._tasks: Set[asyncio.Task] = set()
        self._closed = False

    def bind(self, callback: RefreshCallback) -> None:
        """Set the coroutine invoked when a wake fires."""
        self._callback = callback

    def arm(self, actor_id: str, fire_at: datetime) -> None:
        """
        Schedule a wake, replacing any pending one for the same actor.

        Must be called from a running event loop. Never awaits, so two
        arms for one actor cannot interleave. Ignored after shutdown.

        Args:
            actor_id: Actor to wake.
            fire_at: Timezone-aware wall clock time of the wake.
        """
        if self._closed:
            logger.debug(f"Scheduler closed, not arming refresh for {actor_id}")
            return

        self.cancel(actor_id)
        delay = max(0.0, (fire_at - datetime.now(timezone.utc)).total_seconds())
        task = asyncio.create_task(self._fire_after(actor_id, delay))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        self._pending[actor_id] = _Wake(fire_at=fire_at, task=task)
        logger.debug(f"Armed refresh for {actor_id} at {fire_at.isoformat()}")

    def cancel(self, actor_id: str) -> None:
        """Drop the pending wake for an actor, if any."""
        wake = self._pending.pop(actor_id, None)
        if wake and wake.task is not asyncio.current_task() and not wake.task.done():
            wake.task.cancel()

    def pending(self, actor_id: str) -> Optional[datetime]:
        """Return the fire time of the pending wake for an actor."""
        wake = self._pending.get(actor_id)
        return wake.fire_at if wake else None

    def in_flight(self) -> int:
        """Number of tasks not yet finished, including running callbacks."""
        return len(self._tasks)

    def __len__(self) -> int:
        return len(self._pending)

    async def _fire_after(self, actor_id: str, delay: float) -> None:
        await asyncio.sleep(delay)

        # Unregister before the callback so a re-arm does not cancel this task.
        wake = self._pending.get(actor_id)
        if wake and wake.task is asyncio.current_task():
            del self._pending[actor_id]

        if self._callback is None:
            logger.warning(f"Refresh fired for {actor_id} with no callback bound")
            return

        try:
            await self._callback(actor_id)
        except Exception as e:
            logger.error(f"Scheduled refresh for {actor_id} failed: {str(e)}")

    async def shutdown(self) -> None:
        """Cancel every pending wake and running refresh, and wait for them."""
        self._closed = True
        self._pending.clear()
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
