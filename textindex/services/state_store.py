"""Durable storage for content actor state."""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional

import redis.asyncio as redis

from textindex.core.config import settings
from textindex.core.exceptions import StateStoreError
from textindex.models.content import ActorState

STATE_KEY_PREFIX = "actor_state:"


class StateStore(ABC):
    """Persists one ActorState snapshot per content id."""

    async def connect(self) -> None:
        """Open the underlying connection, if any."""

    async def disconnect(self) -> None:
        """Close the underlying connection, if any."""

    @abstractmethod
    async def load(self, actor_id: str) -> Optional[ActorState]:
        """Load the persisted state for an actor, or None."""

    @abstractmethod
    async def save(self, state: ActorState) -> None:
        """Persist the state for an actor, replacing any previous snapshot."""

    @abstractmethod
    async def list_ids(self) -> List[str]:
        """List the ids of all actors with persisted state."""


class RedisStateStore(StateStore):
    """State store keeping JSON snapshots in Redis."""

    def __init__(self, url: Optional[str] = None) -> None:
        """Initialize the Redis state store."""
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
            raise StateStoreError(f"Failed to connect to Redis: {str(e)}") from e

    async def disconnect(self) -> None:
        """Disconnect from Redis."""
        if self.client:
            await self.client.close()

    async def load(self, actor_id: str) -> Optional[ActorState]:
        """
        Load actor state.

        Args:
            actor_id: Normalized content id.

        Returns:
            Stored state or None if the actor was never initialized.
        """
        if not self.client:
            raise StateStoreError("State store not connected")
        try:
            raw = await self.client.get(f"{STATE_KEY_PREFIX}{actor_id}")
            if raw is None:
                return None
            return ActorState.model_validate_json(raw)
        except Exception as e:
            raise StateStoreError(
                f"Failed to load state for {actor_id}: {str(e)}") from e

    async def save(self, state: ActorState) -> None:
        if not self.client:
            raise StateStoreError("State store not connected")
        try:
            await self.client.set(f"{STATE_KEY_PREFIX}{state.id}", state.model_dump_json())
        except Exception as e:
            raise StateStoreError(
                f"Failed to save state for {state.id}: {str(e)}") from e

    async def list_ids(self) -> List[str]:
        if not self.client:
            raise StateStoreError("State store not connected")
        try:
            return [
                key[len(STATE_KEY_PREFIX):]
                async for key in self.client.scan_iter(match=f"{STATE_KEY_PREFIX}*", count=100)
            ]
        except Exception as e:
            raise StateStoreError(f"Failed to list actor states: {str(e)}") from e


class InMemoryStateStore(StateStore):
    """Process-local state store for development and tests."""

    def __init__(self) -> None:
        self.states: Dict[str, str] = {}

    async def load(self, actor_id: str) -> Optional[ActorState]:
        raw = self.states.get(actor_id)
        return ActorState.model_validate_json(raw) if raw is not None else None

    async def save(self, state: ActorState) -> None:
        self.states[state.id] = state.model_dump_json()

    async def list_ids(self) -> List[str]:
        return sorted(self.states)
