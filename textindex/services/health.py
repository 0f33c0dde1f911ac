"""Health check service for dependency verification."""

import time
from typing import Any, Dict

from textindex.services.blob_store import BlobStore, RedisBlobStore
from textindex.services.state_store import RedisStateStore, StateStore


async def _check_redis_client(client: Any) -> Dict[str, Any]:
    try:
        start_time = time.time()
        if not client:
            return {"status": "unhealthy", "error": "Not connected", "latency_ms": 0}

        await client.ping()
        latency_ms = (time.time() - start_time) * 1000

        return {
            "status": "healthy",
            "latency_ms": round(latency_ms, 2),
        }
    except Exception as e:
        return {
            "status": "unhealthy",
            "error": str(e),
            "latency_ms": 0,
        }


async def check_blob_store(blob_store: BlobStore) -> Dict[str, Any]:
    """
    Check blob store connectivity and health.

    Args:
        blob_store: BlobStore instance.

    Returns:
        Health status dictionary.
    """
    if isinstance(blob_store, RedisBlobStore):
        return await _check_redis_client(blob_store.client)
    return {"status": "healthy", "backend": "memory"}


async def check_state_store(state_store: StateStore) -> Dict[str, Any]:
    """
    Check actor state store connectivity and health.

    Args:
        state_store: StateStore instance.

    Returns:
        Health status dictionary.
    """
    if isinstance(state_store, RedisStateStore):
        return await _check_redis_client(state_store.client)
    return {"status": "healthy", "backend": "memory"}
