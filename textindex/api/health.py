"""Health check utilities."""

from typing import Dict

from textindex.services.blob_store import BlobStore
from textindex.services.health import check_blob_store, check_state_store
from textindex.services.state_store import StateStore


async def check_all_dependencies(
    blob_store: BlobStore,
    state_store: StateStore,
) -> Dict:
    """
    Check all service dependencies.

    Args:
        blob_store: Blob storage service.
        state_store: Actor state storage service.

    Returns:
        Dictionary with overall status and individual service statuses.
    """
    services = {}
    overall_status = "healthy"

    blob_status = await check_blob_store(blob_store)
    services["blob_store"] = blob_status
    if blob_status.get("status") != "healthy":
        overall_status = "unhealthy"

    state_status = await check_state_store(state_store)
    services["state_store"] = state_status
    if state_status.get("status") != "healthy":
        overall_status = "unhealthy"

    return {"status": overall_status, "services": services}


async def check_readiness(
    blob_store: BlobStore,
    state_store: StateStore,
) -> Dict:
    """
    Check service readiness.

    Args:
        blob_store: Blob storage service.
        state_store: Actor state storage service.

    Returns:
        Readiness status dictionary.
    """
    blob_ready = (await check_blob_store(blob_store)).get("status") == "healthy"
    state_ready = (await check_state_store(state_store)).get("status") == "healthy"

    return {
        "ready": blob_ready and state_ready,
        "blob_store": blob_ready,
        "state_store": state_ready,
    }
