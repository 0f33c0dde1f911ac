"""textindex service: management API and per-content search endpoints."""

import logging
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import APIRouter, FastAPI, File, HTTPException, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from pydantic import ValidationError as PayloadError
from starlette.responses import Response

from textindex.api.health import check_all_dependencies, check_readiness
from textindex.core.config import settings
from textindex.core.dependencies import ServiceContainer, services
from textindex.core.exceptions import (
    InternalError,
    NotFoundError,
    UpstreamFetchError,
    ValidationError,
)
from textindex.models.api import CreateResponse, RemoteCreate, StatusResponse
from textindex.monitoring.metrics import content_create_errors_total
from textindex.services.gateway import host_name, is_tenant_host, resolve_id
from textindex.services.tool_handler import (
    INVALID_REQUEST,
    PARSE_ERROR,
    ToolRequest,
    ToolResponse,
)

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)

TENANT_PATHS = {"/", "/mcp"}

router = APIRouter()


def get_services(request: Request) -> ServiceContainer:
    return request.app.state.services


@router.post("/api/upload", response_model=CreateResponse)
async def upload(request: Request, file: Optional[UploadFile] = File(None)) -> CreateResponse:
    """
    Create a content endpoint from an uploaded text file.

    Args:
        file: Multipart file field.

    Returns:
        Id and public URL of the new endpoint.
    """
    container = get_services(request)
    data = None
    if file is not None:
        # One byte past the limit is enough to reject without reading everything.
        data = await file.read(container.gateway.max_upload_bytes + 1)

    try:
        return await container.gateway.create_from_upload(
            file.filename if file is not None else None, data)
    except ValidationError as e:
        content_create_errors_total.inc()
        raise HTTPException(status_code=400, detail=str(e))
    except InternalError as e:
        logger.error(f"Failed to store upload: {str(e)}")
        content_create_errors_total.inc()
        raise HTTPException(status_code=500, detail="Failed to store content")


@router.post("/api/remote", response_model=CreateResponse)
async def create_remote(request: Request, payload: RemoteCreate) -> CreateResponse:
    """
    Create a content endpoint from a remote URL.

    Args:
        payload: Body with the URL to register.

    Returns:
        Id and public URL of the new endpoint.
    """
    container = get_services(request)
    try:
        return await container.gateway.create_from_remote(payload.url)
    except ValidationError as e:
        content_create_errors_total.inc()
        raise HTTPException(status_code=400, detail=str(e))
    except UpstreamFetchError as e:
        logger.warning(f"Remote registration rejected: {str(e)}")
        content_create_errors_total.inc()
        raise HTTPException(status_code=400, detail="Failed to fetch remote content")
    except InternalError as e:
        logger.error(f"Failed to store remote content: {str(e)}")
        content_create_errors_total.inc()
        raise HTTPException(status_code=500, detail="Failed to store content")


@router.get(
    "/api/status/{content_id}",
    response_model=StatusResponse,
    response_model_exclude_none=True,
)
async def status(request: Request, content_id: str) -> StatusResponse:
    """
    Get stored metadata and content for an id.

    Args:
        content_id: Content id.

    Returns:
        Status of the content endpoint.
    """
    try:
        return await get_services(request).gateway.get_status(content_id)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Not found")
    except InternalError as e:
        logger.error(f"Failed to look up {content_id}: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to read content")


def _resolve_or_400(request: Request, content_id: Optional[str]) -> str:
    try:
        return resolve_id(request.headers.get("host", ""), content_id)
    except ValidationError:
        raise HTTPException(status_code=400, detail="Invalid MCP server")


@router.get("/")
async def root(request: Request) -> dict:
    """Describe the service, or the content endpoint on a tenant host."""
    host = request.headers.get("host", "")
    if not is_tenant_host(host):
        return {"name": settings.service_name, "api": ["/api/upload", "/api/remote", "/api/status/{id}"]}

    content_id = _resolve_or_400(request, None)
    return {
        "name": f"{settings.service_name} MCP Server",
        "id": content_id,
        "endpoint": f"https://{host_name(host)}/mcp",
        "usage": "Connect your MCP client to the endpoint URL above",
    }


@router.get("/mcp")
@router.get("/mcp/{content_id}")
async def tool_discovery(request: Request, content_id: Optional[str] = None) -> dict:
    """Describe the tools served for a content id."""
    resolved = _resolve_or_400(request, content_id)
    return get_services(request).tool_handler.discovery(resolved)


@router.post("/mcp")
@router.post("/mcp/{content_id}")
async def tool_messages(request: Request, content_id: Optional[str] = None) -> Response:
    """
    Handle JSON-RPC messages for a content id.

    Accepts a single message or a batch. Notifications only yield 202.
    """
    resolved = _resolve_or_400(request, content_id)
    handler = get_services(request).tool_handler

    try:
        payload = await request.json()
    except ValueError:
        error = ToolResponse(error={"code": PARSE_ERROR, "message": "Parse error"})
        return JSONResponse(error.to_wire(), status_code=400)

    is_batch = isinstance(payload, list)
    messages = payload if is_batch else [payload]

    responses = []
    for message in messages:
        try:
            tool_request = ToolRequest.model_validate(message)
        except PayloadError:
            responses.append(
                ToolResponse(error={"code": INVALID_REQUEST, "message": "Invalid request"}))
            continue

        response = await handler.handle(resolved, tool_request)
        if response is not None:
            responses.append(response)

    if not responses:
        return Response(status_code=202)

    body = [r.to_wire() for r in responses]
    return JSONResponse(body if is_batch else body[0])


@router.get("/health")
async def health(request: Request) -> dict:
    """
    Health check endpoint with dependency verification.

    Returns:
        Health status with service dependencies.
    """
    container = get_services(request)
    result = await check_all_dependencies(container.blob_store, container.state_store)
    return {"status": result["status"], "service": settings.service_name, **result}


@router.get("/ready")
async def readiness(request: Request) -> dict:
    """
    Readiness check endpoint.

    Returns:
        Readiness status.
    """
    container = get_services(request)
    result = await check_readiness(container.blob_store, container.state_store)
    return {"service": settings.service_name, **result}


@router.get("/metrics")
async def metrics() -> Response:
    """Prometheus metrics endpoint."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


def create_app(container: Optional[ServiceContainer] = None) -> FastAPI:
    """
    Build the application.

    Args:
        container: Services to use; defaults to the module-level container.

    Returns:
        Configured FastAPI app.
    """
    container = container or services

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan manager."""
        await container.initialize()
        logger.info("textindex service started")
        yield
        await container.shutdown()
        logger.info("textindex service stopped")

    app = FastAPI(title="textindex", lifespan=lifespan)
    app.state.services = container

    @app.exception_handler(RequestValidationError)
    async def request_validation_error(request: Request, exc: RequestValidationError):
        """Report request validation failures as 400."""
        logger.info(f"Rejected malformed request to {request.url.path}: {exc.errors()}")
        return JSONResponse({"detail": "Invalid request body"}, status_code=400)

    @app.middleware("http")
    async def tenant_paths_only(request: Request, call_next):
        """Tenant hosts serve only the endpoint info and the tool protocol."""
        if is_tenant_host(request.headers.get("host", "")) and request.url.path not in TENANT_PATHS:
            return JSONResponse({"detail": "Not Found"}, status_code=404)
        return await call_next(request)

    app.include_router(router)
    return app


app = create_app()


def run() -> None:
    """Serve the application with uvicorn."""
    uvicorn.run(app, host=settings.service_host, port=settings.service_port)
