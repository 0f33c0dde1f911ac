"""JSON-RPC tool protocol exposing a content actor's search."""

import logging
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel

from textindex.core.config import settings
from textindex.services.gateway import Gateway

logger = logging.getLogger(__name__)

PROTOCOL_VERSION = "2024-11-05"

METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
PARSE_ERROR = -32700
INVALID_REQUEST = -32600

SEARCH_TOOL = {
    "name": "search",
    "description": "Token efficient full-text search through the text content",
    "inputSchema": {
        "type": "object",
        "properties": {
            "query": {
                "type": "string",
                "description": "Search query string (e.g., 'api endpoint', 'configuration')",
            },
            "k": {
                "type": "integer",
                "default": 5,
                "description": "Number of results to return",
            },
        },
        "required": ["query"],
    },
}


class ToolRequest(BaseModel):
    """JSON-RPC request."""

    jsonrpc: str = "2.0"
    id: Optional[Union[str, int]] = None
    method: str
    params: Optional[Dict[str, Any]] = None

    @property
    def is_notification(self) -> bool:
        return self.id is None


class ToolResponse(BaseModel):
    """JSON-RPC response."""

    jsonrpc: str = "2.0"
    id: Optional[Union[str, int]] = None
    result: Any = None
    error: Optional[Dict[str, Any]] = None

    def to_wire(self) -> Dict[str, Any]:
        """Serialize with exactly one of result or error."""
        payload: Dict[str, Any] = {"jsonrpc": self.jsonrpc, "id": self.id}
        if self.error is not None:
            payload["error"] = self.error
        else:
            payload["result"] = self.result if self.result is not None else {}
        return payload


def text_result(text: str) -> Dict[str, Any]:
    return {"content": [{"type": "text", "text": text}]}


class ToolHandler:
    """Dispatches JSON-RPC calls for one content id to its actor."""

    def __init__(self, gateway: Gateway) -> None:
        self.gateway = gateway

    def server_info(self) -> Dict[str, str]:
        return {"name": settings.service_name, "version": "1.0.0"}

    def discovery(self, content_id: str) -> Dict[str, Any]:
        """Describe the endpoint serving a content id."""
        return {
            "id": content_id,
            "protocolVersion": PROTOCOL_VERSION,
            "serverInfo": self.server_info(),
            "capabilities": {"tools": {}},
            "tools": [SEARCH_TOOL],
        }

    async def _call_search(self, content_id: str, arguments: Any) -> Dict[str, Any]:
        if not isinstance(arguments, dict):
            raise ValueError("'arguments' must be an object")
        query = arguments.get("query")
        k = arguments.get("k", settings.default_k)
        if not isinstance(query, str):
            raise ValueError("'query' must be a string")
        if isinstance(k, bool) or not isinstance(k, int):
            raise ValueError("'k' must be an integer")

        try:
            report = await self.gateway.search(content_id, query, k)
        except Exception as e:
            logger.error(f"Search error for {content_id}: {str(e)}")
            report = f"Search error: {str(e)}"
        return text_result(report)

    async def handle(self, content_id: str, request: ToolRequest) -> Optional[ToolResponse]:
        """
        Handle one JSON-RPC message.

        Args:
            content_id: Id of the content actor addressed.
            request: Parsed JSON-RPC message.

        Returns:
            Response, or None for notifications.
        """
        logger.info(f"Tool request {request.method} for {content_id}")

        if request.is_notification:
            return None

        if request.method == "initialize":
            return ToolResponse(
                id=request.id,
                result={
                    "protocolVersion": PROTOCOL_VERSION,
                    "serverInfo": self.server_info(),
                    "capabilities": {"tools": {}},
                },
            )

        if request.method == "ping":
            return ToolResponse(id=request.id, result={})

        if request.method == "tools/list":
            return ToolResponse(id=request.id, result={"tools": [SEARCH_TOOL]})

        if request.method == "tools/call":
            params = request.params or {}
            tool_name = params.get("name")
            if tool_name != SEARCH_TOOL["name"]:
                return ToolResponse(
                    id=request.id,
                    error={"code": METHOD_NOT_FOUND, "message": f"Unknown tool: {tool_name}"},
                )
            try:
                result = await self._call_search(content_id, params.get("arguments") or {})
            except ValueError as e:
                return ToolResponse(
                    id=request.id,
                    error={"code": INVALID_PARAMS, "message": str(e)},
                )
            return ToolResponse(id=request.id, result=result)

        return ToolResponse(
            id=request.id,
            error={"code": METHOD_NOT_FOUND, "message": f"Method not found: {request.method}"},
        )
