"""MCP adapter: expose the tool registry in MCP format and answer MCP requests."""

from __future__ import annotations

import json
from typing import Any

from repolens.tools.registry import ToolRegistry
from repolens.utils.logging import get_logger

logger = get_logger(__name__)


class MCPAdapter:
    """
    Serves ``tools/list`` and ``tools/call`` requests from a ToolRegistry.

    Successful calls come back as one JSON text block, the same envelope
    shape the GitHub MCP server produces, so ``normalize_response`` unwraps
    them. Failed calls set ``isError`` and carry the error text.
    """

    def __init__(self, tool_registry: ToolRegistry) -> None:
        self.registry = tool_registry

    def export_mcp_manifest(self) -> dict[str, Any]:
        """Export tools in MCP format (version, tools with name, description, inputSchema)."""
        return {"version": "1.0", "tools": self.registry.get_tool_schemas()}

    async def handle_mcp_request(self, request: dict[str, Any]) -> dict[str, Any]:
        """
        Handle an incoming MCP request.
        Expects method "tools/list", or "tools/call" with params={"name": str, "arguments": dict}.
        """
        method = request.get("method", "")
        params = request.get("params") or {}
        if method == "tools/list":
            return {"tools": self.registry.get_tool_schemas()}
        if method != "tools/call":
            return {"error": {"code": -32601, "message": f"Unknown method: {method}"}}
        name = params.get("name")
        arguments = params.get("arguments") or {}
        if not name:
            return {"error": {"code": -32602, "message": "Missing tool name"}}
        if not isinstance(arguments, dict):
            return {"error": {"code": -32602, "message": "arguments must be an object"}}
        result = await self.registry.execute_tool(name, arguments)
        if result.success:
            return {"content": [{"type": "text", "text": json.dumps(result.data, default=str)}], "isError": False}
        logger.info("mcp_tool_failed", tool=name, error=result.error)
        return {"content": [{"type": "text", "text": result.error}], "isError": True}
