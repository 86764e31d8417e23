"""Unit tests for the MCP adapter."""

import pytest

from repolens.mcp.adapter import MCPAdapter
from repolens.mcp.normalize import normalize_response
from repolens.tools.base import ToolResult
from repolens.tools.registry import ParameterSpec, ToolRegistry


def _adapter() -> MCPAdapter:
    registry = ToolRegistry()

    @registry.tool("stats", "Repo stats", {"repo": ParameterSpec("string", "Repository")})
    async def stats(repo: str) -> ToolResult:
        return ToolResult.ok({"repo": repo, "commits": []})

    return MCPAdapter(registry)


def test_manifest():
    manifest = _adapter().export_mcp_manifest()
    assert manifest["tools"][0]["name"] == "stats"
    assert manifest["tools"][0]["inputSchema"]["required"] == ["repo"]


@pytest.mark.asyncio
async def test_call_round_trips_through_normalizer():
    response = await _adapter().handle_mcp_request(
        {"method": "tools/call", "params": {"name": "stats", "arguments": {"repo": "acme/widget"}}}
    )
    assert response["isError"] is False
    assert normalize_response(response) == {"repo": "acme/widget", "commits": []}


@pytest.mark.asyncio
async def test_failed_call_sets_is_error():
    response = await _adapter().handle_mcp_request({"method": "tools/call", "params": {"name": "missing"}})
    assert response["isError"] is True
    assert normalize_response(response) == "Tool 'missing' not found"


@pytest.mark.asyncio
async def test_unknown_method():
    response = await _adapter().handle_mcp_request({"method": "resources/list"})
    assert response["error"]["code"] == -32601
