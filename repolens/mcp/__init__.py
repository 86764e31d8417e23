"""GitHub MCP client and envelope normalization."""

from repolens.mcp.normalize import as_items, normalize_response

__all__ = ["as_items", "normalize_response"]
