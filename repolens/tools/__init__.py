"""Tool registry and the repository / organization tools."""

from repolens.tools.base import ToolResult
from repolens.tools.registry import ParameterSpec, ToolDefinition, ToolRegistry

__all__ = ["ParameterSpec", "ToolDefinition", "ToolRegistry", "ToolResult"]
