"""Tool registry with decorator-based registration, discovery listings and execution."""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Mapping

from repolens.errors import DuplicateToolError, ToolNotFoundError, ValidationError
from repolens.tools.base import ToolResult
from repolens.utils.logging import get_logger
from repolens.utils.monitoring import record_tool_execution

logger = get_logger(__name__)

ToolHandler = Callable[..., Awaitable[ToolResult]]

_JSON_TYPES = {"string": "string", "number": "number", "integer": "integer", "boolean": "boolean", "object": "object"}


@dataclass(frozen=True)
class ParameterSpec:
    """Declared parameter of a tool."""

    kind: str
    description: str
    optional: bool = False
    default: Any = None

    def describe(self) -> dict[str, Any]:
        out: dict[str, Any] = {"type": self.kind, "description": self.description, "optional": self.optional}
        if self.default is not None:
            out["default"] = self.default
        return out


@dataclass(frozen=True)
class ToolDefinition:
    """Metadata and handler for a single tool."""

    name: str
    description: str
    handler: ToolHandler
    parameters: Mapping[str, ParameterSpec] = field(default_factory=dict)
    timeout: float | None = None

    def bind_arguments(self, arguments: Mapping[str, Any] | None) -> dict[str, Any]:
        """
        Check arguments against the declared parameters and fill in defaults.

        Raises:
            ValidationError: a required parameter is missing or an undeclared one is given.
        """
        arguments = dict(arguments or {})
        unknown = sorted(k for k in arguments if k not in self.parameters)
        if unknown:
            raise ValidationError(
                f"Unknown parameter(s) for tool '{self.name}': {', '.join(unknown)}"
            )
        missing = [
            pname
            for pname, spec in self.parameters.items()
            if not spec.optional and arguments.get(pname) in (None, "")
        ]
        if missing:
            raise ValidationError(
                f"Missing required parameter(s) for tool '{self.name}': {', '.join(missing)}"
            )
        bound: dict[str, Any] = {}
        for pname, spec in self.parameters.items():
            value = arguments.get(pname)
            if value is None:
                if spec.default is None:
                    continue
                value = spec.default
            bound[pname] = value
        return bound

    def describe(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "parameters": {pname: spec.describe() for pname, spec in self.parameters.items()},
        }


class ToolRegistry:
    """
    Ordered registry of tools with timeout and error handling.

    Tools are registered once while the service is being built; the registry is
    only read afterwards. Registering a name twice raises ``DuplicateToolError``.

    Example:
        >>> registry = ToolRegistry()
        >>> @registry.tool("echo", "Echo back", {"msg": ParameterSpec("string", "Message")})
        ... async def echo(msg: str) -> ToolResult:
        ...     return ToolResult.ok(msg)
    """

    def __init__(self, default_timeout: float = 120.0) -> None:
        self._tools: dict[str, ToolDefinition] = {}
        self.default_timeout = default_timeout

    def register(self, definition: ToolDefinition) -> ToolDefinition:
        if definition.name in self._tools:
            raise DuplicateToolError(definition.name)
        self._tools[definition.name] = definition
        logger.debug("tool_registered", tool_name=definition.name)
        return definition

    def tool(
        self,
        name: str,
        description: str,
        parameters: Mapping[str, ParameterSpec] | None = None,
        timeout: float | None = None,
    ) -> Callable[[ToolHandler], ToolHandler]:
        """Decorator to register an async tool function."""

        def decorator(fn: ToolHandler) -> ToolHandler:
            self.register(
                ToolDefinition(
                    name=name,
                    description=description,
                    handler=fn,
                    parameters=dict(parameters or {}),
                    timeout=timeout,
                )
            )
            return fn

        return decorator

    def get(self, name: str) -> ToolDefinition | None:
        return self._tools.get(name)

    def require(self, name: str) -> ToolDefinition:
        try:
            return self._tools[name]
        except KeyError:
            raise ToolNotFoundError(name) from None

    def names(self) -> list[str]:
        return list(self._tools)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    def list_tools(self) -> list[dict[str, Any]]:
        """Discovery listing in registration order."""
        return [defn.describe() for defn in self._tools.values()]

    def get_tool_schemas(self) -> list[dict[str, Any]]:
        """Return MCP-style tool schemas (name, description, inputSchema)."""
        schemas = []
        for defn in self._tools.values():
            properties = {}
            for pname, spec in defn.parameters.items():
                prop: dict[str, Any] = {
                    "type": _JSON_TYPES.get(spec.kind, "string"),
                    "description": spec.description,
                }
                if spec.default is not None:
                    prop["default"] = spec.default
                properties[pname] = prop
            schemas.append({
                "name": defn.name,
                "description": defn.description,
                "inputSchema": {
                    "type": "object",
                    "properties": properties,
                    "required": [p for p, s in defn.parameters.items() if not s.optional],
                },
            })
        return schemas

    async def execute_tool(
        self,
        name: str,
        arguments: Mapping[str, Any] | None = None,
        timeout: float | None = None,
    ) -> ToolResult:
        """
        Execute a tool by name and always return a ToolResult.

        Unknown tools and invalid arguments fail before the handler runs.
        Anything the handler raises is wrapped as
        ``Error executing tool '<name>': <message>``.
        """
        try:
            definition = self.require(name)
        except ToolNotFoundError as e:
            logger.warning("tool_not_found", tool_name=name)
            record_tool_execution(name, False)
            return ToolResult.fail(str(e))

        try:
            bound = definition.bind_arguments(arguments)
        except ValidationError as e:
            logger.warning("tool_arguments_invalid", tool_name=name, error=str(e))
            record_tool_execution(name, False)
            return ToolResult.fail(str(e))

        timeout = timeout or definition.timeout or self.default_timeout
        start = time.perf_counter()
        try:
            result = await asyncio.wait_for(definition.handler(**bound), timeout=timeout)
        except asyncio.TimeoutError:
            elapsed_ms = (time.perf_counter() - start) * 1000
            logger.warning("tool_timeout", tool_name=name, timeout=timeout)
            record_tool_execution(name, False)
            return ToolResult.fail(
                f"Error executing tool '{name}': timed out after {timeout}s",
                execution_time_ms=elapsed_ms,
            )
        except Exception as e:
            elapsed_ms = (time.perf_counter() - start) * 1000
            logger.exception("tool_error", tool_name=name, error=str(e))
            record_tool_execution(name, False)
            return ToolResult.fail(
                f"Error executing tool '{name}': {e}",
                execution_time_ms=elapsed_ms,
            )

        elapsed_ms = (time.perf_counter() - start) * 1000
        if result.execution_time_ms == 0.0:
            result = result.model_copy(update={"execution_time_ms": elapsed_ms})
        logger.info(
            "tool_executed",
            tool_name=name,
            success=result.success,
            execution_time_ms=elapsed_ms,
        )
        record_tool_execution(name, result.success)
        return result
