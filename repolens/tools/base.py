"""Tool result schema and base types."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, model_validator


class ToolResult(BaseModel):
    """
    Structured result from any tool execution.

    Exactly one of ``data`` / ``error`` is meaningful: successful results never
    carry an error and failed results never carry data.

    Attributes:
        success: Whether the tool completed without error.
        data: Result payload (tool-specific).
        error: Error message if success is False.
        metadata: Optional execution metadata.
        execution_time_ms: Duration in milliseconds.
    """

    success: bool
    data: Any = None
    error: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    execution_time_ms: float = 0.0

    @model_validator(mode="after")
    def _check_union(self) -> "ToolResult":
        if self.success and self.error is not None:
            raise ValueError("successful ToolResult must not carry an error")
        if not self.success:
            if not self.error:
                raise ValueError("failed ToolResult requires an error message")
            if self.data is not None:
                raise ValueError("failed ToolResult must not carry data")
        return self

    @classmethod
    def ok(cls, data: Any = None, **kwargs: Any) -> "ToolResult":
        return cls(success=True, data=data, **kwargs)

    @classmethod
    def fail(cls, error: str, **kwargs: Any) -> "ToolResult":
        return cls(success=False, data=None, error=error, **kwargs)

    def to_payload(self) -> dict[str, Any]:
        """Wire form returned to callers: ``{success, data}`` or ``{success, error}``."""
        if self.success:
            return {"success": True, "data": self.data}
        return {"success": False, "error": self.error}
