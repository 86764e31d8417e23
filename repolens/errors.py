"""Error types raised inside repolens and caught at the tool executor boundary."""

from __future__ import annotations


class RepoLensError(Exception):
    """Base exception for all repolens errors."""

    def __init__(self, message: str, details: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} ({self.details})"
        return self.message


class ToolNotFoundError(RepoLensError):
    """Requested tool name is not in the registry."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Tool '{name}' not found")
        self.name = name


class DuplicateToolError(RepoLensError):
    """A tool with the same name is already registered."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Tool '{name}' is already registered")
        self.name = name


class ValidationError(RepoLensError):
    """Tool arguments are missing or malformed."""


class ConfigurationError(RepoLensError):
    """Required configuration (e.g. AI service credentials) is missing."""

    def __init__(self, message: str, config_key: str | None = None) -> None:
        super().__init__(message)
        self.config_key = config_key


class AuthenticationError(RepoLensError):
    """Token endpoint answered with a non-2xx status."""

    def __init__(self, status: int, body: str = "") -> None:
        super().__init__(f"Failed to get access token: {status}", details=_truncate(body))
        self.status = status
        self.body = body


class UpstreamServiceError(RepoLensError):
    """Protocol client or AI service failed, timed out or answered non-2xx."""

    def __init__(self, message: str, status: int | None = None, body: str | None = None) -> None:
        super().__init__(message, details=_truncate(body) if body else None)
        self.status = status
        self.body = body


def _truncate(text: str | None, limit: int = 300) -> str | None:
    if text is None:
        return None
    text = text.strip()
    return text if len(text) <= limit else text[: limit - 3] + "..."
