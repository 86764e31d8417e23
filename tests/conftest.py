"""Shared fakes for the GitHub MCP server, the AI service and the token endpoint."""

from __future__ import annotations

import asyncio
import json
import threading
import time
from pathlib import Path
from typing import Any, Callable

import pytest
import structlog

from repolens.errors import UpstreamServiceError
from repolens.llm.base import Completion
from repolens.utils.config import load_config


def text_envelope(payload: Any) -> dict[str, Any]:
    text = payload if isinstance(payload, str) else json.dumps(payload)
    return {"content": [{"type": "text", "text": text}]}


def repo_record(full_name: str, stars: int = 0, language: str | None = "Python", pushed_at: str | None = None) -> dict[str, Any]:
    owner, name = full_name.split("/")
    return {
        "id": abs(hash(full_name)) % 100000,
        "name": name,
        "full_name": full_name,
        "description": f"{name} repo",
        "stargazers_count": stars,
        "forks_count": 1,
        "language": language,
        "topics": ["demo"],
        "html_url": f"https://github.com/{full_name}",
        "created_at": "2024-01-01T00:00:00Z",
        "updated_at": "2026-10-01T00:00:00Z",
        "pushed_at": pushed_at,
        "private": False,
        "default_branch": "main",
        "owner": {"login": owner, "avatar_url": f"https://avatars/{owner}", "type": "Organization"},
    }


class FakeGitHub:
    """Answers ``call_tool`` from a name -> payload (or callable) table and records calls."""

    def __init__(self, responses: dict[str, Any] | None = None) -> None:
        self.responses = responses or {}
        self.calls: list[tuple[str, dict[str, Any]]] = []

    async def call_tool(self, name: str, arguments: dict[str, Any]) -> Any:
        self.calls.append((name, dict(arguments)))
        await asyncio.sleep(0)
        response = self.responses.get(name, [])
        if callable(response):
            response = response(arguments)
        if isinstance(response, Exception):
            raise response
        return text_envelope(response)

    def called(self, name: str) -> list[dict[str, Any]]:
        return [args for n, args in self.calls if n == name]


class FakeAnalyst:
    """Stands in for AnalysisClient; optional per-repository delays and failures."""

    def __init__(
        self,
        delays: dict[str, float] | None = None,
        failures: dict[str, Exception] | None = None,
    ) -> None:
        self.delays = delays or {}
        self.failures = failures or {}
        self.calls: list[tuple[Any, str]] = []
        self.in_flight = 0
        self.max_in_flight = 0

    def _repository(self, query: str) -> str | None:
        marker = "Focus on this repository: "
        if marker not in query:
            return None
        return query.split(marker, 1)[1].split(")", 1)[0]

    async def analyze_repository(self, context: Any, query: str) -> Completion:
        self.calls.append((context, query))
        repo = self._repository(query)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delays.get(repo, 0))
        finally:
            self.in_flight -= 1
        if repo in self.failures:
            raise self.failures[repo]
        return Completion(
            content=f"analysis of {repo}",
            model_id="test-model",
            prompt_tokens=10,
            output_tokens=5,
            total_tokens=15,
        )


class FakeResponse:
    def __init__(self, status_code: int = 200, payload: Any = None, text: str | None = None) -> None:
        self.status_code = status_code
        self._payload = payload
        self.text = text if text is not None else json.dumps(payload)
        self.reason = "OK" if status_code < 400 else "Error"

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    def json(self) -> Any:
        if self._payload is None:
            raise ValueError("no json")
        return self._payload


class FakeSession:
    """requests.Session stand-in; ``responder`` builds a FakeResponse per POST."""

    def __init__(self, responder: Callable[..., FakeResponse], delay: float = 0.0) -> None:
        self.responder = responder
        self.delay = delay
        self.posts: list[dict[str, Any]] = []
        self._lock = threading.Lock()

    def post(self, url: str, **kwargs: Any) -> FakeResponse:
        with self._lock:
            self.posts.append({"url": url, **kwargs})
        if self.delay:
            time.sleep(self.delay)
        return self.responder(url, **kwargs)


@pytest.fixture(autouse=True)
def quiet_logging() -> None:
    structlog.configure(
        processors=[],
        logger_factory=structlog.ReturnLoggerFactory(),
        cache_logger_on_first_use=False,
    )


@pytest.fixture
def config(tmp_path: Path) -> dict[str, Any]:
    cfg = load_config(tmp_path / "missing.yaml")
    cfg["orchestration"]["max_concurrency"] = 5
    return cfg


@pytest.fixture
def upstream_error() -> UpstreamServiceError:
    return UpstreamServiceError("connection reset by peer")
