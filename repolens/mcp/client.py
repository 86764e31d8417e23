"""Client for the GitHub MCP server (stdio transport via the mcp SDK)."""

from __future__ import annotations

import asyncio
import os
import time
from contextlib import AsyncExitStack
from typing import Any, Protocol

from mcp import ClientSession, StdioServerParameters
from mcp.client.stdio import stdio_client

from repolens.errors import UpstreamServiceError
from repolens.mcp.normalize import normalize_response
from repolens.utils.logging import get_logger
from repolens.utils.monitoring import record_upstream_latency

logger = get_logger(__name__)


class ProtocolClient(Protocol):
    """Anything that can run a tool on the source-control protocol service."""

    async def call_tool(self, name: str, arguments: dict[str, Any]) -> Any:
        ...


class GitHubMCPClient:
    """
    Lazily connected session to ``@modelcontextprotocol/server-github``.

    One session is opened on first use and reused for every call until
    ``close()``. Each call is bounded by ``timeout``; timeouts, transport
    failures and envelopes flagged ``isError`` raise ``UpstreamServiceError``.
    """

    def __init__(
        self,
        command: str = "npx",
        args: list[str] | None = None,
        token: str | None = None,
        timeout: float = 30.0,
        env: dict[str, str] | None = None,
    ) -> None:
        self.command = command
        self.args = list(args or ["@modelcontextprotocol/server-github"])
        self.token = token
        self.timeout = timeout
        self._env = env
        self._stack: AsyncExitStack | None = None
        self._session: ClientSession | None = None
        self._connect_lock = asyncio.Lock()

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> "GitHubMCPClient":
        gh = config.get("github", {})
        return cls(
            command=gh.get("command", "npx"),
            args=gh.get("args"),
            token=gh.get("token"),
            timeout=float(gh.get("timeout_seconds", 30.0)),
        )

    def _server_params(self) -> StdioServerParameters:
        env = {**os.environ, **(self._env or {})}
        if self.token:
            env["GITHUB_TOKEN"] = self.token
            env["GITHUB_PERSONAL_ACCESS_TOKEN"] = self.token
        return StdioServerParameters(command=self.command, args=self.args, env=env)

    async def _ensure_session(self) -> ClientSession:
        if self._session is not None:
            return self._session
        async with self._connect_lock:
            if self._session is not None:
                return self._session
            stack = AsyncExitStack()
            try:
                read, write = await stack.enter_async_context(stdio_client(self._server_params()))
                session = await stack.enter_async_context(ClientSession(read, write))
                await asyncio.wait_for(session.initialize(), timeout=self.timeout)
            except Exception as e:
                await stack.aclose()
                logger.error("mcp_connect_failed", command=self.command, error=str(e))
                raise UpstreamServiceError(f"Could not connect to GitHub MCP server: {e}") from e
            self._stack = stack
            self._session = session
            logger.info("mcp_connected", command=self.command, args=self.args)
            return session

    async def call_tool(self, name: str, arguments: dict[str, Any]) -> Any:
        """Run one upstream tool and return its raw envelope."""
        session = await self._ensure_session()
        start = time.perf_counter()
        try:
            result = await asyncio.wait_for(session.call_tool(name, arguments), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            raise UpstreamServiceError(f"GitHub MCP call '{name}' timed out after {self.timeout}s") from e
        except Exception as e:
            raise UpstreamServiceError(f"GitHub MCP call '{name}' failed: {e}") from e
        finally:
            record_upstream_latency("github", time.perf_counter() - start)
        if getattr(result, "isError", False):
            detail = normalize_response(result)
            raise UpstreamServiceError(f"GitHub MCP call '{name}' returned an error", body=str(detail))
        return result

    async def close(self) -> None:
        if self._stack is not None:
            await self._stack.aclose()
        self._stack = None
        self._session = None
