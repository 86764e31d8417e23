"""Service object wiring the MCP client, AI client and tool registry together."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable

from repolens.llm.analysis import AnalysisClient
from repolens.llm.credentials import ClientCredentialsTokenCache
from repolens.mcp.client import GitHubMCPClient, ProtocolClient
from repolens.orchestration.organization import OrganizationAnalyzer
from repolens.tools.base import ToolResult
from repolens.tools.organizations import register_organization_tools
from repolens.tools.registry import ToolRegistry
from repolens.tools.repositories import register_repository_tools
from repolens.utils.config import load_config
from repolens.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class RepoLensService:
    """Constructed once at startup; ``aclose()`` at shutdown."""

    registry: ToolRegistry
    analyzer: OrganizationAnalyzer
    github: ProtocolClient
    analyst: AnalysisClient

    async def execute(self, name: str, arguments: dict[str, Any] | None = None) -> ToolResult:
        return await self.registry.execute_tool(name, arguments or {})

    def list_tools(self) -> list[dict[str, Any]]:
        return self.registry.list_tools()

    async def analyze_organization(self, org: str, query: str, limit: int = 5) -> ToolResult:
        return await self.analyzer.analyze_organization(org, query, limit)

    async def aclose(self) -> None:
        close = getattr(self.github, "close", None)
        if close is not None:
            await close()


def build_registry(
    github: ProtocolClient,
    analyst: AnalysisClient,
    config: dict[str, Any],
    clock: Callable[[], datetime] | None = None,
) -> tuple[ToolRegistry, OrganizationAnalyzer]:
    """Create the registry with every tool registered, in listing order."""
    registry = ToolRegistry(default_timeout=float(config["tools"]["timeout_seconds"]))
    register_repository_tools(registry, github, analyst)
    register_organization_tools(registry, github, clock=clock)
    orchestration = config["orchestration"]
    analyzer = OrganizationAnalyzer(registry, max_concurrency=int(orchestration["max_concurrency"]))
    analyzer.register(timeout=float(orchestration["timeout_seconds"]))
    return registry, analyzer


def create_service(
    config: dict[str, Any] | None = None,
    github: ProtocolClient | None = None,
    analyst: AnalysisClient | None = None,
) -> RepoLensService:
    """
    Build the service from config. ``github`` / ``analyst`` can be injected
    (tests pass fakes); otherwise they are created from the ``github`` and
    ``ai`` config sections.
    """
    config = config or load_config()
    if github is None:
        github = GitHubMCPClient.from_config(config)
    if analyst is None:
        credentials = ClientCredentialsTokenCache.from_config(config)
        analyst = AnalysisClient.from_config(config, credentials)
    registry, analyzer = build_registry(github, analyst, config)
    logger.info("service_created", tools=registry.names())
    return RepoLensService(registry=registry, analyzer=analyzer, github=github, analyst=analyst)
