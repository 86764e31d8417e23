"""Organization-wide repository analysis with bounded concurrent fan-out."""

from __future__ import annotations

import asyncio
import time
from typing import Any

from repolens.errors import ValidationError
from repolens.tools.base import ToolResult
from repolens.tools.registry import ParameterSpec, ToolRegistry
from repolens.tools.repositories import split_repository
from repolens.utils.logging import get_logger

logger = get_logger(__name__)

ANALYZE_ORGANIZATION_PARAMS = {
    "org": ParameterSpec("string", "Organization name"),
    "query": ParameterSpec("string", "Analysis query applied to every repository"),
    "limit": ParameterSpec("integer", "Number of repositories to analyze", optional=True, default=5),
}


def focus_query(query: str, full_name: str | None) -> str:
    return f"{query} (Focus on this repository: {full_name})"


class OrganizationAnalyzer:
    """
    Runs ``analyze_repository`` for the first ``limit`` repositories of an organization.

    At most ``max_concurrency`` analyses are in flight. Results come back in
    listing order whatever order the analyses finish in, and a failed
    repository only marks its own entry with ``{"error": ...}``.

    Example:
        >>> analyzer = OrganizationAnalyzer(registry, max_concurrency=3)
        >>> result = await analyzer.analyze_organization("acme", "Evaluate security", limit=3)
    """

    def __init__(self, registry: ToolRegistry, max_concurrency: int = 5) -> None:
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        self.registry = registry
        self.max_concurrency = max_concurrency

    def register(self, timeout: float | None = None) -> None:
        """Expose the bulk analysis as the ``analyze_organization`` tool."""

        async def analyze_organization(org: str, query: str, limit: int = 5) -> ToolResult:
            return await self.analyze_organization(org, query, limit)

        self.registry.tool(
            name="analyze_organization",
            description="Analyze the top repositories of a GitHub organization with one query",
            parameters=ANALYZE_ORGANIZATION_PARAMS,
            timeout=timeout,
        )(analyze_organization)

    async def analyze_organization(self, org: str, query: str, limit: int = 5) -> ToolResult:
        start = time.perf_counter()
        try:
            limit = int(limit)
        except (TypeError, ValueError):
            return ToolResult.fail(f"limit must be an integer, got {limit!r}")
        if limit < 1:
            return ToolResult.fail("limit must be at least 1")

        listing = await self.registry.execute_tool("list_org_repositories", {"org": org, "perPage": limit})
        if not listing.success:
            return listing

        repositories = listing.data["repositories"][:limit]
        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def analyze_one(repository: dict[str, Any]) -> dict[str, Any]:
            full_name = repository.get("fullName")
            try:
                owner, repo = split_repository(full_name or "")
            except ValidationError as e:
                return {"repository": repository, "analysis": {"error": str(e)}}
            async with semaphore:
                result = await self.registry.execute_tool(
                    "analyze_repository",
                    {"owner": owner, "repo": repo, "query": focus_query(query, full_name)},
                )
            if result.success:
                data = dict(result.data)
                return {"repository": repository, "analysis": {"content": data.pop("analysis", None), **data}}
            logger.warning("repository_analysis_failed", org=org, repository=full_name, error=result.error)
            return {"repository": repository, "analysis": {"error": result.error}}

        # gather keeps argument order regardless of completion order
        analyses = await asyncio.gather(*(analyze_one(r) for r in repositories))
        failed = sum(1 for a in analyses if "error" in a["analysis"])
        logger.info(
            "organization_analyzed",
            org=org,
            analyzed=len(analyses),
            failed=failed,
        )
        return ToolResult.ok(
            {
                "organization": org,
                "totalRepositories": listing.data["totalCount"],
                "analyzedRepositories": len(analyses),
                "failedRepositories": failed,
                "query": query,
                "analyses": list(analyses),
            },
            execution_time_ms=(time.perf_counter() - start) * 1000,
        )
