"""Organization tools: repository listing and derived organization metrics."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Callable

from repolens.errors import RepoLensError
from repolens.mcp.client import ProtocolClient
from repolens.tools.base import ToolResult
from repolens.tools.models import project_repository
from repolens.tools.registry import ParameterSpec, ToolRegistry
from repolens.tools.repositories import search_repository_records
from repolens.utils.logging import get_logger

logger = get_logger(__name__)

ORG = ParameterSpec("string", "Organization name")

LIST_ORG_REPOSITORIES_PARAMS = {
    "org": ORG,
    "type": ParameterSpec(
        "string", "Repository type (all, public, private, forks, sources, member)", optional=True, default="all"
    ),
    "sort": ParameterSpec(
        "string", "Sort order (created, updated, pushed, full_name)", optional=True, default="updated"
    ),
    "perPage": ParameterSpec("integer", "Results per page", optional=True, default=30),
}
ORGANIZATION_PARAMS = {"org": ORG}

# search qualifiers per repository type; "member" has no search equivalent
_TYPE_QUALIFIERS = {
    "all": "fork:true",
    "public": "is:public",
    "private": "is:private",
    "forks": "fork:only",
    "sources": "fork:false",
}

RECENT_ACTIVITY_WINDOW = timedelta(days=30)
ORGANIZATION_SAMPLE_SIZE = 100
PREVIEW_SIZE = 10


def _parse_timestamp(value: Any) -> datetime | None:
    if not isinstance(value, str) or not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def compute_organization_metrics(repositories: list[dict[str, Any]], now: datetime) -> dict[str, Any]:
    """
    Reduce a list of repository summaries into organization metrics.

    The most starred repository is the first one holding the maximum star
    count. Recent activity counts repositories pushed within the last 30 days
    of ``now``.
    """
    cutoff = now - RECENT_ACTIVITY_WINDOW
    total_stars = 0
    total_forks = 0
    languages: list[str] = []
    top_languages: dict[str, int] = {}
    most_starred: dict[str, Any] | None = None
    recent = 0

    for repo in repositories:
        stars = repo.get("stars") or 0
        total_stars += stars
        total_forks += repo.get("forks") or 0
        language = repo.get("language")
        if language:
            if language not in top_languages:
                languages.append(language)
            top_languages[language] = top_languages.get(language, 0) + 1
        if most_starred is None or stars > (most_starred.get("stars") or 0):
            most_starred = repo
        pushed = _parse_timestamp(repo.get("pushedAt"))
        if pushed is not None and pushed > cutoff:
            recent += 1

    return {
        "totalRepositories": len(repositories),
        "totalStars": total_stars,
        "totalForks": total_forks,
        "languages": languages,
        "mostStarredRepo": most_starred,
        "recentActivityCount": recent,
        "topLanguages": top_languages,
    }


async def fetch_org_repositories(
    client: ProtocolClient,
    org: str,
    type: str = "all",
    sort: str = "updated",
    per_page: int = 30,
) -> dict[str, Any]:
    """List an organization's repositories as ``{totalCount, organization, repositories}``."""
    query = f"org:{org}"
    if qualifier := _TYPE_QUALIFIERS.get(type):
        query = f"{query} {qualifier}"
    total, items = await search_repository_records(client, query, per_page=per_page, sort=sort)
    return {
        "totalCount": total,
        "organization": org,
        "repositories": [project_repository(item, org_fields=True) for item in items[:per_page]],
    }


def register_organization_tools(
    registry: ToolRegistry,
    github: ProtocolClient,
    clock: Callable[[], datetime] | None = None,
) -> None:
    """Register the organization listing and metrics tools on ``registry``."""
    clock = clock or (lambda: datetime.now(timezone.utc))

    @registry.tool(
        name="list_org_repositories",
        description="List all repositories for a GitHub organization",
        parameters=LIST_ORG_REPOSITORIES_PARAMS,
    )
    async def list_org_repositories(
        org: str, type: str = "all", sort: str = "updated", perPage: int = 30
    ) -> ToolResult:
        try:
            data = await fetch_org_repositories(github, org, type=type, sort=sort, per_page=perPage)
        except RepoLensError as e:
            return ToolResult.fail(f"Error listing organization repositories: {e}")
        return ToolResult.ok(data)

    @registry.tool(
        name="get_organization",
        description="Get information about a GitHub organization",
        parameters=ORGANIZATION_PARAMS,
    )
    async def get_organization(org: str) -> ToolResult:
        try:
            listing = await fetch_org_repositories(github, org, per_page=ORGANIZATION_SAMPLE_SIZE)
        except RepoLensError as e:
            logger.warning("get_organization_failed", org=org, error=str(e))
            return ToolResult.fail(f"Error getting organization info: {e}")
        repos = listing["repositories"]
        return ToolResult.ok({
            "organization": org,
            "metrics": compute_organization_metrics(repos, clock()),
            "repositories": repos[:PREVIEW_SIZE],
            "totalRepositories": len(repos),
        })
