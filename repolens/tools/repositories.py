"""Repository tools backed by the GitHub MCP server and the AI service."""

from __future__ import annotations

import asyncio
from typing import Any

from repolens.errors import RepoLensError, ValidationError
from repolens.llm.analysis import AnalysisClient
from repolens.mcp.client import ProtocolClient
from repolens.mcp.normalize import as_items, normalize_response
from repolens.tools.base import ToolResult
from repolens.tools.models import project_issue, project_pull_request, project_repository
from repolens.tools.registry import ParameterSpec, ToolRegistry
from repolens.utils.logging import get_logger

logger = get_logger(__name__)

OWNER = ParameterSpec("string", "Repository owner")
REPO = ParameterSpec("string", "Repository name")
STATE = ParameterSpec("string", "State filter (open, closed, all)", optional=True, default="open")

ANALYZE_REPOSITORY_PARAMS = {
    "owner": OWNER,
    "repo": REPO,
    "query": ParameterSpec("string", "Analysis query"),
}
FILE_CONTENTS_PARAMS = {
    "owner": OWNER,
    "repo": REPO,
    "path": ParameterSpec("string", "File path"),
    "branch": ParameterSpec("string", "Branch name", optional=True, default="main"),
}
SEARCH_PARAMS = {
    "query": ParameterSpec("string", "Search query"),
    "page": ParameterSpec("integer", "Page number", optional=True, default=1),
    "perPage": ParameterSpec("integer", "Results per page", optional=True, default=30),
}
ISSUES_PARAMS = {"owner": OWNER, "repo": REPO, "state": STATE}
PULLS_PARAMS = {"owner": OWNER, "repo": REPO, "state": STATE}
STATS_PARAMS = {"owner": OWNER, "repo": REPO}

PULL_REQUEST_FOCUS = """

Please include in your analysis:
1. Current pull request status and workflow health
2. Latest pull request details and their security implications
3. PR review process effectiveness
4. Merge patterns and code integration practices
5. Any security concerns in recent PRs

Focus particularly on the latest PRs and their impact on the repository's security posture."""


def split_repository(full_name: str) -> tuple[str, str]:
    """
    Split ``owner/repo`` into its parts.

    Raises:
        ValidationError: not exactly two non-empty parts.
    """
    parts = (full_name or "").strip().split("/")
    if len(parts) != 2 or not all(p.strip() for p in parts):
        raise ValidationError('Repository must be in format "owner/repo"')
    return parts[0].strip(), parts[1].strip()


async def call_normalized(client: ProtocolClient, name: str, arguments: dict[str, Any]) -> Any:
    """Run one upstream tool and unwrap its envelope."""
    return normalize_response(await client.call_tool(name, arguments))


def pull_request_summary(open_pulls: list[Any], closed_pulls: list[Any]) -> dict[str, Any]:
    open_records = [p for p in open_pulls if isinstance(p, dict)]
    latest = (open_pulls or closed_pulls or [None])[0]
    return {
        "totalOpen": len(open_pulls),
        "totalRecentlyClosed": len(closed_pulls),
        "latestPR": latest,
        "prStatus": {
            "needsReview": sum(
                1 for p in open_records if not p.get("draft") and p.get("requested_reviewers")
            ),
            "drafts": sum(1 for p in open_records if p.get("draft")),
            "readyToMerge": sum(
                1 for p in open_records if not p.get("draft") and p.get("mergeable_state") == "clean"
            ),
        },
    }


async def search_repository_records(
    client: ProtocolClient,
    query: str,
    page: int = 1,
    per_page: int = 30,
    sort: str | None = None,
) -> tuple[int, list[Any]]:
    """Run upstream repository search; returns (total_count, raw items)."""
    arguments: dict[str, Any] = {"query": query, "page": page, "per_page": per_page}
    if sort:
        arguments["sort"] = sort
    payload = await call_normalized(client, "search_repositories", arguments)
    if isinstance(payload, list):
        return len(payload), payload
    if not isinstance(payload, dict):
        raise RepoLensError("Unexpected search response", details=str(payload)[:200])
    items = as_items(payload)
    total = payload.get("total_count")
    return (total if isinstance(total, int) else len(items)), items


def register_repository_tools(
    registry: ToolRegistry,
    github: ProtocolClient,
    analyst: AnalysisClient,
) -> None:
    """Register the single-repository tools on ``registry``."""

    @registry.tool(
        name="analyze_repository",
        description="Analyze a GitHub repository with natural language queries",
        parameters=ANALYZE_REPOSITORY_PARAMS,
    )
    async def analyze_repository(owner: str, repo: str, query: str) -> ToolResult:
        try:
            commits, issues, open_pulls, closed_pulls = await asyncio.gather(
                call_normalized(github, "list_commits", {"owner": owner, "repo": repo, "per_page": 10}),
                call_normalized(github, "list_issues", {"owner": owner, "repo": repo, "state": "open", "per_page": 10}),
                call_normalized(github, "list_pull_requests", {"owner": owner, "repo": repo, "state": "open", "per_page": 10}),
                call_normalized(github, "list_pull_requests", {"owner": owner, "repo": repo, "state": "closed", "per_page": 5}),
            )
            open_list, closed_list = as_items(open_pulls), as_items(closed_pulls)
            summary = pull_request_summary(open_list, closed_list)
            context = {
                "recentCommits": as_items(commits),
                "openIssues": as_items(issues),
                "openPullRequests": open_list,
                "recentlyClosedPullRequests": closed_list,
                "pullRequestSummary": summary,
            }
            completion = await analyst.analyze_repository(context, query + PULL_REQUEST_FOCUS)
        except RepoLensError as e:
            logger.warning("analyze_repository_failed", owner=owner, repo=repo, error=str(e))
            return ToolResult.fail(f"Error analyzing repository: {e}")
        return ToolResult.ok({
            "analysis": completion.content,
            "context": context,
            "pullRequestHighlights": {"latestPR": summary["latestPR"], "summary": summary},
            "modelInfo": completion.model_info(),
        })

    @registry.tool(
        name="get_file_contents",
        description="Get contents of a file from a repository",
        parameters=FILE_CONTENTS_PARAMS,
    )
    async def get_file_contents(owner: str, repo: str, path: str, branch: str = "main") -> ToolResult:
        try:
            data = await call_normalized(
                github, "get_file_contents", {"owner": owner, "repo": repo, "path": path, "branch": branch}
            )
        except RepoLensError as e:
            return ToolResult.fail(f"Error retrieving file: {e}")
        return ToolResult.ok(data)

    @registry.tool(
        name="search_repositories",
        description="Search for repositories on GitHub",
        parameters=SEARCH_PARAMS,
    )
    async def search_repositories(query: str, page: int = 1, perPage: int = 30) -> ToolResult:
        try:
            total, items = await search_repository_records(github, query, page=page, per_page=perPage)
        except RepoLensError as e:
            return ToolResult.fail(f"Error searching repositories: {e}")
        return ToolResult.ok({
            "totalCount": total,
            "repositories": [project_repository(item) for item in items],
        })

    @registry.tool(
        name="list_issues",
        description="List issues for a repository",
        parameters=ISSUES_PARAMS,
    )
    async def list_issues(owner: str, repo: str, state: str = "open") -> ToolResult:
        try:
            payload = await call_normalized(
                github, "list_issues", {"owner": owner, "repo": repo, "state": state, "per_page": 50}
            )
        except RepoLensError as e:
            return ToolResult.fail(f"Error listing issues: {e}")
        issues = [project_issue(i) for i in as_items(payload)]
        return ToolResult.ok({"state": state, "count": len(issues), "issues": issues})

    @registry.tool(
        name="list_pull_requests",
        description="List pull requests for a repository",
        parameters=PULLS_PARAMS,
    )
    async def list_pull_requests(owner: str, repo: str, state: str = "open") -> ToolResult:
        try:
            payload = await call_normalized(
                github, "list_pull_requests", {"owner": owner, "repo": repo, "state": state, "per_page": 50}
            )
        except RepoLensError as e:
            return ToolResult.fail(f"Error listing pull requests: {e}")
        pulls = [project_pull_request(p) for p in as_items(payload)]
        return ToolResult.ok({"state": state, "count": len(pulls), "pullRequests": pulls})

    @registry.tool(
        name="get_repo_stats",
        description="Get comprehensive statistics for a repository",
        parameters=STATS_PARAMS,
    )
    async def get_repo_stats(owner: str, repo: str) -> ToolResult:
        try:
            commits, issues, pulls = await asyncio.gather(
                call_normalized(github, "list_commits", {"owner": owner, "repo": repo, "per_page": 10}),
                call_normalized(github, "list_issues", {"owner": owner, "repo": repo, "state": "all", "per_page": 10}),
                call_normalized(github, "list_pull_requests", {"owner": owner, "repo": repo, "state": "all", "per_page": 10}),
            )
        except RepoLensError as e:
            return ToolResult.fail(f"Error getting repository stats: {e}")
        return ToolResult.ok({
            "commits": as_items(commits),
            "issues": as_items(issues),
            "pullRequests": as_items(pulls),
        })
