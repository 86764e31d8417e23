"""Unit tests for the repository tools against a fake GitHub MCP server."""

import pytest

from conftest import FakeAnalyst, FakeGitHub, repo_record
from repolens.errors import UpstreamServiceError, ValidationError
from repolens.service import build_registry
from repolens.tools.repositories import split_repository


def _registry(github, config, analyst=None):
    registry, _ = build_registry(github, analyst or FakeAnalyst(), config)
    return registry


def test_registry_lists_all_tools(config):
    names = _registry(FakeGitHub(), config).names()
    assert names == [
        "analyze_repository",
        "get_file_contents",
        "search_repositories",
        "list_issues",
        "list_pull_requests",
        "get_repo_stats",
        "list_org_repositories",
        "get_organization",
        "analyze_organization",
    ]


def test_split_repository():
    assert split_repository("acme/widget") == ("acme", "widget")
    for bad in ["acme", "acme/", "/widget", "a/b/c", ""]:
        with pytest.raises(ValidationError):
            split_repository(bad)


@pytest.mark.asyncio
async def test_repo_stats_with_empty_upstream(config):
    github = FakeGitHub({"list_commits": [], "list_issues": [], "list_pull_requests": []})
    r = await _registry(github, config).execute_tool("get_repo_stats", {"owner": "acme", "repo": "widget"})
    assert r.to_payload() == {"success": True, "data": {"commits": [], "issues": [], "pullRequests": []}}
    assert {name for name, _ in github.calls} == {"list_commits", "list_issues", "list_pull_requests"}
    assert github.called("list_issues")[0]["state"] == "all"


@pytest.mark.asyncio
async def test_search_projects_repositories(config):
    raw = repo_record("acme/widget", stars=7)
    del raw["topics"]
    del raw["owner"]
    github = FakeGitHub({"search_repositories": {"total_count": 41, "items": [raw]}})
    r = await _registry(github, config).execute_tool("search_repositories", {"query": "widget"})
    assert r.success is True
    assert r.data["totalCount"] == 41
    repo = r.data["repositories"][0]
    assert repo["fullName"] == "acme/widget"
    assert repo["stars"] == 7
    assert repo["topics"] == []
    assert repo["owner"] == {"login": None, "avatarUrl": None, "type": None}
    assert "pushedAt" not in repo
    assert github.called("search_repositories")[0] == {"query": "widget", "page": 1, "per_page": 30}


@pytest.mark.asyncio
async def test_search_page_size_maps_to_upstream(config):
    github = FakeGitHub({"search_repositories": {"total_count": 0, "items": []}})
    r = await _registry(github, config).execute_tool(
        "search_repositories", {"query": "widget", "page": 2, "perPage": 10}
    )
    assert r.success is True
    assert github.called("search_repositories")[0] == {"query": "widget", "page": 2, "per_page": 10}


@pytest.mark.asyncio
async def test_search_with_text_response_fails(config):
    github = FakeGitHub({"search_repositories": "Validation Failed"})
    r = await _registry(github, config).execute_tool("search_repositories", {"query": "x"})
    assert r.success is False
    assert r.error.startswith("Error searching repositories")


@pytest.mark.asyncio
async def test_list_issues_defaults_to_open(config):
    issue = {
        "number": 12,
        "title": "Crash on start",
        "state": "open",
        "user": {"login": "dev"},
        "labels": [{"name": "bug"}],
        "comments": 3,
    }
    github = FakeGitHub({"list_issues": [issue]})
    r = await _registry(github, config).execute_tool("list_issues", {"owner": "acme", "repo": "widget"})
    assert r.data["state"] == "open"
    assert r.data["count"] == 1
    assert r.data["issues"][0]["author"] == "dev"
    assert r.data["issues"][0]["labels"] == ["bug"]
    assert r.data["issues"][0]["closedAt"] is None
    assert github.called("list_issues")[0]["state"] == "open"


@pytest.mark.asyncio
async def test_list_pull_requests_projection(config):
    pr = {
        "number": 5,
        "title": "Add feature",
        "state": "open",
        "draft": True,
        "head": {"ref": "feature"},
        "base": {"ref": "main"},
        "requested_reviewers": [{"login": "alice"}],
    }
    github = FakeGitHub({"list_pull_requests": {"items": [pr]}})
    r = await _registry(github, config).execute_tool(
        "list_pull_requests", {"owner": "acme", "repo": "widget", "state": "all"}
    )
    projected = r.data["pullRequests"][0]
    assert projected["draft"] is True
    assert projected["headRef"] == "feature"
    assert projected["requestedReviewers"] == ["alice"]


@pytest.mark.asyncio
async def test_file_contents_default_branch(config):
    github = FakeGitHub({"get_file_contents": "print('hi')\n"})
    r = await _registry(github, config).execute_tool(
        "get_file_contents", {"owner": "acme", "repo": "widget", "path": "main.py"}
    )
    assert r.data == "print('hi')\n"
    assert github.called("get_file_contents")[0]["branch"] == "main"


@pytest.mark.asyncio
async def test_analyze_repository_builds_context(config):
    open_prs = [
        {"number": 3, "draft": False, "requested_reviewers": [{"login": "bob"}], "mergeable_state": "clean"},
        {"number": 2, "draft": True},
    ]
    github = FakeGitHub({
        "list_commits": [{"sha": "abc"}],
        "list_issues": [],
        "list_pull_requests": lambda args: open_prs if args["state"] == "open" else [{"number": 1}],
    })
    analyst = FakeAnalyst()
    r = await _registry(github, config, analyst).execute_tool(
        "analyze_repository", {"owner": "acme", "repo": "widget", "query": "Is it secure?"}
    )
    assert r.success is True
    summary = r.data["pullRequestHighlights"]["summary"]
    assert summary["totalOpen"] == 2
    assert summary["totalRecentlyClosed"] == 1
    assert summary["latestPR"]["number"] == 3
    assert summary["prStatus"] == {"needsReview": 1, "drafts": 1, "readyToMerge": 1}
    assert r.data["modelInfo"]["totalTokens"] == 15
    context, query = analyst.calls[0]
    assert context["recentCommits"] == [{"sha": "abc"}]
    assert query.startswith("Is it secure?")
    assert "pull request status" in query


@pytest.mark.asyncio
async def test_upstream_failure_returned_as_result(config, upstream_error):
    github = FakeGitHub({"list_issues": upstream_error})
    r = await _registry(github, config).execute_tool("list_issues", {"owner": "acme", "repo": "widget"})
    assert r.success is False
    assert r.error == "Error listing issues: connection reset by peer"


@pytest.mark.asyncio
async def test_unexpected_failure_wrapped_by_executor(config):
    github = FakeGitHub({"list_commits": RuntimeError("boom")})
    r = await _registry(github, config).execute_tool("get_repo_stats", {"owner": "acme", "repo": "widget"})
    assert r.to_payload() == {"success": False, "error": "Error executing tool 'get_repo_stats': boom"}
