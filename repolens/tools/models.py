"""Canonical projections of upstream repository, issue and pull request records."""

from __future__ import annotations

from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, Field


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


class OwnerSummary(_CamelModel):
    login: str | None = None
    avatar_url: str | None = Field(default=None, alias="avatarUrl")
    type: str | None = None


class RepositorySummary(_CamelModel):
    """Repository shape emitted by every repository-listing tool."""

    id: int | str | None = None
    name: str | None = None
    full_name: str | None = Field(default=None, alias="fullName")
    description: str | None = None
    stars: int | None = None
    forks: int | None = None
    language: str | None = None
    topics: list[str] = Field(default_factory=list)
    html_url: str | None = Field(default=None, alias="htmlUrl")
    created_at: str | None = Field(default=None, alias="createdAt")
    updated_at: str | None = Field(default=None, alias="updatedAt")
    owner: OwnerSummary = Field(default_factory=OwnerSummary)


class OrgRepositorySummary(RepositorySummary):
    """Organization listing entry; adds push time, visibility and default branch."""

    pushed_at: str | None = Field(default=None, alias="pushedAt")
    is_private: bool | None = Field(default=None, alias="isPrivate")
    default_branch: str | None = Field(default=None, alias="defaultBranch")


class IssueSummary(_CamelModel):
    number: int | None = None
    title: str | None = None
    state: str | None = None
    author: str | None = None
    labels: list[str] = Field(default_factory=list)
    comments: int | None = None
    html_url: str | None = Field(default=None, alias="htmlUrl")
    created_at: str | None = Field(default=None, alias="createdAt")
    updated_at: str | None = Field(default=None, alias="updatedAt")
    closed_at: str | None = Field(default=None, alias="closedAt")


class PullRequestSummary(IssueSummary):
    draft: bool = False
    merged_at: str | None = Field(default=None, alias="mergedAt")
    head_ref: str | None = Field(default=None, alias="headRef")
    base_ref: str | None = Field(default=None, alias="baseRef")
    requested_reviewers: list[str] = Field(default_factory=list, alias="requestedReviewers")


def _record(raw: Any) -> Mapping[str, Any]:
    return raw if isinstance(raw, Mapping) else {}


def _int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _str(value: Any) -> str | None:
    if value is None:
        return None
    return value if isinstance(value, str) else str(value)


def _strings(values: Any, key: str | None = None) -> list[str]:
    if not isinstance(values, list):
        return []
    out = []
    for v in values:
        if key is not None:
            v = _record(v).get(key)
        if v is not None:
            out.append(str(v))
    return out


def project_repository(raw: Any, org_fields: bool = False) -> dict[str, Any]:
    """Map an upstream repository record to the canonical camelCase shape."""
    r = _record(raw)
    owner = _record(r.get("owner"))
    fields: dict[str, Any] = {
        "id": r.get("id") if isinstance(r.get("id"), (int, str)) else None,
        "name": _str(r.get("name")),
        "full_name": _str(r.get("full_name")),
        "description": _str(r.get("description")),
        "stars": _int(r.get("stargazers_count")),
        "forks": _int(r.get("forks_count")),
        "language": _str(r.get("language")),
        "topics": _strings(r.get("topics")),
        "html_url": _str(r.get("html_url")),
        "created_at": _str(r.get("created_at")),
        "updated_at": _str(r.get("updated_at")),
        "owner": OwnerSummary(
            login=_str(owner.get("login")),
            avatar_url=_str(owner.get("avatar_url")),
            type=_str(owner.get("type")),
        ),
    }
    if not org_fields:
        return RepositorySummary(**fields).to_dict()
    private = r.get("private")
    return OrgRepositorySummary(
        **fields,
        pushed_at=_str(r.get("pushed_at")),
        is_private=private if isinstance(private, bool) else None,
        default_branch=_str(r.get("default_branch")),
    ).to_dict()


def _issue_fields(r: Mapping[str, Any]) -> dict[str, Any]:
    return {
        "number": _int(r.get("number")),
        "title": _str(r.get("title")),
        "state": _str(r.get("state")),
        "author": _str(_record(r.get("user")).get("login")),
        "labels": _strings(r.get("labels"), key="name"),
        "comments": _int(r.get("comments")),
        "html_url": _str(r.get("html_url")),
        "created_at": _str(r.get("created_at")),
        "updated_at": _str(r.get("updated_at")),
        "closed_at": _str(r.get("closed_at")),
    }


def project_issue(raw: Any) -> dict[str, Any]:
    return IssueSummary(**_issue_fields(_record(raw))).to_dict()


def project_pull_request(raw: Any) -> dict[str, Any]:
    r = _record(raw)
    return PullRequestSummary(
        **_issue_fields(r),
        draft=bool(r.get("draft")),
        merged_at=_str(r.get("merged_at")),
        head_ref=_str(_record(r.get("head")).get("ref")),
        base_ref=_str(_record(r.get("base")).get("ref")),
        requested_reviewers=_strings(r.get("requested_reviewers"), key="login"),
    ).to_dict()
