"""FastAPI front door mapping HTTP routes onto tool executions."""

from __future__ import annotations

from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException, Request
from pydantic import BaseModel, Field

from repolens.errors import ValidationError
from repolens.mcp.adapter import MCPAdapter
from repolens.service import RepoLensService, create_service
from repolens.tools.repositories import split_repository
from repolens.utils.config import load_config
from repolens.utils.logging import get_logger, setup_logging
from repolens.utils.monitoring import start_metrics_server

logger = get_logger(__name__)

_project_root = Path(__file__).resolve().parent.parent.parent


class ExecuteRequest(BaseModel):
    tool: str | None = None
    parameters: dict[str, Any] = Field(default_factory=dict)


class QueryRequest(BaseModel):
    query: str | None = None
    repository: str | None = None


class AnalyzeOrganizationRequest(BaseModel):
    query: str | None = None
    limit: int = 5


def create_app(service: RepoLensService | None = None) -> FastAPI:
    """
    Build the API. Without ``service`` one is created from config on startup
    and closed on shutdown.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        owned = service is None
        app.state.service = service or create_service()
        try:
            yield
        finally:
            if owned:
                await app.state.service.aclose()

    app = FastAPI(title="repolens", version="0.1.0", lifespan=lifespan)

    def _service(request: Request) -> RepoLensService:
        return request.app.state.service

    @app.get("/api/health")
    async def health() -> dict[str, str]:
        return {"status": "OK", "message": "repolens analysis server is running"}

    @app.get("/api/tools")
    async def list_tools(request: Request) -> dict[str, Any]:
        return {"success": True, "tools": _service(request).list_tools()}

    @app.post("/api/execute")
    async def execute(req: ExecuteRequest, request: Request) -> dict[str, Any]:
        if not req.tool:
            raise HTTPException(status_code=400, detail="Tool name is required")
        result = await _service(request).execute(req.tool, req.parameters)
        return result.to_payload()

    @app.post("/api/query")
    async def query(req: QueryRequest, request: Request) -> dict[str, Any]:
        if not req.query or not req.repository:
            raise HTTPException(status_code=400, detail="Query and repository are required")
        try:
            owner, repo = split_repository(req.repository)
        except ValidationError as e:
            raise HTTPException(status_code=400, detail=str(e))
        result = await _service(request).execute(
            "analyze_repository", {"owner": owner, "repo": repo, "query": req.query}
        )
        return result.to_payload()

    @app.get("/api/repository/{owner}/{repo}/stats")
    async def repo_stats(owner: str, repo: str, request: Request) -> dict[str, Any]:
        result = await _service(request).execute("get_repo_stats", {"owner": owner, "repo": repo})
        return result.to_payload()

    @app.get("/api/search/repositories")
    async def search_repositories(
        request: Request, q: str | None = None, page: int = 1, per_page: int = 30
    ) -> dict[str, Any]:
        if not q:
            raise HTTPException(status_code=400, detail='Query parameter "q" is required')
        result = await _service(request).execute(
            "search_repositories", {"query": q, "page": page, "perPage": per_page}
        )
        return result.to_payload()

    @app.get("/api/repository/{owner}/{repo}/contents/{path:path}")
    async def file_contents(
        owner: str, repo: str, path: str, request: Request, branch: str | None = None
    ) -> dict[str, Any]:
        result = await _service(request).execute(
            "get_file_contents", {"owner": owner, "repo": repo, "path": path, "branch": branch}
        )
        return result.to_payload()

    @app.get("/api/repository/{owner}/{repo}/issues")
    async def issues(owner: str, repo: str, request: Request, state: str = "open") -> dict[str, Any]:
        result = await _service(request).execute("list_issues", {"owner": owner, "repo": repo, "state": state})
        return result.to_payload()

    @app.get("/api/repository/{owner}/{repo}/pulls")
    async def pulls(owner: str, repo: str, request: Request, state: str = "open") -> dict[str, Any]:
        result = await _service(request).execute(
            "list_pull_requests", {"owner": owner, "repo": repo, "state": state}
        )
        return result.to_payload()

    @app.get("/api/organization/{org}")
    async def organization(org: str, request: Request) -> dict[str, Any]:
        result = await _service(request).execute("get_organization", {"org": org})
        return result.to_payload()

    @app.get("/api/organization/{org}/repositories")
    async def organization_repositories(
        org: str, request: Request, type: str = "all", sort: str = "updated", per_page: int = 30
    ) -> dict[str, Any]:
        result = await _service(request).execute(
            "list_org_repositories", {"org": org, "type": type, "sort": sort, "perPage": per_page}
        )
        return result.to_payload()

    @app.post("/api/organization/{org}/analyze")
    async def analyze_organization(org: str, req: AnalyzeOrganizationRequest, request: Request) -> dict[str, Any]:
        if not req.query:
            raise HTTPException(status_code=400, detail="Analysis query is required")
        result = await _service(request).execute(
            "analyze_organization", {"org": org, "query": req.query, "limit": req.limit}
        )
        return result.to_payload()

    @app.post("/mcp")
    async def mcp(body: dict[str, Any], request: Request) -> dict[str, Any]:
        return await MCPAdapter(_service(request).registry).handle_mcp_request(body)

    return app


def start_metrics(config: dict[str, Any]) -> None:
    """Start the Prometheus scrape endpoint when ``metrics.port`` is configured."""
    port = config.get("metrics", {}).get("port")
    if port is None:
        return
    try:
        start_metrics_server(port)
        logger.info("prometheus_metrics_started", port=port)
    except OSError as e:
        logger.warning("prometheus_metrics_failed", port=port, error=str(e))


def run_api(host: str | None = None, port: int | None = None) -> None:
    """Run the FastAPI app with uvicorn. Entry point for the repolens-api script."""
    import uvicorn

    load_dotenv(_project_root / ".env")
    config = load_config()
    setup_logging(level=config["logging"]["level"], json_logs=bool(config["logging"]["json"]))
    start_metrics(config)
    api = config["api"]
    uvicorn.run(create_app(), host=host or api["host"], port=port or api["port"])
