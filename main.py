"""FastAPI app for the agency hub — projects enriched with GitHub and Cloudflare data."""

from __future__ import annotations

import logging
import os
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import Depends, FastAPI, Header, HTTPException, Query, Request, Response
from fastapi.responses import JSONResponse

from aggregator import fetch_org_projects, fetch_project_detail, resolve_access
from cf_client import CloudflareClient, status_badge
from config import Settings
from errors import InvalidProjectError, ProjectNotFoundError, StoreError
from gh_client import GitHubClient
from logging_setup import setup_logging
from models import (
    AccessScope,
    FeedItem,
    MergedProject,
    ProgressUpdate,
    ProgressUpdateCreate,
    Project,
    ProjectCreate,
    ProjectDetail,
    ProjectUpdate,
    RefreshResult,
    RemoteRepository,
)
from store import InMemoryProjectStore, ProjectStore

logger = logging.getLogger(__name__)


class ProjectListCache:
    """Per-scope TTL cache for the enriched project list."""

    def __init__(self, ttl: float):
        self.ttl = ttl
        self._entries: dict[AccessScope, tuple[float, list[MergedProject]]] = {}

    def get(self, scope: AccessScope) -> list[MergedProject] | None:
        entry = self._entries.get(scope)
        if entry and (time.monotonic() - entry[0]) < self.ttl:
            return entry[1]
        return None

    def put(self, scope: AccessScope, projects: list[MergedProject]) -> None:
        self._entries[scope] = (time.monotonic(), projects)

    def clear(self) -> int:
        count = len(self._entries)
        self._entries.clear()
        return count


def create_app(
    settings: Settings | None = None,
    store: ProjectStore | None = None,
    github: GitHubClient | None = None,
    cloudflare: CloudflareClient | None = None,
) -> FastAPI:
    """Build the app. Anything not passed in is created from settings at startup."""
    settings = settings or Settings.from_env()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Startup: logging, store and connectors. Shutdown: close owned HTTP clients."""
        setup_logging(settings.log_format, settings.log_level)
        owned = []
        if app.state.store is None:
            if settings.data_file:
                app.state.store = InMemoryProjectStore.from_file(settings.data_file)
            else:
                app.state.store = InMemoryProjectStore()
        if app.state.github is None:
            app.state.github = GitHubClient(settings)
            owned.append(app.state.github)
        if app.state.cloudflare is None:
            app.state.cloudflare = CloudflareClient(settings)
            owned.append(app.state.cloudflare)
        if not settings.github_token:
            logger.warning("GITHUB_TOKEN not set; GitHub requests are unauthenticated and rate limited")
        logger.info("Hub ready for GitHub org %s", settings.github_org)
        yield
        for client in owned:
            await client.aclose()

    app = FastAPI(
        title="Agency Hub",
        description="Client portal API — projects, GitHub activity and deployments",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.store = store
    app.state.github = github
    app.state.cloudflare = cloudflare
    app.state.cache = ProjectListCache(settings.cache_ttl)
    app.state.last_refresh = ""

    _register_error_handlers(app)
    _register_routes(app)
    return app


def _register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(ProjectNotFoundError)
    async def _not_found(request: Request, exc: ProjectNotFoundError):
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(InvalidProjectError)
    async def _invalid(request: Request, exc: InvalidProjectError):
        return JSONResponse(status_code=422, content={"detail": str(exc)})

    @app.exception_handler(StoreError)
    async def _store_failed(request: Request, exc: StoreError):
        logger.error("Store error on %s %s: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=500, content={"detail": "Project store unavailable"})


# --- Dependencies ---


async def get_scope(request: Request, x_user_id: str | None = Header(default=None)) -> AccessScope:
    return await resolve_access(request.app.state.store, x_user_id)


async def require_admin(scope: AccessScope = Depends(get_scope)) -> AccessScope:
    if not scope.is_admin:
        raise HTTPException(status_code=403, detail="Admin access required")
    return scope


async def require_member(scope: AccessScope = Depends(get_scope)) -> AccessScope:
    if not scope.is_admin and not scope.project_ids:
        raise HTTPException(status_code=403, detail="Sign in to refresh")
    return scope


def _invalidate(request: Request) -> None:
    request.app.state.cache.clear()


# --- API Endpoints ---


def _register_routes(app: FastAPI) -> None:
    @app.get("/api/projects", response_model=list[MergedProject])
    async def list_projects(request: Request, scope: AccessScope = Depends(get_scope)):
        """Return the caller's projects with GitHub enrichment."""
        state = request.app.state
        cached = state.cache.get(scope)
        if cached is not None:
            return cached
        projects = await fetch_org_projects(state.store, state.github, scope)
        state.cache.put(scope, projects)
        return projects

    @app.get("/api/projects/{project_id}", response_model=ProjectDetail)
    async def get_project(
        project_id: int,
        request: Request,
        branch: str | None = None,
        scope: AccessScope = Depends(get_scope),
    ):
        """Return one project's page data for a branch."""
        state = request.app.state
        return await fetch_project_detail(
            state.store,
            state.github,
            state.cloudflare,
            project_id,
            scope,
            branch=branch,
            feed_limit=state.settings.feed_limit,
            team_label=state.settings.team_label,
        )

    @app.get("/api/projects/{project_id}/feed", response_model=list[FeedItem])
    async def get_feed(
        project_id: int,
        request: Request,
        branch: str | None = None,
        limit: int | None = Query(default=None, ge=0),
        scope: AccessScope = Depends(get_scope),
    ):
        """Return the merged commit/update feed, newest first."""
        state = request.app.state
        detail = await fetch_project_detail(
            state.store,
            state.github,
            state.cloudflare,
            project_id,
            scope,
            branch=branch,
            feed_limit=state.settings.feed_limit if limit is None else limit,
            team_label=state.settings.team_label,
        )
        return detail.feed

    @app.get("/api/projects/{project_id}/deployment")
    async def get_deployment(project_id: int, request: Request, scope: AccessScope = Depends(get_scope)):
        """Return the latest Pages deployment for the project's preview URL, if any."""
        if not scope.allows(project_id):
            raise ProjectNotFoundError(project_id)
        state = request.app.state
        project = await state.store.get_project(project_id)
        deployment = await state.cloudflare.get_status_for_url(project.preview_url)
        if deployment is None:
            return {"deployment": None}
        label, symbol = status_badge(deployment.state)
        return {"deployment": deployment.model_dump(mode="json"), "label": label, "symbol": symbol}

    @app.post("/api/projects", response_model=Project, status_code=201)
    async def create_project(data: ProjectCreate, request: Request, scope: AccessScope = Depends(require_admin)):
        project = await request.app.state.store.create_project(data)
        _invalidate(request)
        return project

    @app.patch("/api/projects/{project_id}", response_model=Project)
    async def update_project(
        project_id: int,
        data: ProjectUpdate,
        request: Request,
        scope: AccessScope = Depends(require_admin),
    ):
        project = await request.app.state.store.update_project(project_id, data)
        _invalidate(request)
        return project

    @app.delete("/api/projects/{project_id}", status_code=204)
    async def delete_project(project_id: int, request: Request, scope: AccessScope = Depends(require_admin)):
        await request.app.state.store.delete_project(project_id)
        _invalidate(request)
        return Response(status_code=204)

    @app.post("/api/projects/{project_id}/updates", response_model=ProgressUpdate, status_code=201)
    async def post_update(
        project_id: int,
        data: ProgressUpdateCreate,
        request: Request,
        scope: AccessScope = Depends(require_admin),
    ):
        """Post a manual progress update to the project's feed."""
        return await request.app.state.store.create_progress_update(project_id, data)

    @app.get("/api/repos", response_model=list[RemoteRepository])
    async def list_repos(request: Request, scope: AccessScope = Depends(require_admin)):
        """Return the organization's repositories, most recently pushed first."""
        return await request.app.state.github.list_org_repositories()

    @app.post("/api/refresh", response_model=RefreshResult)
    async def refresh(request: Request, scope: AccessScope = Depends(require_member)):
        """Drop cached project lists so the next read refetches from GitHub."""
        cleared = request.app.state.cache.clear()
        request.app.state.last_refresh = datetime.now(timezone.utc).isoformat()
        return RefreshResult(cleared_entries=cleared, refreshed_at=request.app.state.last_refresh)

    @app.get("/health")
    async def health(request: Request):
        """Health check."""
        state = request.app.state
        return {
            "status": "ok",
            "github_org": state.settings.github_org,
            "github_authenticated": bool(state.settings.github_token),
            "cloudflare_configured": state.settings.has_cloudflare_credentials,
            "last_refresh": state.last_refresh,
        }


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=os.getenv("HOST", "127.0.0.1"), port=int(os.getenv("PORT", "8000")))
