"""Project persistence boundary.

`ProjectStore` is the interface the aggregator and API talk to. The bundled
`InMemoryProjectStore` keeps records in process memory, optionally seeded
from a JSON file; a database-backed store implements the same methods.
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path

from pydantic import ValidationError

from errors import InvalidProjectError, ProjectNotFoundError, StoreError
from models import (
    Client,
    ProgressUpdate,
    ProgressUpdateCreate,
    Project,
    ProjectCreate,
    ProjectUpdate,
    TeamMember,
)

logger = logging.getLogger(__name__)

# Project fields a PATCH may set to null.
_CLEARABLE_FIELDS = {"description", "repository_name", "preview_url"}


class ProjectStore(ABC):
    @abstractmethod
    async def list_projects(self) -> list[Project]:
        """All projects, newest first, each with its client attached."""

    @abstractmethod
    async def get_project(self, project_id: int) -> Project:
        """Raises ProjectNotFoundError if there is no such project."""

    @abstractmethod
    async def list_progress_updates(self, project_id: int) -> list[ProgressUpdate]: ...

    @abstractmethod
    async def create_project(self, data: ProjectCreate) -> Project: ...

    @abstractmethod
    async def update_project(self, project_id: int, data: ProjectUpdate) -> Project: ...

    @abstractmethod
    async def delete_project(self, project_id: int) -> None:
        """Delete a project and its progress updates."""

    @abstractmethod
    async def create_progress_update(self, project_id: int, data: ProgressUpdateCreate) -> ProgressUpdate: ...

    @abstractmethod
    async def get_team_member(self, user_id: str) -> TeamMember | None: ...

    @abstractmethod
    async def is_admin_user(self, user_id: str) -> bool: ...


def _now() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryProjectStore(ProjectStore):
    def __init__(
        self,
        clients: list[Client] | None = None,
        projects: list[Project] | None = None,
        progress_updates: list[ProgressUpdate] | None = None,
        team_members: list[TeamMember] | None = None,
        admin_users: list[str] | None = None,
    ):
        self._clients = {c.client_id: c for c in clients or []}
        self._projects = {p.project_id: p.model_copy(update={"client": None}) for p in projects or []}
        self._updates = {u.progress_update_id: u for u in progress_updates or []}
        self._team_members = {m.user_id: m for m in team_members or []}
        self._admin_users = set(admin_users or [])
        self._next_project_id = max(self._projects, default=0) + 1
        self._next_update_id = max(self._updates, default=0) + 1

    @classmethod
    def from_file(cls, path: Path) -> "InMemoryProjectStore":
        """Load a seed file with clients/projects/progress_updates/team_members/admin_users arrays."""
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            store = cls(
                clients=[Client.model_validate(c) for c in data.get("clients", [])],
                projects=[Project.model_validate(p) for p in data.get("projects", [])],
                progress_updates=[ProgressUpdate.model_validate(u) for u in data.get("progress_updates", [])],
                team_members=[TeamMember.model_validate(m) for m in data.get("team_members", [])],
                admin_users=[str(u) for u in data.get("admin_users", [])],
            )
        except (OSError, json.JSONDecodeError, AttributeError, ValidationError) as e:
            raise StoreError(f"Cannot load seed data from {path}: {e}") from e
        logger.info("Loaded %d projects from %s", len(store._projects), path)
        return store

    def _with_client(self, project: Project) -> Project:
        return project.model_copy(update={"client": self._clients.get(project.client_id)})

    def _require(self, project_id: int) -> Project:
        project = self._projects.get(project_id)
        if project is None:
            raise ProjectNotFoundError(project_id)
        return project

    def _check_client(self, client_id: int) -> None:
        if self._clients and client_id not in self._clients:
            raise InvalidProjectError(f"Unknown client {client_id}")

    async def list_projects(self) -> list[Project]:
        projects = sorted(self._projects.values(), key=lambda p: p.created_at, reverse=True)
        return [self._with_client(p) for p in projects]

    async def get_project(self, project_id: int) -> Project:
        return self._with_client(self._require(project_id))

    async def list_progress_updates(self, project_id: int) -> list[ProgressUpdate]:
        self._require(project_id)
        updates = [u for u in self._updates.values() if u.project_id == project_id]
        return sorted(updates, key=lambda u: u.created_at, reverse=True)

    async def create_project(self, data: ProjectCreate) -> Project:
        self._check_client(data.client_id)
        project = Project(project_id=self._next_project_id, created_at=_now(), **data.model_dump())
        self._projects[project.project_id] = project
        self._next_project_id += 1
        logger.info("Created project %d (%s)", project.project_id, project.title)
        return self._with_client(project)

    async def update_project(self, project_id: int, data: ProjectUpdate) -> Project:
        current = self._require(project_id)
        changes = {
            k: v for k, v in data.model_dump(exclude_unset=True).items() if v is not None or k in _CLEARABLE_FIELDS
        }
        merged = current.model_copy(update=changes)
        if merged.amount_paid_cents > merged.total_value_cents:
            raise InvalidProjectError("amount_paid_cents cannot exceed total_value_cents")
        if "client_id" in changes:
            self._check_client(merged.client_id)
        self._projects[project_id] = merged
        return self._with_client(merged)

    async def delete_project(self, project_id: int) -> None:
        self._require(project_id)
        del self._projects[project_id]
        orphaned = [uid for uid, u in self._updates.items() if u.project_id == project_id]
        for uid in orphaned:
            del self._updates[uid]
        logger.info("Deleted project %d and %d progress updates", project_id, len(orphaned))

    async def create_progress_update(self, project_id: int, data: ProgressUpdateCreate) -> ProgressUpdate:
        self._require(project_id)
        update = ProgressUpdate(
            progress_update_id=self._next_update_id,
            project_id=project_id,
            created_at=_now(),
            **data.model_dump(),
        )
        self._updates[update.progress_update_id] = update
        self._next_update_id += 1
        return update

    async def get_team_member(self, user_id: str) -> TeamMember | None:
        return self._team_members.get(user_id)

    async def is_admin_user(self, user_id: str) -> bool:
        return user_id in self._admin_users
