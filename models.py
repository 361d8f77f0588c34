"""Pydantic models for hub API responses and persisted records."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, computed_field, model_validator


# --- Remote (GitHub / Cloudflare) ---


class RemoteRepository(BaseModel):
    """A repository in the GitHub organization. Never stored locally."""

    name: str
    full_name: str = ""
    description: str | None = None
    html_url: str = ""
    language: str | None = None
    stargazers_count: int = 0
    open_issues_count: int = 0
    pushed_at: datetime | None = None
    default_branch: str = "main"


class CommitAuthor(BaseModel):
    name: str
    email: str = ""
    date: datetime
    avatar_url: str | None = None


class Commit(BaseModel):
    """A commit as shown in the portal: short sha, first line of message."""

    sha: str
    message: str
    author: CommitAuthor
    html_url: str
    branch: str | None = None


class Branch(BaseModel):
    name: str
    protected: bool = False


class DeploymentState(str, Enum):
    READY = "ready"
    BUILDING = "building"
    ERROR = "error"
    QUEUED = "queued"


class DeploymentStatus(BaseModel):
    """Latest Cloudflare Pages deployment, normalized to four states."""

    state: DeploymentState
    url: str
    branch: str
    commit: str
    created_at: datetime | None = None


class TechCategory(str, Enum):
    FRONTEND = "frontend"
    BACKEND = "backend"
    DATABASE = "database"
    INFRASTRUCTURE = "infrastructure"
    OTHER = "other"


class TechStackItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    category: TechCategory


# --- Local records ---


class ProjectStatus(str, Enum):
    """Project lifecycle, in order."""

    DISCOVERY = "discovery"
    ARCHITECTURE = "architecture"
    DEVELOPMENT = "development"
    TESTING = "testing"
    SHIPPED = "shipped"

    @property
    def step(self) -> int:
        return list(ProjectStatus).index(self)


class Client(BaseModel):
    client_id: int
    contact_email: str | None = None
    company_name: str | None = None
    github_org_name: str | None = None
    brand_color_hex: str | None = None
    created_at: datetime | None = None


class ProgressUpdate(BaseModel):
    """A manual update posted by an admin. Immutable once created."""

    progress_update_id: int
    project_id: int
    update_title: str
    update_body: str | None = None
    commit_sha_reference: str | None = None
    created_at: datetime


class Project(BaseModel):
    project_id: int
    client_id: int
    title: str
    description: str | None = None
    repository_name: str | None = None
    preview_url: str | None = None
    project_status: ProjectStatus = ProjectStatus.DISCOVERY
    total_value_cents: int = 0
    amount_paid_cents: int = 0
    tech_stack: list[str] = Field(default_factory=list)
    created_at: datetime
    client: Client | None = None

    @computed_field
    @property
    def funding_percent(self) -> int:
        """Share of the project value paid so far, 0-100."""
        if self.total_value_cents <= 0:
            return 0
        percent = round(self.amount_paid_cents * 100 / self.total_value_cents)
        return max(0, min(100, percent))


def _check_amounts(total: int, paid: int) -> None:
    if paid > total:
        raise ValueError("amount_paid_cents cannot exceed total_value_cents")


class ProjectCreate(BaseModel):
    client_id: int
    title: str = Field(min_length=1)
    description: str | None = None
    repository_name: str | None = None
    preview_url: str | None = None
    project_status: ProjectStatus = ProjectStatus.DISCOVERY
    total_value_cents: int = Field(default=0, ge=0)
    amount_paid_cents: int = Field(default=0, ge=0)
    tech_stack: list[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def _paid_within_total(self) -> "ProjectCreate":
        _check_amounts(self.total_value_cents, self.amount_paid_cents)
        return self


class ProjectUpdate(BaseModel):
    """Partial update; the money check runs in the store against merged values."""

    client_id: int | None = None
    title: str | None = Field(default=None, min_length=1)
    description: str | None = None
    repository_name: str | None = None
    preview_url: str | None = None
    project_status: ProjectStatus | None = None
    total_value_cents: int | None = Field(default=None, ge=0)
    amount_paid_cents: int | None = Field(default=None, ge=0)
    tech_stack: list[str] | None = None


class ProgressUpdateCreate(BaseModel):
    update_title: str = Field(min_length=1)
    update_body: str | None = None
    commit_sha_reference: str | None = None


class TeamMember(BaseModel):
    team_member_id: int
    user_id: str
    name: str = ""
    permission_role: str | None = None  # "admin" | "developer" | "designer" | "manager"
    project_ids: list[int] = Field(default_factory=list)


# --- Derived views ---


class AccessScope(BaseModel):
    """What the caller may see: everything, or a fixed set of project ids."""

    model_config = ConfigDict(frozen=True)

    is_admin: bool = False
    project_ids: frozenset[int] = frozenset()

    def allows(self, project_id: int) -> bool:
        return self.is_admin or project_id in self.project_ids


class FeedItemKind(str, Enum):
    COMMIT = "commit"
    UPDATE = "update"


class FeedItem(BaseModel):
    """One entry of the merged engineering feed. Built per request, never stored."""

    id: str
    kind: FeedItemKind
    title: str
    body: str | None = None
    author: str
    avatar_url: str | None = None
    date: datetime
    sha: str | None = None
    html_url: str | None = None


class MergedProject(Project):
    """A project joined with its GitHub repository, if one matched."""

    model_config = ConfigDict(populate_by_name=True)

    github_repo: RemoteRepository | None = Field(default=None, alias="githubRepo")
    commits: list[Commit] = Field(default_factory=list)
    open_prs: int = Field(default=0, alias="openPRs")
    last_push: datetime | None = Field(default=None, alias="lastPush")
    detected_tech_stack: list[TechStackItem] = Field(default_factory=list, alias="detectedTechStack")


class ProjectDetail(BaseModel):
    """Everything the project page needs for one branch."""

    project: Project
    repo: RemoteRepository | None = None
    branches: list[Branch] = Field(default_factory=list)
    current_branch: str = "main"
    commits: list[Commit] = Field(default_factory=list)
    open_prs: int = 0
    tech_stack: list[TechStackItem] = Field(default_factory=list)
    display_tech_stack: list[str] = Field(default_factory=list)
    deployment: DeploymentStatus | None = None
    feed: list[FeedItem] = Field(default_factory=list)


class RefreshResult(BaseModel):
    """Result of a manual cache refresh."""

    cleared_entries: int
    refreshed_at: str
