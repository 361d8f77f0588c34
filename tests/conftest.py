"""Shared fixtures: sample records and fake connectors."""

from __future__ import annotations

from datetime import datetime

import pytest

from models import (
    Branch,
    Client,
    Commit,
    CommitAuthor,
    DeploymentState,
    DeploymentStatus,
    ProgressUpdate,
    Project,
    RemoteRepository,
    TeamMember,
    TechCategory,
    TechStackItem,
)
from store import InMemoryProjectStore


def ts(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def make_commit(sha: str, message: str, date: str, author: str = "Ana") -> Commit:
    return Commit(
        sha=sha,
        message=message,
        author=CommitAuthor(name=author, email=f"{author.lower()}@example.com", date=ts(date)),
        html_url=f"https://github.com/acme/site/commit/{sha}",
        branch="main",
    )


def make_update(update_id: int, title: str, date: str, project_id: int = 1) -> ProgressUpdate:
    return ProgressUpdate(
        progress_update_id=update_id,
        project_id=project_id,
        update_title=title,
        created_at=ts(date),
    )


class FakeGitHub:
    """Stands in for GitHubClient and records which repos were queried."""

    def __init__(self, repos: list[RemoteRepository] | None = None, commits: list[Commit] | None = None):
        self.repos = repos or []
        self.commits = commits or []
        self.calls: list[tuple] = []

    async def list_org_repositories(self):
        self.calls.append(("list_org_repositories",))
        return self.repos

    async def get_commits(self, repo_name, limit=10, branch=None):
        self.calls.append(("get_commits", repo_name, limit, branch))
        return self.commits[:limit]

    async def get_open_pull_request_count(self, repo_name):
        self.calls.append(("get_open_pull_request_count", repo_name))
        return 2

    async def detect_tech_stack(self, repo_name, branch=None):
        self.calls.append(("detect_tech_stack", repo_name, branch))
        return [TechStackItem(name="React", category=TechCategory.FRONTEND)]

    async def get_repository(self, repo_name):
        self.calls.append(("get_repository", repo_name))
        return next((r for r in self.repos if r.name == repo_name), None)

    async def get_branches(self, repo_name):
        self.calls.append(("get_branches", repo_name))
        return [Branch(name="main", protected=True), Branch(name="develop")]

    def repos_queried(self) -> set[str]:
        return {call[1] for call in self.calls if len(call) > 1}


class FakeCloudflare:
    def __init__(self, deployment: DeploymentStatus | None = None):
        self.deployment = deployment
        self.urls: list[str | None] = []

    async def get_status_for_url(self, preview_url):
        self.urls.append(preview_url)
        return self.deployment if preview_url else None


@pytest.fixture
def repos() -> list[RemoteRepository]:
    return [
        RemoteRepository(name="site", full_name="acme/site", pushed_at=ts("2024-01-05T09:00:00Z")),
        RemoteRepository(name="api", full_name="acme/api", default_branch="develop"),
    ]


@pytest.fixture
def store() -> InMemoryProjectStore:
    return InMemoryProjectStore(
        clients=[Client(client_id=1, company_name="Acme")],
        projects=[
            Project(
                project_id=1,
                client_id=1,
                title="Marketing site",
                repository_name="site",
                preview_url="https://acme-site.pages.dev",
                total_value_cents=100_000,
                amount_paid_cents=25_000,
                tech_stack=["Astro"],
                created_at=ts("2024-01-01T00:00:00Z"),
            ),
            Project(
                project_id=2,
                client_id=1,
                title="Ghost",
                repository_name="ghost-repo",
                created_at=ts("2024-01-02T00:00:00Z"),
            ),
            Project(
                project_id=3,
                client_id=1,
                title="API",
                repository_name="api",
                tech_stack=["Go"],
                created_at=ts("2024-01-03T00:00:00Z"),
            ),
        ],
        progress_updates=[make_update(1, "Design approved", "2024-01-03T10:00:00Z")],
        team_members=[
            TeamMember(team_member_id=1, user_id="dev-1", permission_role="developer", project_ids=[1, 2]),
            TeamMember(team_member_id=2, user_id="lead-1", permission_role="admin"),
        ],
        admin_users=["owner-1"],
    )


@pytest.fixture
def deployment() -> DeploymentStatus:
    return DeploymentStatus(
        state=DeploymentState.READY,
        url="https://abc.acme-site.pages.dev",
        branch="main",
        commit="abc1234",
    )
