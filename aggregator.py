"""Project enrichment — joins stored projects with live GitHub and Cloudflare data.

Remote failures never surface here (the connectors degrade to empty
results); store errors do propagate to the caller.
"""

from __future__ import annotations

import asyncio
import logging

from cf_client import CloudflareClient
from config import DEFAULT_TEAM_LABEL
from errors import ProjectNotFoundError
from feed import DEFAULT_FEED_LIMIT, build_feed
from gh_client import GitHubClient, parse_github_url
from models import AccessScope, MergedProject, Project, ProjectDetail, RemoteRepository
from store import ProjectStore

logger = logging.getLogger(__name__)

LIST_COMMIT_WINDOW = 5
DETAIL_COMMIT_WINDOW = 10
FALLBACK_BRANCH = "main"


def repo_key(repository_name: str | None) -> str | None:
    """Repo name used to join a project to GitHub.

    Accepts a bare name or a full GitHub URL pasted into the project form.
    """
    if not repository_name:
        return None
    name = repository_name.strip()
    parsed = parse_github_url(name)
    if parsed:
        return parsed[1]
    return name or None


def filter_visible(projects: list[Project], scope: AccessScope) -> list[Project]:
    if scope.is_admin:
        return list(projects)
    return [p for p in projects if p.project_id in scope.project_ids]


async def _enrich(project: Project, repo_map: dict[str, RemoteRepository], github: GitHubClient) -> MergedProject:
    name = repo_key(project.repository_name)
    matched = repo_map.get(name) if name else None
    base = project.model_dump(exclude={"funding_percent"})

    if not (name and matched):
        if name:
            logger.debug("Project %d references unknown repo %r", project.project_id, name)
        return MergedProject(**base)

    commits, open_prs, tech_stack = await asyncio.gather(
        github.get_commits(name, LIST_COMMIT_WINDOW),
        github.get_open_pull_request_count(name),
        github.detect_tech_stack(name),
    )
    return MergedProject(
        **base,
        github_repo=matched,
        commits=commits,
        open_prs=open_prs,
        last_push=matched.pushed_at,
        detected_tech_stack=tech_stack,
    )


async def fetch_org_projects(store: ProjectStore, github: GitHubClient, scope: AccessScope) -> list[MergedProject]:
    """Every project the caller may see, enriched with its GitHub repo when one matches.

    Projects and org repos are fetched concurrently; per-project enrichment
    runs concurrently and only for visible projects with a matching repo.
    """
    projects, repos = await asyncio.gather(store.list_projects(), github.list_org_repositories())
    visible = filter_visible(projects, scope)
    repo_map = {repo.name: repo for repo in repos}
    return list(await asyncio.gather(*(_enrich(p, repo_map, github) for p in visible)))


async def fetch_project_detail(
    store: ProjectStore,
    github: GitHubClient,
    cloudflare: CloudflareClient,
    project_id: int,
    scope: AccessScope,
    branch: str | None = None,
    feed_limit: int = DEFAULT_FEED_LIMIT,
    team_label: str = DEFAULT_TEAM_LABEL,
) -> ProjectDetail:
    """Load one project's page: GitHub data for a branch, deployment state and feed.

    With no branch requested the repo's default branch is used.
    """
    if not scope.allows(project_id):
        raise ProjectNotFoundError(project_id)
    project = await store.get_project(project_id)
    updates = await store.list_progress_updates(project_id)

    name = repo_key(project.repository_name)
    current_branch = branch or FALLBACK_BRANCH
    repo = None
    commits, tech_stack, branches, open_prs = [], [], [], 0

    if name:
        # The default branch has to be known before the branch-scoped calls go out.
        if branch is None:
            repo = await github.get_repository(name)
            if repo is not None:
                current_branch = repo.default_branch
        pending = [
            github.get_commits(name, DETAIL_COMMIT_WINDOW, current_branch),
            github.detect_tech_stack(name, current_branch),
            github.get_open_pull_request_count(name),
            github.get_branches(name),
            cloudflare.get_status_for_url(project.preview_url),
        ]
        if branch is not None:
            pending.append(github.get_repository(name))
        commits, tech_stack, open_prs, branches, deployment, *fetched = await asyncio.gather(*pending)
        if fetched:
            repo = fetched[0]
    else:
        deployment = await cloudflare.get_status_for_url(project.preview_url)

    display_tech_stack = [t.name for t in tech_stack] if tech_stack else list(project.tech_stack)

    return ProjectDetail(
        project=project,
        repo=repo,
        branches=branches,
        current_branch=current_branch,
        commits=commits,
        open_prs=open_prs,
        tech_stack=tech_stack,
        display_tech_stack=display_tech_stack,
        deployment=deployment,
        feed=build_feed(commits, updates, limit=feed_limit, team_label=team_label),
    )


async def resolve_access(store: ProjectStore, user_id: str | None) -> AccessScope:
    """Map a signed-in user to what they may see.

    A team member's role decides first (admins see everything, other roles
    see their assigned projects); otherwise the admin user list is checked.
    Unknown or anonymous users see nothing.
    """
    if not user_id:
        return AccessScope()
    member = await store.get_team_member(user_id)
    if member is not None and member.permission_role:
        if member.permission_role == "admin":
            return AccessScope(is_admin=True)
        return AccessScope(project_ids=frozenset(member.project_ids))
    if await store.is_admin_user(user_id):
        return AccessScope(is_admin=True)
    return AccessScope()
