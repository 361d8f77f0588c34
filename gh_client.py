"""GitHub client — commits, branches, PRs and package.json for the organization's repos.

Every public method degrades to an empty result (`[]`, `None`, `0`) when
GitHub cannot be reached or answers with an error; the failure is logged.
"""

from __future__ import annotations

import logging
import re

import httpx
from pydantic import ValidationError

from config import Settings
from errors import FetchError, PayloadError
from http_client import JSONAPIClient
from models import Branch, Commit, CommitAuthor, RemoteRepository, TechStackItem
from tech_stack import MANIFEST_PATH, decode_manifest, detect_from_manifest

logger = logging.getLogger(__name__)

ORG_REPOS_PAGE_SIZE = 20
SHORT_SHA_LENGTH = 7


def _log_failure(action: str, error: FetchError) -> None:
    if isinstance(error, PayloadError):
        logger.error("Failed to %s: %s", action, error)
    elif error.status is not None:
        logger.warning("Failed to %s: %s", action, error)
    else:
        logger.error("Failed to %s: %s", action, error)


def _parse_commit(node: dict, branch: str | None) -> Commit:
    """Convert a REST commit object into a Commit model."""
    commit = node.get("commit") or {}
    author = commit.get("author") or {}
    gh_author = node.get("author") or {}
    return Commit(
        sha=str(node["sha"])[:SHORT_SHA_LENGTH],
        message=str(commit.get("message", "")).split("\n")[0],
        author=CommitAuthor(
            name=author.get("name", ""),
            email=author.get("email", ""),
            date=author["date"],
            avatar_url=gh_author.get("avatar_url"),
        ),
        html_url=node.get("html_url", ""),
        branch=branch or "main",
    )


class GitHubClient(JSONAPIClient):
    """Read-only access to the repositories of one GitHub organization."""

    source = "github"

    def __init__(self, settings: Settings, client: httpx.AsyncClient | None = None):
        super().__init__(settings, settings.github_api_url, client)
        self.org = settings.github_org

    def _headers(self) -> dict[str, str]:
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if self.settings.github_token:
            headers["Authorization"] = f"Bearer {self.settings.github_token}"
        return headers

    async def get_commits(self, repo_name: str, limit: int = 10, branch: str | None = None) -> list[Commit]:
        """Most recent commits on a branch, newest first, at most `limit`."""
        params: dict = {"per_page": limit}
        if branch:
            params["sha"] = branch
        try:
            data = await self._get_json(f"/repos/{self.org}/{repo_name}/commits", params)
            return [_parse_commit(node, branch) for node in _as_list(data)[:limit]]
        except FetchError as e:
            _log_failure(f"fetch commits for {repo_name}", e)
        except (KeyError, TypeError, ValidationError) as e:
            logger.error("Unexpected commit payload for %s: %s", repo_name, e)
        return []

    async def get_branches(self, repo_name: str) -> list[Branch]:
        try:
            data = await self._get_json(f"/repos/{self.org}/{repo_name}/branches")
            return [Branch.model_validate(node) for node in _as_list(data)]
        except FetchError as e:
            _log_failure(f"fetch branches for {repo_name}", e)
        except ValidationError as e:
            logger.error("Unexpected branch payload for %s: %s", repo_name, e)
        return []

    async def get_repository(self, repo_name: str) -> RemoteRepository | None:
        try:
            data = await self._get_json(f"/repos/{self.org}/{repo_name}")
            return RemoteRepository.model_validate(data)
        except FetchError as e:
            _log_failure(f"fetch repository {repo_name}", e)
        except ValidationError as e:
            logger.error("Unexpected repository payload for %s: %s", repo_name, e)
        return None

    async def detect_tech_stack(self, repo_name: str, branch: str | None = None) -> list[TechStackItem]:
        """Detect the stack from the repo's package.json at `branch` (default branch if None)."""
        params = {"ref": branch} if branch else None
        try:
            data = await self._get_json(f"/repos/{self.org}/{repo_name}/contents/{MANIFEST_PATH}", params)
            if not isinstance(data, dict):
                raise PayloadError(f"{MANIFEST_PATH} response is not a file", source=self.source)
            return detect_from_manifest(decode_manifest(data.get("content")))
        except FetchError as e:
            _log_failure(f"detect tech stack for {repo_name}", e)
        return []

    async def get_open_pull_request_count(self, repo_name: str) -> int:
        try:
            data = await self._get_json(f"/repos/{self.org}/{repo_name}/pulls", {"state": "open"})
            return len(_as_list(data))
        except FetchError as e:
            _log_failure(f"fetch pull requests for {repo_name}", e)
        return 0

    async def list_org_repositories(self) -> list[RemoteRepository]:
        """Organization repos, most recently pushed first."""
        try:
            data = await self._get_json(
                f"/orgs/{self.org}/repos",
                {"sort": "pushed", "per_page": ORG_REPOS_PAGE_SIZE},
            )
            return [RemoteRepository.model_validate(node) for node in _as_list(data)]
        except FetchError as e:
            _log_failure(f"list repositories for {self.org}", e)
        except ValidationError as e:
            logger.error("Unexpected repository list payload for %s: %s", self.org, e)
        return []


def _as_list(data) -> list:
    if not isinstance(data, list):
        raise PayloadError("expected a JSON array", source="github")
    return data


def parse_github_url(url: str) -> tuple[str, str] | None:
    """Extract (owner, repo) from a GitHub URL.

    Handles:
      - https://github.com/owner/repo
      - https://github.com/owner/repo.git
      - git@github.com:owner/repo.git
    """
    # HTTPS format
    match = re.match(r"https://github\.com/([^/]+)/([^/.]+)", url)
    if match:
        return match.group(1), match.group(2)

    # SSH format
    match = re.match(r"git@github\.com:([^/]+)/([^/.]+)", url)
    if match:
        return match.group(1), match.group(2)

    return None
