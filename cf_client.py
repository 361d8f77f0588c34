"""Cloudflare Pages client — deployment status for a project's preview URL."""

from __future__ import annotations

import logging
from urllib.parse import urlparse

import httpx
from pydantic import ValidationError

from config import Settings
from errors import CredentialsMissingError, FetchError
from http_client import JSONAPIClient
from models import DeploymentState, DeploymentStatus

logger = logging.getLogger(__name__)

PAGES_DOMAIN_SUFFIX = ".pages.dev"

# Cloudflare's latest_stage.status -> our four states. Unknown values are queued.
STATUS_MAP: dict[str, DeploymentState] = {
    "success": DeploymentState.READY,
    "active": DeploymentState.BUILDING,
    "failure": DeploymentState.ERROR,
    "canceled": DeploymentState.ERROR,
    "idle": DeploymentState.QUEUED,
}

STATUS_BADGES: dict[DeploymentState, tuple[str, str]] = {
    DeploymentState.READY: ("Live", "●"),
    DeploymentState.BUILDING: ("Building", "◐"),
    DeploymentState.ERROR: ("Failed", "●"),
    DeploymentState.QUEUED: ("Queued", "○"),
}


def normalize_status(status: str | None) -> DeploymentState:
    return STATUS_MAP.get(status or "", DeploymentState.QUEUED)


def status_badge(state: DeploymentState) -> tuple[str, str]:
    """(label, symbol) shown next to a deployment."""
    return STATUS_BADGES.get(state, STATUS_BADGES[DeploymentState.QUEUED])


def extract_project_name(url: str | None) -> str | None:
    """Derive the Pages project name from a *.pages.dev URL.

    https://my-project.pages.dev -> my-project
    https://abc123.my-project.pages.dev -> abc123 (first label)
    Custom domains cannot be mapped and return None.
    """
    if not url:
        return None
    try:
        hostname = urlparse(url).hostname
    except ValueError:
        return None
    if not hostname or not hostname.endswith(PAGES_DOMAIN_SUFFIX):
        return None
    name = hostname[: -len(PAGES_DOMAIN_SUFFIX)].split(".")[0]
    return name or None


def _to_status(deployment: dict) -> DeploymentStatus:
    metadata = (deployment.get("deployment_trigger") or {}).get("metadata") or {}
    stage = deployment.get("latest_stage") or {}
    return DeploymentStatus(
        state=normalize_status(stage.get("status")),
        url=deployment.get("url", ""),
        branch=metadata.get("branch") or "main",
        commit=(metadata.get("commit_hash") or "")[:7],
        created_at=deployment.get("created_on"),
    )


class CloudflareClient(JSONAPIClient):
    """Read-only access to Pages deployments of one Cloudflare account."""

    source = "cloudflare"

    def __init__(self, settings: Settings, client: httpx.AsyncClient | None = None):
        super().__init__(settings, settings.cloudflare_api_url, client)
        self._warned_missing_credentials = False

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.settings.cloudflare_api_token}",
            "Content-Type": "application/json",
        }

    async def _fetch_deployments(self, project_name: str) -> list[dict]:
        if not self.settings.has_cloudflare_credentials:
            raise CredentialsMissingError("Cloudflare credentials not configured", source=self.source)
        data = await self._get_json(
            f"/accounts/{self.settings.cloudflare_account_id}/pages/projects/{project_name}/deployments"
        )
        result = data.get("result") if isinstance(data, dict) else None
        return [d for d in result or [] if isinstance(d, dict)]

    async def get_deployments(self, project_name: str) -> list[dict]:
        """Raw deployment records, most recent first. Empty on any failure."""
        try:
            return await self._fetch_deployments(project_name)
        except CredentialsMissingError as e:
            if not self._warned_missing_credentials:
                logger.warning("%s", e)
                self._warned_missing_credentials = True
        except FetchError as e:
            logger.error("Failed to fetch Cloudflare deployments for %s: %s", project_name, e)
        return []

    async def get_latest_deployment(
        self, project_name: str, environment: str = "production"
    ) -> DeploymentStatus | None:
        """Latest deployment for `environment`, else the latest of any environment."""
        deployments = await self.get_deployments(project_name)
        if not deployments:
            return None
        deployment = next((d for d in deployments if d.get("environment") == environment), deployments[0])
        try:
            return _to_status(deployment)
        except ValidationError as e:
            logger.error("Unexpected Cloudflare deployment payload for %s: %s", project_name, e)
            return None

    async def get_status_for_url(self, preview_url: str | None) -> DeploymentStatus | None:
        project_name = extract_project_name(preview_url)
        if not project_name:
            return None
        return await self.get_latest_deployment(project_name)
