"""Engineering feed — merges GitHub commits and posted progress updates."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timezone

from config import DEFAULT_TEAM_LABEL
from models import Commit, FeedItem, FeedItemKind, ProgressUpdate

DEFAULT_FEED_LIMIT = 10

# On equal timestamps commits sort ahead of updates.
_KIND_RANK = {FeedItemKind.COMMIT: 0, FeedItemKind.UPDATE: 1}


def commit_to_feed_item(commit: Commit) -> FeedItem:
    return FeedItem(
        id=f"commit-{commit.sha}",
        kind=FeedItemKind.COMMIT,
        title=commit.message,
        author=commit.author.name,
        avatar_url=commit.author.avatar_url,
        date=commit.author.date,
        sha=commit.sha,
        html_url=commit.html_url,
    )


def update_to_feed_item(update: ProgressUpdate, team_label: str = DEFAULT_TEAM_LABEL) -> FeedItem:
    # commit_sha_reference is free text typed by an admin, not checked against GitHub.
    return FeedItem(
        id=f"update-{update.progress_update_id}",
        kind=FeedItemKind.UPDATE,
        title=update.update_title,
        body=update.update_body,
        author=team_label,
        date=update.created_at,
        sha=update.commit_sha_reference,
    )


def _timestamp(value: datetime) -> float:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.timestamp()


def _sort_key(item: FeedItem) -> tuple[float, int]:
    return (-_timestamp(item.date), _KIND_RANK[item.kind])


def build_feed(
    commits: Iterable[Commit],
    updates: Iterable[ProgressUpdate],
    limit: int = DEFAULT_FEED_LIMIT,
    team_label: str = DEFAULT_TEAM_LABEL,
) -> list[FeedItem]:
    """Merge commits and updates, newest first, keeping at most `limit` items.

    Ties on the exact timestamp put commits before updates; items of the
    same kind keep their input order.
    """
    if limit < 0:
        raise ValueError(f"feed limit must not be negative, got {limit}")
    items = [commit_to_feed_item(c) for c in commits]
    items.extend(update_to_feed_item(u, team_label) for u in updates)
    items.sort(key=_sort_key)
    return items[:limit]
