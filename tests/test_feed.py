"""Unit tests for merging commits and progress updates into the engineering feed."""

from datetime import datetime, timedelta, timezone

import pytest

from conftest import make_commit, make_update
from feed import build_feed
from models import FeedItemKind, ProgressUpdate


def test_feed_orders_updates_and_commits_newest_first() -> None:
    commits = [
        make_commit("aaaaaaa", "fix bug", "2024-01-02T10:00:00Z"),
        make_commit("bbbbbbb", "init", "2024-01-01T10:00:00Z"),
    ]
    updates = [make_update(7, "Design approved", "2024-01-03T10:00:00Z")]

    feed = build_feed(commits, updates)

    assert [item.title for item in feed] == ["Design approved", "fix bug", "init"]
    assert [item.kind for item in feed] == [FeedItemKind.UPDATE, FeedItemKind.COMMIT, FeedItemKind.COMMIT]


def test_feed_items_carry_source_fields() -> None:
    commit = make_commit("abc1234", "add hero", "2024-01-02T10:00:00Z", author="Ben")
    update = ProgressUpdate(
        progress_update_id=3,
        project_id=1,
        update_title="Staging live",
        update_body="Preview is up",
        commit_sha_reference="abc1234",
        created_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
    )

    commit_item, update_item = build_feed([commit], [update], team_label="Studio")

    assert commit_item.id == "commit-abc1234"
    assert commit_item.author == "Ben"
    assert commit_item.sha == "abc1234"
    assert commit_item.html_url == commit.html_url
    assert update_item.id == "update-3"
    assert update_item.author == "Studio"
    assert update_item.body == "Preview is up"
    assert update_item.sha == "abc1234"
    assert update_item.html_url is None


def test_feed_is_sorted_descending_for_shuffled_input() -> None:
    base = datetime(2024, 3, 1, tzinfo=timezone.utc)
    commits = [make_commit(f"c{i:06d}", f"c{i}", (base + timedelta(hours=i * 2)).isoformat()) for i in range(6)]
    updates = [make_update(i, f"u{i}", (base + timedelta(hours=i * 2 + 1)).isoformat()) for i in range(6)]

    feed = build_feed(list(reversed(commits)), updates, limit=100)

    dates = [item.date for item in feed]
    assert dates == sorted(dates, reverse=True)
    assert len(set(dates)) == len(dates)


def test_feed_never_exceeds_limit() -> None:
    commits = [make_commit(f"{i:07d}", f"commit {i}", f"2024-02-{i + 1:02d}T00:00:00Z") for i in range(20)]
    updates = [make_update(i, f"update {i}", f"2024-01-{i + 1:02d}T00:00:00Z") for i in range(20)]

    assert len(build_feed(commits, updates)) == 10
    assert len(build_feed(commits, updates, limit=5)) == 5
    assert build_feed(commits, updates, limit=0) == []
    assert len(build_feed(commits[:2], [], limit=5)) == 2


def test_feed_limit_keeps_the_most_recent_items() -> None:
    commits = [make_commit(f"{i:07d}", f"commit {i}", f"2024-02-{i + 1:02d}T00:00:00Z") for i in range(8)]

    feed = build_feed(commits, [], limit=3)

    assert [item.title for item in feed] == ["commit 7", "commit 6", "commit 5"]


def test_feed_puts_commits_before_updates_on_equal_timestamps() -> None:
    when = "2024-05-05T12:00:00Z"
    updates = [make_update(1, "first update", when), make_update(2, "second update", when)]
    commits = [make_commit("aaaaaaa", "first commit", when), make_commit("bbbbbbb", "second commit", when)]

    feed = build_feed(commits, updates)

    assert [item.title for item in feed] == ["first commit", "second commit", "first update", "second update"]


def test_feed_treats_naive_timestamps_as_utc() -> None:
    naive = ProgressUpdate(
        progress_update_id=1,
        project_id=1,
        update_title="naive",
        created_at=datetime(2024, 1, 2, 10, 0),
    )
    commit = make_commit("aaaaaaa", "aware", "2024-01-02T09:00:00Z")

    assert [item.title for item in build_feed([commit], [naive])] == ["naive", "aware"]


def test_feed_rejects_negative_limit() -> None:
    with pytest.raises(ValueError):
        build_feed([], [], limit=-1)
