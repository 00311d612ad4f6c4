"""Tests for moderation analytics."""

from datetime import UTC, datetime, timedelta

import pytest

from src.admin import analytics
from src.admin.schemas import paginate
from src.comments.models import Comment
from src.stories.models import Story
from src.users.models import User


NOW = datetime(2024, 5, 15, 12, 0, tzinfo=UTC)


def _story(story_id: str, author: str, **overrides) -> Story:
    fields = {
        "story_id": story_id,
        "author": author,
        "title": f"Story {story_id}",
        "text": None,
        "url": None,
        "type": "story",
        "points": 0,
        "children": [],
        "tags": [],
        "created_at_i": int(NOW.timestamp()),
        "created_at": NOW - timedelta(days=1),
        "updated_at": NOW,
    }
    fields.update(overrides)
    return Story(**fields)


def _comment(comment_id: str, author: str, **overrides) -> Comment:
    fields = {
        "comment_id": comment_id,
        "author": author,
        "text": "hello",
        "story_id": "s1",
        "parent_id": None,
        "children": [],
        "points": 0,
        "created_at_i": int(NOW.timestamp()),
        "created_at": NOW - timedelta(days=1),
        "updated_at": NOW,
    }
    fields.update(overrides)
    return Comment(**fields)


class TestRiskLevel:
    @pytest.mark.parametrize(
        "rate,deleted,level",
        [
            (0.30, 1, "HIGH"),
            (0.10, 16, "HIGH"),
            (0.20, 1, "MEDIUM"),
            (0.10, 9, "MEDIUM"),
            (0.15, 8, "LOW"),
        ],
    )
    def test_thresholds(self, rate: float, deleted: int, level: str) -> None:
        assert analytics.risk_level(rate, deleted) == level


class TestProblematicUsers:
    def test_only_users_with_deletions_are_listed(self) -> None:
        users = [User(username="alice"), User(username="bob")]
        stories = [
            _story("s1", "bob", is_deleted=True, deleted_at=NOW),
            _story("s2", "bob"),
            _story("s3", "alice"),
        ]

        result = analytics.problematic_users(users, stories, [], limit=10)

        assert [e["user"]["username"] for e in result["problematic_users"]] == ["bob"]
        entry = result["problematic_users"][0]
        assert entry["activity_stats"]["overall_deletion_rate"] == 0.5
        assert entry["risk_level"] == "HIGH"
        assert "_score" not in entry
        assert result["summary"]["high_risk"] == 1


class TestTopContributors:
    def test_rankings_skip_deleted_content(self) -> None:
        users = [User(username="alice", role="employer"), User(username="bob")]
        stories = [
            _story("s1", "alice", points=10),
            _story("s2", "alice", points=4, type="job"),
            _story("s3", "bob", points=100, is_deleted=True),
        ]
        comments = [_comment("c1", "bob", points=2)]

        result = analytics.top_contributors(users, stories, comments)

        assert result["top_posters"][0]["username"] == "alice"
        assert result["top_posters"][0]["total_points"] == 14
        assert result["top_posters"][0]["average_points"] == 7
        assert [p["username"] for p in result["top_posters"]] == ["alice"]
        assert result["top_commenters"][0]["comment_count"] == 1
        assert result["top_employers"][0]["job_count"] == 1


class TestTrending:
    def test_week_window(self) -> None:
        stories = [
            _story("recent", "alice", points=5, children=["c1", "c2"]),
            _story("old", "alice", points=50, created_at=NOW - timedelta(days=30)),
        ]

        result = analytics.trending_content(stories, "week", now=NOW)

        assert [s["story_id"] for s in result["top_stories"]] == ["recent"]
        assert result["most_commented"][0]["comment_count"] == 2


class TestDashboard:
    def test_percent_change(self) -> None:
        assert analytics.percent_change(3, 0) == "0.0"
        assert analytics.percent_change(15, 10) == "50.0"

    def test_counts(self) -> None:
        users = [
            User(username="alice", created_at=NOW - timedelta(hours=1)),
            User(username="bob", is_blocked=True, created_at=NOW - timedelta(days=40)),
        ]
        stories = [
            _story("s1", "alice"),
            _story("s2", "bob", type="job", is_deleted=True, deleted_at=NOW),
        ]

        result = analytics.dashboard_stats(users, stories, [], blocked_emails=2, now=NOW)

        assert result["overview"]["total_users"] == 2
        assert result["overview"]["blocked_users"] == 1
        assert result["growth"]["users"]["today"] == 1
        assert result["content_breakdown"]["stories"]["deleted"] == 1
        assert result["moderation"]["blocked_emails"] == 2
        assert result["moderation"]["deletions_today"] == 1


class TestPaginate:
    def test_page_slice_and_totals(self) -> None:
        page = paginate(list(range(45)), page=3, limit=20)

        assert page.items == list(range(40, 45))
        assert page.pagination.total == 45
        assert page.pagination.total_pages == 3
