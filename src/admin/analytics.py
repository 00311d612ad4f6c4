"""Moderation analytics computed over in-memory snapshots.

Cassandra has no aggregation pipeline, so the admin service loads the
relevant tables once per request and these functions do the grouping.
"""

from collections import Counter, defaultdict
from datetime import datetime, timedelta
from typing import Any

from src.comments.models import Comment
from src.stories.models import Story, StoryType
from src.users.models import User
from src.utils import iso_or_none, utc_now


HIGH_RISK_RATE = 0.25
HIGH_RISK_DELETED = 15
MEDIUM_RISK_RATE = 0.15
MEDIUM_RISK_DELETED = 8

RECENT_DELETIONS = 3
TRENDING_LIMIT = 10


def risk_level(deletion_rate: float, total_deleted: int) -> str:
    if deletion_rate > HIGH_RISK_RATE or total_deleted > HIGH_RISK_DELETED:
        return "HIGH"
    if deletion_rate > MEDIUM_RISK_RATE or total_deleted > MEDIUM_RISK_DELETED:
        return "MEDIUM"
    return "LOW"


def _rate(part: int, whole: int) -> float:
    return part / whole if whole > 0 else 0.0


def _by_deletion_time(item: Story | Comment) -> float:
    return item.deleted_at.timestamp() if item.deleted_at else 0.0


def problematic_users(
    users: list[User],
    stories: list[Story],
    comments: list[Comment],
    limit: int = 20,
) -> dict[str, Any]:
    """Rank authors with deleted content by deletion rate and volume."""
    stories_by_author: dict[str, list[Story]] = defaultdict(list)
    for story in stories:
        stories_by_author[story.author].append(story)
    comments_by_author: dict[str, list[Comment]] = defaultdict(list)
    for comment in comments:
        comments_by_author[comment.author].append(comment)

    flagged = []
    for user in users:
        user_stories = stories_by_author.get(user.username, [])
        user_comments = comments_by_author.get(user.username, [])
        deleted_stories = sorted(
            (s for s in user_stories if s.is_deleted), key=_by_deletion_time, reverse=True
        )
        deleted_comments = sorted(
            (c for c in user_comments if c.is_deleted), key=_by_deletion_time, reverse=True
        )
        total_deleted = len(deleted_stories) + len(deleted_comments)
        if not total_deleted:
            continue

        overall_rate = _rate(total_deleted, len(user_stories) + len(user_comments))
        flagged.append(
            {
                "user": {
                    "id": str(user.id),
                    "username": user.username,
                    "email": user.email,
                    "role": user.role,
                    "is_blocked": user.is_blocked,
                    "created_at": iso_or_none(user.created_at),
                },
                "activity_stats": {
                    "total_stories": len(user_stories),
                    "deleted_stories": len(deleted_stories),
                    "story_deletion_rate": round(
                        _rate(len(deleted_stories), len(user_stories)), 2
                    ),
                    "total_comments": len(user_comments),
                    "deleted_comments": len(deleted_comments),
                    "comment_deletion_rate": round(
                        _rate(len(deleted_comments), len(user_comments)), 2
                    ),
                    "overall_deletion_rate": round(overall_rate, 2),
                    "total_deleted": total_deleted,
                },
                "recent_deletions": {
                    "stories": [
                        {
                            "story_id": s.story_id,
                            "title": s.title,
                            "type": s.type,
                            "deleted_at": iso_or_none(s.deleted_at),
                            "deleted_by": s.deleted_by,
                            "deletion_reason": s.deletion_reason,
                        }
                        for s in deleted_stories[:RECENT_DELETIONS]
                    ],
                    "comments": [
                        {
                            "comment_id": c.comment_id,
                            "story_id": c.story_id,
                            "text": c.text,
                            "deleted_at": iso_or_none(c.deleted_at),
                            "deleted_by": c.deleted_by,
                            "deletion_reason": c.deletion_reason,
                        }
                        for c in deleted_comments[:RECENT_DELETIONS]
                    ],
                },
                "risk_level": risk_level(overall_rate, total_deleted),
                "_score": overall_rate * 100 + total_deleted,
            }
        )

    flagged.sort(key=lambda entry: entry["_score"], reverse=True)
    levels = Counter(entry["risk_level"] for entry in flagged)
    for entry in flagged:
        del entry["_score"]

    return {
        "problematic_users": flagged[:limit],
        "summary": {
            "total_problematic_users": len(flagged),
            "high_risk": levels["HIGH"],
            "medium_risk": levels["MEDIUM"],
            "low_risk": levels["LOW"],
        },
    }


def top_contributors(
    users: list[User],
    stories: list[Story],
    comments: list[Comment],
    limit: int = 10,
) -> dict[str, Any]:
    """Most active posters, commenters and employers over active content."""
    by_username = {u.username: u for u in users}
    active_stories = [s for s in stories if not s.is_deleted]
    active_comments = [c for c in comments if not c.is_deleted]

    def ranked(items: list[Any]) -> list[tuple[str, int, int]]:
        counts: Counter[str] = Counter()
        points: Counter[str] = Counter()
        for item in items:
            counts[item.author] += 1
            points[item.author] += item.points
        return [(author, n, points[author]) for author, n in counts.most_common(limit)]

    def member(username: str) -> dict[str, Any]:
        user = by_username.get(username)
        return {
            "username": username,
            "email": user.email if user else None,
            "role": user.role if user else None,
            "member_since": iso_or_none(user.created_at) if user else None,
        }

    return {
        "top_posters": [
            {
                **member(author),
                "story_count": count,
                "total_points": total,
                "average_points": round(total / count),
            }
            for author, count, total in ranked(active_stories)
        ],
        "top_commenters": [
            {
                **member(author),
                "comment_count": count,
                "total_points": total,
                "average_points": round(total / count),
            }
            for author, count, total in ranked(active_comments)
        ],
        "top_employers": [
            {**member(author), "job_count": count}
            for author, count, _ in ranked(
                [s for s in active_stories if s.type == StoryType.JOB.value]
            )
        ],
    }


def _period_start(period: str, now: datetime) -> datetime:
    if period == "month":
        return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    return now - timedelta(days=7)


def _story_summary(story: Story) -> dict[str, Any]:
    return {
        "story_id": story.story_id,
        "title": story.title,
        "author": story.author,
        "type": story.type,
        "points": story.points,
        "comment_count": len(story.children),
        "created_at": iso_or_none(story.created_at),
    }


def trending_content(
    stories: list[Story], period: str = "week", now: datetime | None = None
) -> dict[str, Any]:
    """Top local stories of the last week or the current month."""
    start = _period_start(period, now or utc_now())
    recent = [s for s in stories if not s.is_deleted and s.created_at >= start]

    top_stories = sorted(
        (s for s in recent if s.type in (StoryType.STORY.value, StoryType.JOB.value)),
        key=lambda s: s.points,
        reverse=True,
    )
    most_commented = sorted(recent, key=lambda s: len(s.children), reverse=True)
    jobs = sorted(
        (s for s in recent if s.type == StoryType.JOB.value),
        key=lambda s: (s.points, s.created_at_i),
        reverse=True,
    )

    return {
        "period": period,
        "top_stories": [_story_summary(s) for s in top_stories[:TRENDING_LIMIT]],
        "most_commented": [_story_summary(s) for s in most_commented[:TRENDING_LIMIT]],
        "trending_jobs": [_story_summary(s) for s in jobs[:TRENDING_LIMIT]],
    }


def percent_change(current: int, previous: int) -> str:
    """One-decimal growth against the previous period, ``0.0`` without a base."""
    if previous <= 0:
        return "0.0"
    return f"{(current - previous) / previous * 100:.1f}"


def dashboard_stats(
    users: list[User],
    stories: list[Story],
    comments: list[Comment],
    blocked_emails: int,
    now: datetime | None = None,
) -> dict[str, Any]:
    """Overview, growth, breakdown and moderation counters for the dashboard."""
    now = now or utc_now()
    today = now.replace(hour=0, minute=0, second=0, microsecond=0)
    week = now - timedelta(days=7)
    month = today.replace(day=1)
    last_month_end = month - timedelta(microseconds=1)
    last_month = last_month_end.replace(day=1, hour=0, minute=0, second=0, microsecond=0)

    def growth(dates: list[datetime]) -> dict[str, Any]:
        this_month = sum(1 for d in dates if d >= month)
        previous = sum(1 for d in dates if last_month <= d <= last_month_end)
        return {
            "today": sum(1 for d in dates if d >= today),
            "this_week": sum(1 for d in dates if d >= week),
            "this_month": this_month,
            "last_month": previous,
            "percent_change": percent_change(this_month, previous),
        }

    def deletions_since(start: datetime) -> int:
        return sum(
            1
            for item in [*stories, *comments]
            if item.is_deleted and item.deleted_at and item.deleted_at >= start
        )

    active_stories = [s for s in stories if not s.is_deleted]
    by_type = Counter(s.type for s in active_stories)
    jobs = [s.created_at for s in stories if s.type == StoryType.JOB.value]
    job_growth = growth(jobs)
    blocked_users = sum(1 for u in users if u.is_blocked)
    deleted_stories = len(stories) - len(active_stories)
    deleted_comments = sum(1 for c in comments if c.is_deleted)

    return {
        "overview": {
            "total_users": len(users),
            "total_stories": len(stories),
            "total_comments": len(comments),
            "total_jobs": by_type.get(StoryType.JOB.value, 0),
            "active_users": len(users) - blocked_users,
            "blocked_users": blocked_users,
        },
        "growth": {
            "users": growth([u.created_at for u in users if u.created_at]),
            "stories": growth([s.created_at for s in stories]),
            "comments": growth([c.created_at for c in comments]),
            "jobs": {
                "this_month": job_growth["this_month"],
                "last_month": job_growth["last_month"],
                "percent_change": job_growth["percent_change"],
            },
        },
        "user_breakdown": {"by_role": dict(Counter(u.role for u in users))},
        "content_breakdown": {
            "stories": {
                "total": len(stories),
                "active": len(active_stories),
                "deleted": deleted_stories,
                "by_type": dict(by_type),
            },
            "comments": {
                "total": len(comments),
                "active": len(comments) - deleted_comments,
                "deleted": deleted_comments,
            },
        },
        "moderation": {
            "blocked_users": blocked_users,
            "blocked_emails": blocked_emails,
            "deletions_today": deletions_since(today),
            "deletions_this_week": deletions_since(week),
            "deletions_this_month": deletions_since(month),
        },
    }
