"""Ownership and moderation rules applied by the content services."""

from src.auth.permissions import UserRole, can_post_jobs, is_admin
from src.auth.schemas import TokenUser


DELETED_BY_ADMIN = "Deleted by admin"
DELETED_BY_AUTHOR = "Deleted by author"
BLOCKED_BY_ADMIN = "User blocked by admin"

JOB_STORY_TYPE = "job"


def can_modify(user: TokenUser, author: str) -> bool:
    """Admins may edit or delete anything, everyone else only their own items."""
    return is_admin(user.role) or user.username == author


def can_create_story_type(role: UserRole | str, story_type: str) -> bool:
    """Job postings are reserved to employers and admins."""
    if story_type == JOB_STORY_TYPE:
        return can_post_jobs(role)
    return True


def deletion_reason(user: TokenUser, reason: str | None = None) -> str:
    """Reason recorded on a soft delete.

    Admins may supply one; authors deleting their own content always get the
    fixed author reason.
    """
    if is_admin(user.role):
        return reason or DELETED_BY_ADMIN
    return DELETED_BY_AUTHOR
