"""Admin service layer.

Business logic for:
- Blocking and unblocking users with the content cascade
- The registration email blocklist
- Moderation listings and restores
- Analytics over users, stories and comments
"""

from typing import TYPE_CHECKING, Any

import structlog

from src.auth.access import BLOCKED_BY_ADMIN
from src.auth.schemas import TokenUser
from src.comments.service import CommentError
from src.stories.service import StoryError
from src.users.models import BlockedEmail, User
from src.users.service import UserError
from src.utils import iso_or_none

from . import analytics
from .schemas import Page, paginate


if TYPE_CHECKING:
    from src.comments.service import CommentService
    from src.stories.service import StoryService
    from src.users.service import UserService


logger = structlog.get_logger(__name__)


ADMIN_TEXT_PREVIEW = 100
RESTORE_TEXT_PREVIEW = 50


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class AdminError(Exception):
    """Base admin error.

    Errors raised by the user, story and comment services are wrapped so the
    admin router maps a single hierarchy.
    """

    def __init__(self, message: str, code: str = "admin_error"):
        self.message = message
        self.code = code
        super().__init__(message)

    @classmethod
    def wrap(cls, error: UserError | StoryError | CommentError) -> "AdminError":
        return cls(error.message, error.code)


class AlreadyBlockedError(AdminError):
    def __init__(self, message: str = "User is already blocked"):
        super().__init__(message, "already_blocked")


class NotBlockedError(AdminError):
    def __init__(self, message: str = "User is not blocked"):
        super().__init__(message, "not_blocked")


# ==============================================================================
# Admin Service
# ==============================================================================


class AdminService:
    """Moderation operations spanning users, stories and comments."""

    def __init__(
        self,
        user_service: "UserService",
        story_service: "StoryService",
        comment_service: "CommentService",
    ):
        self.user_service = user_service
        self.story_service = story_service
        self.comment_service = comment_service

    async def _require_user(self, user_id: str) -> User:
        try:
            return await self.user_service.require_user(user_id)
        except UserError as e:
            raise AdminError.wrap(e) from e

    # ==========================================================================
    # Block / unblock
    # ==========================================================================

    async def block_user(self, user_id: str, admin: TokenUser) -> dict[str, Any]:
        """Block a user and soft-delete all of their active content.

        Content that was already deleted is left alone, so a later unblock
        restores exactly what this call removed.

        Raises:
            AdminError: User not found.
            AlreadyBlockedError: User already blocked.
        """
        user = await self._require_user(user_id)
        if user.is_blocked:
            raise AlreadyBlockedError

        await self.user_service.set_block_state(user, True, admin.username)

        stories = await self.story_service.delete_for_block(
            user.username, admin.username, BLOCKED_BY_ADMIN
        )
        comments = await self.comment_service.delete_for_block(
            user.username, admin.username, BLOCKED_BY_ADMIN
        )

        logger.info(
            "user_blocked",
            user_id=str(user.id),
            blocked_by=admin.username,
            stories_deleted=stories,
            comments_deleted=comments,
        )

        return {
            "message": (
                f"User {user.username} has been blocked and all their content "
                "has been auto-deleted."
            ),
            "user": {
                "id": str(user.id),
                "username": user.username,
                "email": user.email,
                "is_blocked": user.is_blocked,
                "blocked_at": iso_or_none(user.blocked_at),
                "blocked_by": user.blocked_by,
            },
            "stories_deleted": stories,
            "comments_deleted": comments,
        }

    async def unblock_user(self, user_id: str) -> dict[str, Any]:
        """Unblock a user and restore only the content the block removed.

        Raises:
            AdminError: User not found.
            NotBlockedError: User not blocked.
        """
        user = await self._require_user(user_id)
        if not user.is_blocked:
            raise NotBlockedError

        await self.user_service.set_block_state(user, False, None)

        stories = await self.story_service.restore_for_unblock(user.username)
        comments = await self.comment_service.restore_for_unblock(user.username)

        logger.info(
            "user_unblocked",
            user_id=str(user.id),
            stories_restored=stories,
            comments_restored=comments,
        )

        return {
            "message": (
                f"User {user.username} has been unblocked and their "
                "auto-deleted content restored."
            ),
            "user": {
                "id": str(user.id),
                "username": user.username,
                "email": user.email,
                "is_blocked": user.is_blocked,
            },
            "stories_restored": stories,
            "comments_restored": comments,
        }

    # ==========================================================================
    # Users
    # ==========================================================================

    async def list_users(
        self,
        page: int = 1,
        limit: int = 20,
        role: str | None = None,
        is_blocked: bool | None = None,
    ) -> Page:
        users = await self.user_service.list_users()
        if role:
            users = [u for u in users if u.role == role]
        if is_blocked is not None:
            users = [u for u in users if u.is_blocked == is_blocked]
        users.sort(key=lambda u: u.created_at, reverse=True)
        return paginate([_admin_user_dict(u) for u in users], page, limit)

    async def get_user(self, user_id: str) -> dict[str, Any]:
        user = await self._require_user(user_id)
        return user.to_dict()

    # ==========================================================================
    # Email blocklist
    # ==========================================================================

    async def block_email(
        self, email: str, admin: TokenUser, reason: str | None = None
    ) -> dict[str, Any]:
        try:
            entry = await self.user_service.block_email(email, admin.username, reason)
        except UserError as e:
            raise AdminError.wrap(e) from e
        return {
            "message": f"Email {entry.email} has been blocked",
            "blocked_email": entry.to_dict(),
        }

    async def unblock_email(self, email: str) -> dict[str, str]:
        try:
            await self.user_service.unblock_email(email)
        except UserError as e:
            raise AdminError.wrap(e) from e
        return {"message": f"Email {email.lower().strip()} has been unblocked"}

    async def list_blocked_emails(self, page: int = 1, limit: int = 20) -> Page:
        entries: list[BlockedEmail] = await self.user_service.list_blocked_emails()
        return paginate([e.to_dict() for e in entries], page, limit)

    # ==========================================================================
    # Content listings
    # ==========================================================================

    async def list_stories(
        self,
        page: int = 1,
        limit: int = 20,
        story_type: str | None = None,
        author: str | None = None,
        include_deleted: bool = False,
    ) -> Page:
        stories = await self.story_service.list_all_stories()
        if story_type:
            stories = [s for s in stories if s.type == story_type]
        if author:
            stories = [s for s in stories if s.author == author]
        if not include_deleted:
            stories = [s for s in stories if not s.is_deleted]
        stories.sort(key=lambda s: s.created_at_i, reverse=True)
        return paginate(
            [s.to_admin_dict(truncate=ADMIN_TEXT_PREVIEW) for s in stories], page, limit
        )

    async def list_comments(
        self,
        page: int = 1,
        limit: int = 20,
        story_id: str | None = None,
        author: str | None = None,
        include_deleted: bool = False,
    ) -> Page:
        comments = await self.comment_service.list_all_comments()
        if story_id:
            comments = [c for c in comments if c.story_id == story_id]
        if author:
            comments = [c for c in comments if c.author == author]
        if not include_deleted:
            comments = [c for c in comments if not c.is_deleted]
        comments.sort(key=lambda c: c.created_at_i, reverse=True)
        return paginate(
            [c.to_admin_dict(truncate=ADMIN_TEXT_PREVIEW) for c in comments], page, limit
        )

    async def list_deleted_stories(self, page: int = 1, limit: int = 20) -> Page:
        stories = [s for s in await self.story_service.list_all_stories() if s.is_deleted]
        stories.sort(key=lambda s: s.deleted_at.timestamp() if s.deleted_at else 0, reverse=True)
        return paginate([s.to_admin_dict() for s in stories], page, limit)

    async def list_deleted_comments(self, page: int = 1, limit: int = 20) -> Page:
        comments = [
            c for c in await self.comment_service.list_all_comments() if c.is_deleted
        ]
        comments.sort(key=lambda c: c.deleted_at.timestamp() if c.deleted_at else 0, reverse=True)
        return paginate([c.to_admin_dict() for c in comments], page, limit)

    # ==========================================================================
    # Restore
    # ==========================================================================

    async def restore_story(self, story_id: str, admin: TokenUser) -> dict[str, Any]:
        try:
            story = await self.story_service.restore_story(story_id)
        except StoryError as e:
            raise AdminError.wrap(e) from e
        return {
            "message": f'Story "{story.title}" has been restored by admin {admin.username}',
            "restored_story": {
                "story_id": story.story_id,
                "title": story.title,
                "author": story.author,
                "is_deleted": story.is_deleted,
            },
        }

    async def restore_comment(self, comment_id: str, admin: TokenUser) -> dict[str, Any]:
        try:
            comment = await self.comment_service.restore_comment(comment_id)
        except CommentError as e:
            raise AdminError.wrap(e) from e
        preview = comment.to_admin_dict(truncate=RESTORE_TEXT_PREVIEW)
        return {
            "message": f"Comment has been restored by admin {admin.username}",
            "restored_comment": {
                "comment_id": comment.comment_id,
                "author": comment.author,
                "text": preview["text"],
                "story_id": comment.story_id,
                "is_deleted": comment.is_deleted,
            },
        }

    # ==========================================================================
    # Analytics
    # ==========================================================================

    async def problematic_users(self, limit: int = 20) -> dict[str, Any]:
        return analytics.problematic_users(
            await self.user_service.list_users(),
            await self.story_service.list_all_stories(),
            await self.comment_service.list_all_comments(),
            limit=limit,
        )

    async def top_contributors(self, limit: int = 10) -> dict[str, Any]:
        return analytics.top_contributors(
            await self.user_service.list_users(),
            await self.story_service.list_all_stories(),
            await self.comment_service.list_all_comments(),
            limit=limit,
        )

    async def trending(self, period: str = "week") -> dict[str, Any]:
        return analytics.trending_content(
            await self.story_service.list_all_stories(), period
        )

    async def dashboard_stats(self) -> dict[str, Any]:
        return analytics.dashboard_stats(
            await self.user_service.list_users(),
            await self.story_service.list_all_stories(),
            await self.comment_service.list_all_comments(),
            blocked_emails=len(await self.user_service.list_blocked_emails()),
        )


def _admin_user_dict(user: User) -> dict[str, Any]:
    return {
        "id": str(user.id),
        "username": user.username,
        "email": user.email,
        "first_name": user.first_name,
        "last_name": user.last_name,
        "role": user.role,
        "is_blocked": user.is_blocked,
        "blocked_at": iso_or_none(user.blocked_at),
        "blocked_by": user.blocked_by,
        "created_at": iso_or_none(user.created_at),
    }
