"""Comment service layer.

Business logic for:
- Comment CRUD with denormalized parent/children links
- Thread assembly through the tree builder
- Soft delete, hard delete of leaves, and admin restore
- Block cascades and point updates used by other services
"""

from typing import TYPE_CHECKING, Any

import structlog

from src.auth.access import can_modify, deletion_reason
from src.auth.permissions import is_admin
from src.auth.schemas import TokenUser
from src.utils import is_external_id, utc_now

from .models import Comment, create_comment
from .tree import CommentTreeBuilder


if TYPE_CHECKING:
    from cassandra.cluster import Session

    from src.search.client import HackerNewsClient


logger = structlog.get_logger(__name__)


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class CommentError(Exception):
    """Base comment error."""

    def __init__(self, message: str, code: str = "comment_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class CommentNotFoundError(CommentError):
    """Comment not found."""

    def __init__(self, message: str = "Comment not found"):
        super().__init__(message, "comment_not_found")


class CommentStoryNotFoundError(CommentError):
    """Local story being commented on does not exist."""

    def __init__(self, message: str = "Story not found"):
        super().__init__(message, "story_not_found")


class CommentExistsError(CommentError):
    """Comment ID collision."""

    def __init__(self, message: str = "Comment with this ID already exists"):
        super().__init__(message, "comment_exists")


class PermissionDeniedError(CommentError):
    """Permission denied for operation."""

    def __init__(self, message: str = "Permission denied"):
        super().__init__(message, "permission_denied")


class CommentNotDeletedError(CommentError):
    """Restore of a comment that is not deleted."""

    def __init__(self, message: str = "Comment is not deleted"):
        super().__init__(message, "not_deleted")


# ==============================================================================
# Comment Service
# ==============================================================================


class CommentService:
    """Service for comment management."""

    def __init__(
        self,
        session: "Session",
        keyspace: str,
        hn_client: "HackerNewsClient | None" = None,
    ):
        """Initialize with Cassandra session and the external source client."""
        self.session = session
        self.keyspace = keyspace
        self.tree_builder = CommentTreeBuilder(self, hn_client)
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient queries."""
        self._insert_comment = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.comments
            (comment_id, author, text, story_id, parent_id, children, points,
             created_at_i, is_deleted, deleted_at, deleted_by, deletion_reason,
             deleted_due_to_block, edited_at, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)

        self._get_comment = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.comments WHERE comment_id = ?
        """)

        self._get_comments_by_story = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.comments WHERE story_id = ?
        """)

        self._get_comments_by_author = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.comments WHERE author = ?
        """)

        self._list_comments = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.comments
        """)

        self._update_text = self.session.prepare(f"""
            UPDATE {self.keyspace}.comments
            SET text = ?, edited_at = ?, updated_at = ?
            WHERE comment_id = ?
        """)

        self._set_deletion = self.session.prepare(f"""
            UPDATE {self.keyspace}.comments
            SET is_deleted = ?, deleted_at = ?, deleted_by = ?, deletion_reason = ?,
                deleted_due_to_block = ?, updated_at = ?
            WHERE comment_id = ?
        """)

        self._delete_comment = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.comments WHERE comment_id = ?
        """)

        self._set_points = self.session.prepare(f"""
            UPDATE {self.keyspace}.comments SET points = ? WHERE comment_id = ?
        """)

        # Children list maintenance, single-row atomic updates
        self._push_comment_child = self.session.prepare(f"""
            UPDATE {self.keyspace}.comments
            SET children = children + ?
            WHERE comment_id = ?
        """)

        self._pull_comment_child = self.session.prepare(f"""
            UPDATE {self.keyspace}.comments
            SET children = children - ?
            WHERE comment_id = ?
        """)

        self._story_exists = self.session.prepare(f"""
            SELECT story_id FROM {self.keyspace}.stories WHERE story_id = ?
        """)

        self._push_story_child = self.session.prepare(f"""
            UPDATE {self.keyspace}.stories
            SET children = children + ?
            WHERE story_id = ?
        """)

        self._pull_story_child = self.session.prepare(f"""
            UPDATE {self.keyspace}.stories
            SET children = children - ?
            WHERE story_id = ?
        """)

    # ==========================================================================
    # Reads
    # ==========================================================================

    async def get_comment(self, comment_id: str) -> Comment | None:
        """Get a comment by ID, deleted or not."""
        result = await self.session.aexecute(self._get_comment, [comment_id])
        row = result[0] if result else None
        return Comment.from_row(row) if row else None

    async def require_comment(self, comment_id: str) -> Comment:
        comment = await self.get_comment(comment_id)
        if not comment:
            raise CommentNotFoundError(f'Comment with ID "{comment_id}" not found')
        return comment

    async def get_visible_comment(self, comment_id: str) -> Comment:
        """Get a comment for public display.

        Raises:
            CommentNotFoundError: Missing or deleted.
        """
        comment = await self.get_comment(comment_id)
        if not comment or comment.is_deleted:
            raise CommentNotFoundError(f'Comment with ID "{comment_id}" not found')
        return comment

    async def list_story_comments(self, story_id: str) -> list[Comment]:
        """Every local comment of a story, deleted ones included."""
        rows = await self.session.aexecute(self._get_comments_by_story, [story_id])
        return [Comment.from_row(row) for row in rows]

    async def list_author_comments(self, author: str) -> list[Comment]:
        rows = await self.session.aexecute(self._get_comments_by_author, [author])
        return [Comment.from_row(row) for row in rows]

    async def list_all_comments(self) -> list[Comment]:
        """Full scan. Admin listings and analytics filter in memory."""
        rows = await self.session.aexecute(self._list_comments)
        return [Comment.from_row(row) for row in rows]

    async def get_thread(self, story_id: str) -> dict[str, Any]:
        """Nested comments of a story with the total node count."""
        return await self.tree_builder.build_for_story(story_id)

    # ==========================================================================
    # Writes
    # ==========================================================================

    async def _local_story_exists(self, story_id: str) -> bool:
        result = await self.session.aexecute(self._story_exists, [story_id])
        return bool(result)

    async def create_comment(
        self,
        author: str,
        text: str,
        story_id: str,
        parent_id: str | None = None,
    ) -> Comment:
        """Create a comment and link it under its parent.

        The parent's ``children`` is updated after the insert. The two writes
        are not atomic together; thread reads only follow links that resolve.

        Raises:
            CommentStoryNotFoundError: Local story does not exist.
            CommentNotFoundError: Local parent comment does not exist.
            CommentExistsError: Generated ID already taken.
        """
        story_is_local = False
        if not is_external_id(story_id):
            if not await self._local_story_exists(story_id):
                raise CommentStoryNotFoundError(f'Story with ID "{story_id}" not found')
            story_is_local = True

        parent_is_local = bool(parent_id) and not is_external_id(parent_id)
        if parent_is_local and not await self.get_comment(parent_id):
            raise CommentNotFoundError(
                f'Parent comment with ID "{parent_id}" not found'
            )

        comment = create_comment(
            author=author, text=text, story_id=story_id, parent_id=parent_id
        )
        if await self.get_comment(comment.comment_id):
            raise CommentExistsError

        await self.session.aexecute(
            self._insert_comment,
            [
                comment.comment_id,
                comment.author,
                comment.text,
                comment.story_id,
                comment.parent_id,
                comment.children,
                comment.points,
                comment.created_at_i,
                comment.is_deleted,
                comment.deleted_at,
                comment.deleted_by,
                comment.deletion_reason,
                comment.deleted_due_to_block,
                comment.edited_at,
                comment.created_at,
                comment.updated_at,
            ],
        )

        if parent_is_local:
            await self.session.aexecute(
                self._push_comment_child, [[comment.comment_id], parent_id]
            )
        elif not parent_id and story_is_local:
            await self.session.aexecute(
                self._push_story_child, [[comment.comment_id], story_id]
            )

        logger.info(
            "comment_created",
            comment_id=comment.comment_id,
            story_id=story_id,
            parent_id=parent_id,
        )
        return comment

    async def update_comment(self, comment_id: str, user: TokenUser, text: str) -> Comment:
        """Edit a comment's text.

        Raises:
            CommentNotFoundError: Missing or deleted.
            PermissionDeniedError: Not the author and not an admin.
        """
        comment = await self.get_visible_comment(comment_id)
        if not can_modify(user, comment.author):
            raise PermissionDeniedError("You can only update your own comments")

        now = utc_now()
        comment.text = text
        comment.edited_at = now
        comment.updated_at = now
        await self.session.aexecute(self._update_text, [text, now, now, comment_id])

        logger.info("comment_updated", comment_id=comment_id)
        return comment

    async def _write_deletion(self, comment: Comment) -> None:
        await self.session.aexecute(
            self._set_deletion,
            [
                comment.is_deleted,
                comment.deleted_at,
                comment.deleted_by,
                comment.deletion_reason,
                comment.deleted_due_to_block,
                comment.updated_at,
                comment.comment_id,
            ],
        )

    async def _soft_delete(self, comment: Comment, user: TokenUser, reason: str) -> None:
        now = utc_now()
        comment.is_deleted = True
        comment.deleted_at = now
        comment.deleted_by = user.username
        comment.deletion_reason = reason
        comment.deleted_due_to_block = False
        comment.updated_at = now
        await self._write_deletion(comment)

    async def _hard_delete(self, comment: Comment) -> None:
        await self.session.aexecute(self._delete_comment, [comment.comment_id])

        if comment.parent_id and not is_external_id(comment.parent_id):
            await self.session.aexecute(
                self._pull_comment_child, [[comment.comment_id], comment.parent_id]
            )
        elif not comment.parent_id and not is_external_id(comment.story_id):
            await self.session.aexecute(
                self._pull_story_child, [[comment.comment_id], comment.story_id]
            )

    async def delete_comment(
        self,
        comment_id: str,
        user: TokenUser,
        reason: str | None = None,
    ) -> dict[str, Any]:
        """Delete a comment.

        Authors delete their own comments: a leaf is removed outright and
        unlinked from its parent; a comment with replies is soft-deleted so the
        thread keeps its shape. Admins always soft-delete and record a reason.

        Raises:
            CommentNotFoundError: Missing.
            PermissionDeniedError: Not the author and not an admin.
        """
        comment = await self.require_comment(comment_id)
        record_reason = deletion_reason(user, reason)

        if is_admin(user.role):
            await self._soft_delete(comment, user, record_reason)
            logger.info(
                "comment_deleted_by_admin",
                comment_id=comment_id,
                reason=record_reason,
            )
            return {
                "message": "Comment has been deleted by admin",
                "deleted_comment": {
                    "comment_id": comment_id,
                    "deleted_by": user.username,
                    "deletion_reason": record_reason,
                    "has_children": comment.has_children,
                },
            }

        if not can_modify(user, comment.author):
            raise PermissionDeniedError("You can only delete your own comments")

        if comment.has_children:
            await self._soft_delete(comment, user, record_reason)
            logger.info("comment_soft_deleted", comment_id=comment_id)
            return {
                "message": f"Comment soft-deleted (has {len(comment.children)} replies)",
                "deleted_comment": {"comment_id": comment_id, "has_children": True},
            }

        await self._hard_delete(comment)
        logger.info("comment_hard_deleted", comment_id=comment_id)
        return {
            "message": "Your comment has been deleted successfully",
            "deleted_comment": {"comment_id": comment_id, "has_children": False},
        }

    async def restore_comment(self, comment_id: str) -> Comment:
        """Clear every delete field, including the block flag.

        Raises:
            CommentNotFoundError: Missing.
            CommentNotDeletedError: Not deleted.
        """
        comment = await self.require_comment(comment_id)
        if not comment.is_deleted:
            raise CommentNotDeletedError

        _clear_deletion(comment)
        await self._write_deletion(comment)
        logger.info("comment_restored", comment_id=comment_id)
        return comment

    # ==========================================================================
    # Block cascade and points
    # ==========================================================================

    async def delete_for_block(self, author: str, admin_username: str, reason: str) -> int:
        """Soft-delete every active comment by ``author`` as block fallout.

        Already deleted comments are left alone so unblocking cannot revive
        them. Rows are updated one by one.
        """
        affected = 0
        now = utc_now()
        for comment in await self.list_author_comments(author):
            if comment.is_deleted:
                continue
            comment.is_deleted = True
            comment.deleted_at = now
            comment.deleted_by = admin_username
            comment.deletion_reason = reason
            comment.deleted_due_to_block = True
            comment.updated_at = now
            await self._write_deletion(comment)
            affected += 1
        return affected

    async def restore_for_unblock(self, author: str) -> int:
        """Restore only the comments the author's block deleted."""
        affected = 0
        for comment in await self.list_author_comments(author):
            if not comment.deleted_due_to_block:
                continue
            _clear_deletion(comment)
            await self._write_deletion(comment)
            affected += 1
        return affected

    async def adjust_points(self, comment_id: str, delta: int) -> int | None:
        """Read-modify-write of ``points``. Returns the new value, None if missing."""
        comment = await self.get_comment(comment_id)
        if not comment:
            return None
        new_points = max(0, comment.points + delta)
        await self.session.aexecute(self._set_points, [new_points, comment_id])
        return new_points


def _clear_deletion(comment: Comment) -> None:
    comment.is_deleted = False
    comment.deleted_at = None
    comment.deleted_by = None
    comment.deletion_reason = None
    comment.deleted_due_to_block = False
    comment.updated_at = utc_now()
