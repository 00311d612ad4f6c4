"""Story service layer.

Business logic for:
- Story CRUD with the job-posting role rule
- Stories with their nested comment trees
- Soft delete, admin restore, block cascades and point updates
"""

from typing import TYPE_CHECKING, Any

import structlog

from src.auth.access import can_create_story_type, can_modify, deletion_reason
from src.auth.permissions import is_admin
from src.auth.schemas import TokenUser
from src.utils import utc_now

from .models import Story, create_story
from .schemas import CreateStoryRequest, UpdateStoryRequest


if TYPE_CHECKING:
    from cassandra.cluster import Session

    from src.comments.tree import CommentTreeBuilder


logger = structlog.get_logger(__name__)


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class StoryError(Exception):
    """Base story error."""

    def __init__(self, message: str, code: str = "story_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class StoryNotFoundError(StoryError):
    def __init__(self, message: str = "Story not found"):
        super().__init__(message, "story_not_found")


class StoryExistsError(StoryError):
    def __init__(self, message: str = "Story with this ID or Story ID already exists"):
        super().__init__(message, "story_exists")


class StoryPermissionDeniedError(StoryError):
    def __init__(self, message: str = "Permission denied"):
        super().__init__(message, "permission_denied")


class StoryNotDeletedError(StoryError):
    def __init__(self, message: str = "Story is not deleted"):
        super().__init__(message, "not_deleted")


# ==============================================================================
# Story Service
# ==============================================================================


class StoryService:
    """Service for story management."""

    def __init__(
        self,
        session: "Session",
        keyspace: str,
        tree_builder: "CommentTreeBuilder | None" = None,
    ):
        self.session = session
        self.keyspace = keyspace
        self.tree_builder = tree_builder
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements."""
        self._insert_story = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.stories
            (story_id, author, title, text, url, type, points, children, tags,
             created_at_i, is_deleted, deleted_at, deleted_by, deletion_reason,
             deleted_due_to_block, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)

        self._get_story = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.stories WHERE story_id = ?
        """)

        self._get_stories_by_type = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.stories WHERE type = ?
        """)

        self._get_stories_by_author = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.stories WHERE author = ?
        """)

        self._list_stories = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.stories
        """)

        self._update_story = self.session.prepare(f"""
            UPDATE {self.keyspace}.stories
            SET title = ?, text = ?, url = ?, tags = ?, updated_at = ?
            WHERE story_id = ?
        """)

        self._set_deletion = self.session.prepare(f"""
            UPDATE {self.keyspace}.stories
            SET is_deleted = ?, deleted_at = ?, deleted_by = ?, deletion_reason = ?,
                deleted_due_to_block = ?, updated_at = ?
            WHERE story_id = ?
        """)

        self._set_points = self.session.prepare(f"""
            UPDATE {self.keyspace}.stories SET points = ? WHERE story_id = ?
        """)

    # ==========================================================================
    # Reads
    # ==========================================================================

    async def get_story(self, story_id: str) -> Story | None:
        """Get a story by ID, deleted or not."""
        result = await self.session.aexecute(self._get_story, [story_id])
        row = result[0] if result else None
        return Story.from_row(row) if row else None

    async def require_story(self, story_id: str) -> Story:
        story = await self.get_story(story_id)
        if not story:
            raise StoryNotFoundError(f'Story with ID "{story_id}" not found')
        return story

    async def get_visible_story(self, story_id: str) -> Story:
        """Raises StoryNotFoundError for missing or deleted stories."""
        story = await self.get_story(story_id)
        if not story or story.is_deleted:
            raise StoryNotFoundError(f'Story with ID "{story_id}" not found')
        return story

    async def list_all_stories(self) -> list[Story]:
        """Full scan, deleted stories included."""
        rows = await self.session.aexecute(self._list_stories)
        return [Story.from_row(row) for row in rows]

    async def list_stories(self) -> list[Story]:
        """Active stories, newest first."""
        stories = [s for s in await self.list_all_stories() if not s.is_deleted]
        return sorted(stories, key=lambda s: s.created_at_i, reverse=True)

    async def list_stories_by_type(self, story_type: str) -> list[Story]:
        rows = await self.session.aexecute(self._get_stories_by_type, [story_type])
        stories = [Story.from_row(row) for row in rows]
        return sorted(
            (s for s in stories if not s.is_deleted),
            key=lambda s: s.created_at_i,
            reverse=True,
        )

    async def list_author_stories(self, author: str) -> list[Story]:
        rows = await self.session.aexecute(self._get_stories_by_author, [author])
        return [Story.from_row(row) for row in rows]

    async def search_local(self, query: str, limit: int = 30) -> list[Story]:
        """Title substring match over active stories, newest first."""
        needle = query.lower().strip()
        stories = await self.list_stories()
        if needle:
            stories = [s for s in stories if needle in s.title.lower()]
        return stories[:limit]

    async def get_story_with_children(self, story_id: str) -> dict[str, Any]:
        """Story in item shape with ``children`` expanded into comment trees."""
        story = await self.get_visible_story(story_id)
        item = story.to_item()
        if self.tree_builder is not None:
            item["children"] = await self.tree_builder.build_from_ids(story.children)
        return item

    # ==========================================================================
    # Writes
    # ==========================================================================

    async def create_story(self, user: TokenUser, data: CreateStoryRequest) -> Story:
        """Post a story.

        Raises:
            StoryPermissionDeniedError: Job posting by a regular user.
            StoryExistsError: Generated ID already taken.
        """
        if not can_create_story_type(user.role, data.type.value):
            raise StoryPermissionDeniedError("Only employers can create job postings")

        story = create_story(
            author=user.username,
            title=data.title,
            type=data.type.value,
            text=data.text,
            url=data.url,
            tags=data.tags,
        )
        if await self.get_story(story.story_id):
            raise StoryExistsError

        await self.session.aexecute(
            self._insert_story,
            [
                story.story_id,
                story.author,
                story.title,
                story.text,
                story.url,
                story.type,
                story.points,
                story.children,
                story.tags,
                story.created_at_i,
                story.is_deleted,
                story.deleted_at,
                story.deleted_by,
                story.deletion_reason,
                story.deleted_due_to_block,
                story.created_at,
                story.updated_at,
            ],
        )

        logger.info("story_created", story_id=story.story_id, type=story.type)
        return story

    async def update_story(
        self, story_id: str, user: TokenUser, data: UpdateStoryRequest
    ) -> Story:
        """Edit title, text, url or tags.

        Raises:
            StoryNotFoundError: Missing or deleted.
            StoryPermissionDeniedError: Not the author and not an admin.
        """
        story = await self.get_visible_story(story_id)
        if not can_modify(user, story.author):
            raise StoryPermissionDeniedError("You can only update your own stories")

        if data.title is not None:
            story.title = data.title.strip()
        if data.text is not None:
            story.text = data.text
        if data.url is not None:
            story.url = data.url
        if data.tags is not None:
            story.tags = list(data.tags)
        story.updated_at = utc_now()

        await self.session.aexecute(
            self._update_story,
            [story.title, story.text, story.url, story.tags, story.updated_at, story_id],
        )
        logger.info("story_updated", story_id=story_id)
        return story

    async def _write_deletion(self, story: Story) -> None:
        await self.session.aexecute(
            self._set_deletion,
            [
                story.is_deleted,
                story.deleted_at,
                story.deleted_by,
                story.deletion_reason,
                story.deleted_due_to_block,
                story.updated_at,
                story.story_id,
            ],
        )

    async def delete_story(
        self,
        story_id: str,
        user: TokenUser,
        reason: str | None = None,
    ) -> dict[str, Any]:
        """Soft-delete a story. Its comments stay untouched.

        Raises:
            StoryNotFoundError: Missing or already deleted.
            StoryPermissionDeniedError: Not the author and not an admin.
        """
        story = await self.get_visible_story(story_id)
        if not can_modify(user, story.author):
            raise StoryPermissionDeniedError("You can only delete your own stories")

        now = utc_now()
        story.is_deleted = True
        story.deleted_at = now
        story.deleted_by = user.username
        story.deletion_reason = deletion_reason(user, reason)
        story.updated_at = now
        await self._write_deletion(story)

        logger.info(
            "story_deleted", story_id=story_id, reason=story.deletion_reason
        )

        if is_admin(user.role):
            return {
                "message": f'Story "{story.title}" has been deleted by admin',
                "deleted_story": {
                    "story_id": story.story_id,
                    "title": story.title,
                    "deleted_by": user.username,
                    "deletion_reason": story.deletion_reason,
                },
            }
        return {
            "message": "Your story has been deleted successfully",
            "deleted_story": {"story_id": story.story_id, "title": story.title},
        }

    async def restore_story(self, story_id: str) -> Story:
        """Clear every delete field, including the block flag.

        Raises:
            StoryNotFoundError: Missing.
            StoryNotDeletedError: Not deleted.
        """
        story = await self.require_story(story_id)
        if not story.is_deleted:
            raise StoryNotDeletedError

        _clear_deletion(story)
        await self._write_deletion(story)
        logger.info("story_restored", story_id=story_id)
        return story

    # ==========================================================================
    # Block cascade and points
    # ==========================================================================

    async def delete_for_block(self, author: str, admin_username: str, reason: str) -> int:
        """Soft-delete the author's active stories, flagged as block fallout."""
        affected = 0
        now = utc_now()
        for story in await self.list_author_stories(author):
            if story.is_deleted:
                continue
            story.is_deleted = True
            story.deleted_at = now
            story.deleted_by = admin_username
            story.deletion_reason = reason
            story.deleted_due_to_block = True
            story.updated_at = now
            await self._write_deletion(story)
            affected += 1
        return affected

    async def restore_for_unblock(self, author: str) -> int:
        """Restore only the stories the author's block deleted."""
        affected = 0
        for story in await self.list_author_stories(author):
            if not story.deleted_due_to_block:
                continue
            _clear_deletion(story)
            await self._write_deletion(story)
            affected += 1
        return affected

    async def adjust_points(self, story_id: str, delta: int) -> int | None:
        """Read-modify-write of ``points``. Returns the new value, None if missing."""
        story = await self.get_story(story_id)
        if not story:
            return None
        new_points = max(0, story.points + delta)
        await self.session.aexecute(self._set_points, [new_points, story_id])
        return new_points


def _clear_deletion(story: Story) -> None:
    story.is_deleted = False
    story.deleted_at = None
    story.deleted_by = None
    story.deletion_reason = None
    story.deleted_due_to_block = False
    story.updated_at = utc_now()
