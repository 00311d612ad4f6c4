"""Like service layer.

Toggling a like writes the (item, user) row, the user's liked-items set and,
for local items, the item's stored points. Hacker News items keep their
score upstream; their total is the upstream score plus local likes.
"""

from typing import TYPE_CHECKING

import structlog

from src.auth.schemas import TokenUser
from src.core.redis import cache_get_json, cache_set_json, external_points_key
from src.search.client import ItemNotFoundError, UpstreamUnavailableError
from src.utils import is_external_id

from .models import LikeItemType, create_like


if TYPE_CHECKING:
    from cassandra.cluster import Session

    from src.comments.service import CommentService
    from src.search.client import HackerNewsClient
    from src.stories.service import StoryService
    from src.users.service import UserService


logger = structlog.get_logger(__name__)


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class LikeError(Exception):
    """Base like error."""

    def __init__(self, message: str, code: str = "like_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class LikeItemNotFoundError(LikeError):
    def __init__(self, message: str = "Item not found"):
        super().__init__(message, "item_not_found")


# ==============================================================================
# Like Service
# ==============================================================================


class LikeService:
    """Service for likes and point totals."""

    def __init__(
        self,
        session: "Session",
        keyspace: str,
        user_service: "UserService",
        story_service: "StoryService",
        comment_service: "CommentService",
        hn_client: "HackerNewsClient | None" = None,
        points_cache_ttl: int = 300,
    ):
        self.session = session
        self.keyspace = keyspace
        self.user_service = user_service
        self.story_service = story_service
        self.comment_service = comment_service
        self.hn_client = hn_client
        self.points_cache_ttl = points_cache_ttl
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements."""
        self._insert_like = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.likes (item_id, username, item_type, created_at)
            VALUES (?, ?, ?, ?)
        """)

        self._get_like = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.likes WHERE item_id = ? AND username = ?
        """)

        self._delete_like = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.likes WHERE item_id = ? AND username = ?
        """)

        self._count_likes = self.session.prepare(f"""
            SELECT COUNT(*) AS like_count FROM {self.keyspace}.likes WHERE item_id = ?
        """)

    # ==========================================================================
    # Item resolution
    # ==========================================================================

    async def _resolve_item_type(
        self, item_id: str, item_type: LikeItemType | None
    ) -> LikeItemType:
        """Confirm a local item exists and return its type.

        External items are taken on trust, defaulting to story.
        """
        if is_external_id(item_id):
            return item_type or LikeItemType.STORY

        if item_type in (None, LikeItemType.STORY):
            if await self.story_service.get_story(item_id):
                return LikeItemType.STORY
        if item_type in (None, LikeItemType.COMMENT):
            if await self.comment_service.get_comment(item_id):
                return LikeItemType.COMMENT
        raise LikeItemNotFoundError

    async def _local_points(self, item_id: str, item_type: LikeItemType) -> int:
        if item_type == LikeItemType.COMMENT:
            comment = await self.comment_service.get_comment(item_id)
            return comment.points if comment else 0
        story = await self.story_service.get_story(item_id)
        return story.points if story else 0

    async def _external_points(self, item_id: str) -> int:
        """Upstream score, cached. 0 when the upstream is unreachable."""
        key = external_points_key(item_id)
        cached = await cache_get_json(key)
        if cached is not None:
            return int(cached)

        if self.hn_client is None:
            return 0
        try:
            points = await self.hn_client.get_item_points(item_id)
        except (UpstreamUnavailableError, ItemNotFoundError) as e:
            logger.warning("external_points_unavailable", item_id=item_id, error=e.message)
            return 0

        await cache_set_json(key, points, self.points_cache_ttl)
        return points

    # ==========================================================================
    # Reads
    # ==========================================================================

    async def get_like_count(self, item_id: str) -> int:
        result = await self.session.aexecute(self._count_likes, [item_id])
        row = result[0] if result else None
        return int(row.like_count) if row else 0

    async def is_liked_by(self, item_id: str, username: str) -> bool:
        result = await self.session.aexecute(self._get_like, [item_id, username])
        return bool(result)

    async def get_total_points(
        self, item_id: str, item_type: LikeItemType | None = None
    ) -> int:
        """Stored points for local items, upstream score plus likes otherwise."""
        if is_external_id(item_id):
            return await self._external_points(item_id) + await self.get_like_count(
                item_id
            )
        resolved = await self._resolve_item_type(item_id, item_type)
        return await self._local_points(item_id, resolved)

    async def get_status(
        self,
        item_id: str,
        item_type: LikeItemType | None = None,
        username: str | None = None,
    ) -> dict[str, int | bool]:
        like_count = await self.get_like_count(item_id)
        total_points = await self.get_total_points(item_id, item_type)
        is_liked = await self.is_liked_by(item_id, username) if username else False
        return {
            "like_count": like_count,
            "total_points": total_points,
            "is_liked": is_liked,
        }

    async def get_user_likes(self, user: TokenUser) -> list[str]:
        profile = await self.user_service.require_user(user.id)
        return sorted(profile.likes)

    # ==========================================================================
    # Toggle
    # ==========================================================================

    async def toggle_like(
        self,
        item_id: str,
        user: TokenUser,
        item_type: LikeItemType | None = None,
    ) -> dict[str, int | bool]:
        """Like the item, or unlike it when already liked.

        Raises:
            LikeItemNotFoundError: Unknown local item.
        """
        resolved = await self._resolve_item_type(item_id, item_type)
        internal = not is_external_id(item_id)

        if await self.is_liked_by(item_id, user.username):
            await self.session.aexecute(self._delete_like, [item_id, user.username])
            await self.user_service.remove_liked_item(user.id, item_id)
            delta = -1
            liked = False
        else:
            like = create_like(item_id, user.username, resolved.value)
            await self.session.aexecute(
                self._insert_like,
                [like.item_id, like.username, like.item_type, like.created_at],
            )
            await self.user_service.add_liked_item(user.id, item_id)
            delta = 1
            liked = True

        if internal:
            if resolved == LikeItemType.COMMENT:
                await self.comment_service.adjust_points(item_id, delta)
            else:
                await self.story_service.adjust_points(item_id, delta)

        logger.info("like_toggled", item_id=item_id, item_type=resolved.value, liked=liked)
        return {
            "liked": liked,
            "total_points": await self.get_total_points(item_id, resolved),
        }
