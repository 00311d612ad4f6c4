"""Database models for threaded comments.

Threading is denormalized: each comment stores ``parent_id`` and the parent
(story or comment) stores the ordered ``children`` IDs. ``story_id`` and
``parent_id`` may point at Hacker News items that have no local row.

Deleted comments keep their stored text so an admin restore brings it back.
Masking happens when the comment is rendered.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from src.auth.access import DELETED_BY_AUTHOR
from src.utils import ensure_utc_aware, epoch_seconds, iso_or_none, new_item_id, utc_now


DELETED_AUTHOR = "[deleted]"
DELETED_TEXT = "[deleted]"
DELETED_BY_ADMIN_TEXT = "[deleted by admin]"


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

COMMENT_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.comments (
    comment_id TEXT PRIMARY KEY,
    author TEXT,
    text TEXT,
    story_id TEXT,
    parent_id TEXT,
    children LIST<TEXT>,
    points INT,
    created_at_i BIGINT,
    is_deleted BOOLEAN,
    deleted_at TIMESTAMP,
    deleted_by TEXT,
    deletion_reason TEXT,
    deleted_due_to_block BOOLEAN,
    edited_at TIMESTAMP,
    created_at TIMESTAMP,
    updated_at TIMESTAMP
)
"""

# Thread assembly loads every local comment of a story
COMMENT_STORY_INDEX_CQL = """
CREATE INDEX IF NOT EXISTS comments_story_idx ON {keyspace}.comments (story_id)
"""

# Block cascades select by author
COMMENT_AUTHOR_INDEX_CQL = """
CREATE INDEX IF NOT EXISTS comments_author_idx ON {keyspace}.comments (author)
"""

COMMENTS_TABLES_CQL = [
    COMMENT_TABLE_CQL,
    COMMENT_STORY_INDEX_CQL,
    COMMENT_AUTHOR_INDEX_CQL,
]


# ==============================================================================
# Entity Classes
# ==============================================================================


@dataclass
class Comment:
    """Comment entity with full details."""

    comment_id: str
    author: str
    text: str
    story_id: str
    parent_id: str | None
    children: list[str]
    points: int
    created_at_i: int
    created_at: datetime
    updated_at: datetime
    is_deleted: bool = False
    deleted_at: datetime | None = None
    deleted_by: str | None = None
    deletion_reason: str | None = None
    deleted_due_to_block: bool = False
    edited_at: datetime | None = None

    @classmethod
    def from_row(cls, row: Any) -> "Comment":
        """Create Comment from Cassandra row."""
        created_at = ensure_utc_aware(row.created_at)
        return cls(
            comment_id=row.comment_id,
            author=row.author,
            text=row.text or "",
            story_id=row.story_id,
            parent_id=row.parent_id or None,
            children=list(row.children or []),
            points=row.points or 0,
            created_at_i=row.created_at_i or 0,
            created_at=created_at,
            updated_at=ensure_utc_aware(row.updated_at) or created_at,
            is_deleted=bool(row.is_deleted),
            deleted_at=ensure_utc_aware(row.deleted_at),
            deleted_by=row.deleted_by,
            deletion_reason=row.deletion_reason,
            deleted_due_to_block=bool(row.deleted_due_to_block),
            edited_at=ensure_utc_aware(row.edited_at),
        )

    @property
    def has_children(self) -> bool:
        return bool(self.children)

    def display_author(self) -> str:
        return DELETED_AUTHOR if self.is_deleted else self.author

    def display_text(self) -> str:
        """Text as readers see it.

        Comments the author deleted read ``[deleted]``. Anything removed by
        moderation, including a block cascade, reads ``[deleted by admin]``,
        even when an admin removes their own comment.
        """
        if not self.is_deleted:
            return self.text
        if self.deletion_reason == DELETED_BY_AUTHOR:
            return DELETED_TEXT
        return DELETED_BY_ADMIN_TEXT

    def to_item(self) -> dict[str, Any]:
        """Hacker News item shape with masking applied, ``children`` as IDs."""
        text = self.display_text()
        item = {
            "author": self.display_author(),
            "children": list(self.children),
            "created_at": iso_or_none(self.created_at),
            "created_at_i": self.created_at_i,
            "id": self.comment_id,
            "options": [],
            "parent_id": self.parent_id,
            "points": self.points,
            "story_id": self.story_id,
            "text": text,
            "comment_text": text,
            "title": None,
            "type": "comment",
            "url": None,
            "_tags": ["comment"],
        }
        if self.edited_at:
            item["edited_at"] = iso_or_none(self.edited_at)
        return item

    def to_admin_dict(self, truncate: int | None = None) -> dict[str, Any]:
        """Moderation view: real author and text plus delete state."""
        text = self.text
        if truncate is not None and len(text) > truncate:
            text = text[:truncate] + "..."
        return {
            "comment_id": self.comment_id,
            "author": self.author,
            "text": text,
            "story_id": self.story_id,
            "parent_id": self.parent_id,
            "children": list(self.children),
            "points": self.points,
            "created_at": iso_or_none(self.created_at),
            "created_at_i": self.created_at_i,
            "edited_at": iso_or_none(self.edited_at),
            "is_deleted": self.is_deleted,
            "deleted_at": iso_or_none(self.deleted_at),
            "deleted_by": self.deleted_by,
            "deletion_reason": self.deletion_reason,
            "deleted_due_to_block": self.deleted_due_to_block,
        }


# ==============================================================================
# Factory Functions
# ==============================================================================


def create_comment(
    author: str,
    text: str,
    story_id: str,
    parent_id: str | None = None,
) -> Comment:
    """Create a new comment with default values."""
    now = utc_now()
    return Comment(
        comment_id=new_item_id(),
        author=author,
        text=text,
        story_id=story_id,
        parent_id=parent_id or None,
        children=[],
        points=0,
        created_at_i=epoch_seconds(now),
        created_at=now,
        updated_at=now,
    )
