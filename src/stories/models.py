"""Database models for stories.

A story keeps the ordered IDs of its top-level comments in ``children``.
The author is the username at posting time, not a foreign key.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

from src.utils import ensure_utc_aware, epoch_seconds, iso_or_none, new_item_id, utc_now


class StoryType(str, Enum):
    """Item types shared with Hacker News."""

    STORY = "story"
    JOB = "job"
    POLL = "poll"
    COMMENT = "comment"
    POLLOPT = "pollopt"


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

STORY_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.stories (
    story_id TEXT PRIMARY KEY,
    author TEXT,
    title TEXT,
    text TEXT,
    url TEXT,
    type TEXT,
    points INT,
    children LIST<TEXT>,
    tags LIST<TEXT>,
    created_at_i BIGINT,
    is_deleted BOOLEAN,
    deleted_at TIMESTAMP,
    deleted_by TEXT,
    deletion_reason TEXT,
    deleted_due_to_block BOOLEAN,
    created_at TIMESTAMP,
    updated_at TIMESTAMP
)
"""

STORY_AUTHOR_INDEX_CQL = """
CREATE INDEX IF NOT EXISTS stories_author_idx ON {keyspace}.stories (author)
"""

STORY_TYPE_INDEX_CQL = """
CREATE INDEX IF NOT EXISTS stories_type_idx ON {keyspace}.stories (type)
"""

STORIES_TABLES_CQL = [
    STORY_TABLE_CQL,
    STORY_AUTHOR_INDEX_CQL,
    STORY_TYPE_INDEX_CQL,
]


# ==============================================================================
# Entity Classes
# ==============================================================================


@dataclass
class Story:
    """Story entity."""

    story_id: str
    author: str
    title: str
    text: str | None
    url: str | None
    type: str
    points: int
    children: list[str]
    tags: list[str]
    created_at_i: int
    created_at: datetime
    updated_at: datetime
    is_deleted: bool = False
    deleted_at: datetime | None = None
    deleted_by: str | None = None
    deletion_reason: str | None = None
    deleted_due_to_block: bool = False

    @classmethod
    def from_row(cls, row: Any) -> "Story":
        """Create Story from Cassandra row."""
        created_at = ensure_utc_aware(row.created_at)
        return cls(
            story_id=row.story_id,
            author=row.author,
            title=row.title or "",
            text=row.text,
            url=row.url,
            type=row.type or StoryType.STORY.value,
            points=row.points or 0,
            children=list(row.children or []),
            tags=list(row.tags or []),
            created_at_i=row.created_at_i or 0,
            created_at=created_at,
            updated_at=ensure_utc_aware(row.updated_at) or created_at,
            is_deleted=bool(row.is_deleted),
            deleted_at=ensure_utc_aware(row.deleted_at),
            deleted_by=row.deleted_by,
            deletion_reason=row.deletion_reason,
            deleted_due_to_block=bool(row.deleted_due_to_block),
        )

    def item_tags(self) -> list[str]:
        tags = list(self.tags)
        if self.type not in tags:
            tags.append(self.type)
        return tags

    def to_item(self) -> dict[str, Any]:
        """Hacker News item shape, ``children`` as IDs."""
        return {
            "author": self.author,
            "children": list(self.children),
            "created_at": iso_or_none(self.created_at),
            "created_at_i": self.created_at_i,
            "id": self.story_id,
            "options": [],
            "parent_id": None,
            "points": self.points,
            "story_id": self.story_id,
            "text": self.text,
            "comment_text": None,
            "title": self.title,
            "type": self.type,
            "url": self.url,
            "_tags": self.item_tags(),
        }

    def to_admin_dict(self, truncate: int | None = None) -> dict[str, Any]:
        """Moderation view including delete state."""
        text = self.text
        if text and truncate is not None and len(text) > truncate:
            text = text[:truncate] + "..."
        return {
            **self.to_item(),
            "text": text,
            "is_deleted": self.is_deleted,
            "deleted_at": iso_or_none(self.deleted_at),
            "deleted_by": self.deleted_by,
            "deletion_reason": self.deletion_reason,
            "deleted_due_to_block": self.deleted_due_to_block,
        }


# ==============================================================================
# Factory Functions
# ==============================================================================


def create_story(
    author: str,
    title: str,
    type: str = StoryType.STORY.value,
    text: str | None = None,
    url: str | None = None,
    tags: list[str] | None = None,
) -> Story:
    """Create a new story with default values."""
    now = utc_now()
    return Story(
        story_id=new_item_id(),
        author=author,
        title=title,
        text=text,
        url=url,
        type=type,
        points=0,
        children=[],
        tags=list(tags or []),
        created_at_i=epoch_seconds(now),
        created_at=now,
        updated_at=now,
    )
