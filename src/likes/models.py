"""Database models for likes.

One row per (item, user). The partition key is the item so counting an
item's likes stays a single-partition query.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

from src.utils import ensure_utc_aware, iso_or_none, utc_now


class LikeItemType(str, Enum):
    STORY = "story"
    COMMENT = "comment"


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

LIKE_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.likes (
    item_id TEXT,
    username TEXT,
    item_type TEXT,
    created_at TIMESTAMP,
    PRIMARY KEY ((item_id), username)
)
"""

LIKES_TABLES_CQL = [
    LIKE_TABLE_CQL,
]


# ==============================================================================
# Entity Classes
# ==============================================================================


@dataclass
class Like:
    item_id: str
    username: str
    item_type: str
    created_at: datetime

    @classmethod
    def from_row(cls, row: Any) -> "Like":
        return cls(
            item_id=row.item_id,
            username=row.username,
            item_type=row.item_type or LikeItemType.STORY.value,
            created_at=ensure_utc_aware(row.created_at),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "item_id": self.item_id,
            "username": self.username,
            "item_type": self.item_type,
            "created_at": iso_or_none(self.created_at),
        }


def create_like(item_id: str, username: str, item_type: str) -> Like:
    return Like(
        item_id=item_id,
        username=username,
        item_type=item_type,
        created_at=utc_now(),
    )
