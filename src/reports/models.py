"""Database models for content reports."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from src.utils import ensure_utc_aware, iso_or_none, utc_now


class ReportStatus(str, Enum):
    PENDING = "pending"
    REVIEWED = "reviewed"
    DISMISSED = "dismissed"


class ReportContentType(str, Enum):
    STORY = "story"
    COMMENT = "comment"


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

REPORT_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.reports (
    report_id UUID PRIMARY KEY,
    content_id TEXT,
    content_type TEXT,
    reported_by UUID,
    reported_by_username TEXT,
    reason TEXT,
    content_author TEXT,
    content_author_id UUID,
    status TEXT,
    reviewed_by UUID,
    reviewed_by_username TEXT,
    reviewed_at TIMESTAMP,
    created_at TIMESTAMP
)
"""

REPORT_CONTENT_INDEX_CQL = """
CREATE INDEX IF NOT EXISTS reports_content_id_idx ON {keyspace}.reports (content_id)
"""

REPORT_AUTHOR_INDEX_CQL = """
CREATE INDEX IF NOT EXISTS reports_content_author_idx ON {keyspace}.reports (content_author)
"""

REPORT_STATUS_INDEX_CQL = """
CREATE INDEX IF NOT EXISTS reports_status_idx ON {keyspace}.reports (status)
"""

REPORTS_TABLES_CQL = [
    REPORT_TABLE_CQL,
    REPORT_CONTENT_INDEX_CQL,
    REPORT_AUTHOR_INDEX_CQL,
    REPORT_STATUS_INDEX_CQL,
]


# ==============================================================================
# Entity Classes
# ==============================================================================


@dataclass
class Report:
    """A user's report against a story or comment.

    ``content_author`` is the username at report time; ``content_author_id``
    is None when that username has no local account.
    """

    report_id: UUID
    content_id: str
    content_type: str
    reported_by: UUID
    reported_by_username: str
    reason: str
    content_author: str
    content_author_id: UUID | None
    status: str
    created_at: datetime
    reviewed_by: UUID | None = None
    reviewed_by_username: str | None = None
    reviewed_at: datetime | None = None

    @classmethod
    def from_row(cls, row: Any) -> "Report":
        return cls(
            report_id=row.report_id,
            content_id=row.content_id,
            content_type=row.content_type,
            reported_by=row.reported_by,
            reported_by_username=row.reported_by_username,
            reason=row.reason,
            content_author=row.content_author,
            content_author_id=row.content_author_id,
            status=row.status or ReportStatus.PENDING.value,
            created_at=ensure_utc_aware(row.created_at),
            reviewed_by=row.reviewed_by,
            reviewed_by_username=row.reviewed_by_username,
            reviewed_at=ensure_utc_aware(row.reviewed_at),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": str(self.report_id),
            "content_id": self.content_id,
            "content_type": self.content_type,
            "reported_by": {
                "id": str(self.reported_by),
                "username": self.reported_by_username,
            },
            "reason": self.reason,
            "status": self.status,
            "created_at": iso_or_none(self.created_at),
            "reviewed_at": iso_or_none(self.reviewed_at),
            "reviewed_by": (
                {"id": str(self.reviewed_by), "username": self.reviewed_by_username}
                if self.reviewed_by
                else None
            ),
            "content_author": self.content_author,
            "content_author_id": (
                str(self.content_author_id) if self.content_author_id else None
            ),
        }


# ==============================================================================
# Factory Functions
# ==============================================================================


def create_report(
    content_id: str,
    content_type: str,
    reported_by: UUID,
    reported_by_username: str,
    reason: str,
    content_author: str,
    content_author_id: UUID | None = None,
) -> Report:
    """Create a new pending report."""
    return Report(
        report_id=uuid4(),
        content_id=content_id,
        content_type=content_type,
        reported_by=reported_by,
        reported_by_username=reported_by_username,
        reason=reason,
        content_author=content_author,
        content_author_id=content_author_id,
        status=ReportStatus.PENDING.value,
        created_at=utc_now(),
    )
