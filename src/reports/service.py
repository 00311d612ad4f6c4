"""Report service layer."""

from typing import TYPE_CHECKING, Any
from uuid import UUID

import structlog

from src.auth.schemas import TokenUser
from src.utils import utc_now

from .models import Report, ReportContentType, ReportStatus, create_report


if TYPE_CHECKING:
    from cassandra.cluster import Session

    from src.comments.service import CommentService
    from src.stories.service import StoryService
    from src.users.service import UserService


logger = structlog.get_logger(__name__)


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class ReportError(Exception):
    """Base report error."""

    def __init__(self, message: str, code: str = "report_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class ReportNotFoundError(ReportError):
    def __init__(self, message: str = "Report not found"):
        super().__init__(message, "report_not_found")


class ReportedContentNotFoundError(ReportError):
    def __init__(self, message: str = "Content not found"):
        super().__init__(message, "content_not_found")


class AlreadyReportedError(ReportError):
    def __init__(self, message: str = "You have already reported this content"):
        super().__init__(message, "already_reported")


class ReporterNotFoundError(ReportError):
    def __init__(self, message: str = "Reporter user not found"):
        super().__init__(message, "reporter_not_found")


# ==============================================================================
# Report Service
# ==============================================================================


class ReportService:
    """Service for filing and triaging reports."""

    def __init__(
        self,
        session: "Session",
        keyspace: str,
        user_service: "UserService",
        story_service: "StoryService",
        comment_service: "CommentService",
    ):
        self.session = session
        self.keyspace = keyspace
        self.user_service = user_service
        self.story_service = story_service
        self.comment_service = comment_service
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements."""
        self._insert_report = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.reports
            (report_id, content_id, content_type, reported_by, reported_by_username,
             reason, content_author, content_author_id, status, reviewed_by,
             reviewed_by_username, reviewed_at, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)

        self._get_report = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.reports WHERE report_id = ?
        """)

        self._list_reports = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.reports
        """)

        self._get_by_content = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.reports WHERE content_id = ?
        """)

        self._get_by_author = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.reports WHERE content_author = ?
        """)

        self._get_by_status = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.reports WHERE status = ?
        """)

        self._update_status = self.session.prepare(f"""
            UPDATE {self.keyspace}.reports
            SET status = ?, reviewed_by = ?, reviewed_by_username = ?, reviewed_at = ?
            WHERE report_id = ?
        """)

        self._delete_report = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.reports WHERE report_id = ?
        """)

    async def _fetch(self, stmt: Any, params: list[Any] | None = None) -> list[Report]:
        rows = await self.session.aexecute(stmt, params or [])
        reports = [Report.from_row(row) for row in rows]
        reports.sort(key=lambda r: r.created_at.timestamp() if r.created_at else 0, reverse=True)
        return reports

    # ==========================================================================
    # Filing
    # ==========================================================================

    async def _content_author(self, content_id: str, content_type: ReportContentType) -> str:
        if content_type == ReportContentType.STORY:
            story = await self.story_service.get_story(content_id)
            if not story:
                raise ReportedContentNotFoundError("Story not found")
            return story.author

        comment = await self.comment_service.get_comment(content_id)
        if not comment:
            raise ReportedContentNotFoundError("Comment not found")
        return comment.author

    async def create_report(
        self,
        user: TokenUser,
        content_id: str,
        content_type: ReportContentType,
        reason: str,
    ) -> Report:
        """File a report.

        Raises:
            ReportedContentNotFoundError: Unknown story or comment.
            AlreadyReportedError: Same reporter, same content.
            ReporterNotFoundError: Token user no longer exists.
        """
        author = await self._content_author(content_id, content_type)

        existing = await self._fetch(self._get_by_content, [content_id])
        if any(str(r.reported_by) == str(user.id) for r in existing):
            raise AlreadyReportedError

        reporter = await self.user_service.get_user_by_id(user.id)
        if not reporter:
            raise ReporterNotFoundError

        author_user = await self.user_service.get_user_by_username(author)

        report = create_report(
            content_id=content_id,
            content_type=content_type.value,
            reported_by=reporter.id,
            reported_by_username=reporter.username,
            reason=reason,
            content_author=author,
            content_author_id=author_user.id if author_user else None,
        )

        await self.session.aexecute(
            self._insert_report,
            [
                report.report_id,
                report.content_id,
                report.content_type,
                report.reported_by,
                report.reported_by_username,
                report.reason,
                report.content_author,
                report.content_author_id,
                report.status,
                report.reviewed_by,
                report.reviewed_by_username,
                report.reviewed_at,
                report.created_at,
            ],
        )

        logger.info(
            "report_created",
            report_id=str(report.report_id),
            content_id=content_id,
            content_type=content_type.value,
        )
        return report

    # ==========================================================================
    # Queries
    # ==========================================================================

    async def get_report(self, report_id: UUID | str) -> Report | None:
        try:
            rid = UUID(str(report_id))
        except ValueError:
            return None
        result = await self.session.aexecute(self._get_report, [rid])
        row = result[0] if result else None
        return Report.from_row(row) if row else None

    async def list_reports(self) -> list[Report]:
        """All reports, newest first."""
        return await self._fetch(self._list_reports)

    async def list_by_status(self, report_status: ReportStatus) -> list[Report]:
        return await self._fetch(self._get_by_status, [report_status.value])

    async def list_by_content(self, content_id: str) -> list[Report]:
        return await self._fetch(self._get_by_content, [content_id])

    async def list_by_author(self, username: str) -> list[Report]:
        return await self._fetch(self._get_by_author, [username])

    async def count_pending_for_content(self, content_id: str) -> int:
        reports = await self.list_by_content(content_id)
        return sum(1 for r in reports if r.status == ReportStatus.PENDING.value)

    async def count_pending_for_author(self, username: str) -> int:
        reports = await self.list_by_author(username)
        return sum(1 for r in reports if r.status == ReportStatus.PENDING.value)

    async def with_details(self, reports: list[Report]) -> list[dict[str, Any]]:
        """Attach reporter emails and a summary of the reported content."""
        reporters = {
            str(u.id): u
            for u in await self.user_service.get_users_by_ids(
                {r.reported_by for r in reports}
            )
        }

        detailed = []
        for report in reports:
            data = report.to_dict()
            reporter = reporters.get(str(report.reported_by))
            if reporter:
                data["reported_by"]["email"] = reporter.email
            data["content"] = await self._content_summary(report)
            detailed.append(data)
        return detailed

    async def _content_summary(self, report: Report) -> dict[str, Any] | None:
        if report.content_type == ReportContentType.STORY.value:
            story = await self.story_service.get_story(report.content_id)
            if story:
                return {
                    "id": story.story_id,
                    "title": story.title,
                    "text": story.text,
                    "author": story.author,
                }
            return None

        comment = await self.comment_service.get_comment(report.content_id)
        if comment:
            return {
                "id": comment.comment_id,
                "text": comment.text,
                "author": comment.author,
            }
        return None

    # ==========================================================================
    # Triage
    # ==========================================================================

    async def update_status(
        self, report_id: str, report_status: ReportStatus, admin: TokenUser
    ) -> Report:
        """Record an admin decision on a report.

        Raises:
            ReportNotFoundError: Unknown report.
        """
        report = await self.get_report(report_id)
        if not report:
            raise ReportNotFoundError

        report.status = report_status.value
        report.reviewed_by = UUID(str(admin.id))
        report.reviewed_by_username = admin.username
        report.reviewed_at = utc_now()

        await self.session.aexecute(
            self._update_status,
            [
                report.status,
                report.reviewed_by,
                report.reviewed_by_username,
                report.reviewed_at,
                report.report_id,
            ],
        )
        logger.info(
            "report_status_updated",
            report_id=str(report.report_id),
            status=report.status,
        )
        return report

    async def delete_report(self, report_id: str) -> None:
        """Raises ReportNotFoundError when there is nothing to delete."""
        report = await self.get_report(report_id)
        if not report:
            raise ReportNotFoundError

        await self.session.aexecute(self._delete_report, [report.report_id])
        logger.info("report_deleted", report_id=str(report.report_id))
