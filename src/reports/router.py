"""Report API endpoints.

Filing is open to any signed-in user; everything else is admin only.
"""

from typing import Any

from fastapi import APIRouter, status

from src.auth.dependencies import AdminUser, CurrentUser

from .dependencies import ReportServiceDep, handle_report_error
from .models import ReportStatus
from .schemas import CreateReportRequest, UpdateReportStatusRequest
from .service import ReportError


router = APIRouter(prefix="/report", tags=["reports"])


@router.post("", status_code=status.HTTP_201_CREATED, summary="Report content")
async def create_report(
    data: CreateReportRequest,
    report_service: ReportServiceDep,
    user: CurrentUser,
) -> dict[str, Any]:
    try:
        report = await report_service.create_report(
            user, data.content_id, data.content_type, data.reason
        )
    except ReportError as e:
        raise handle_report_error(e) from e
    return report.to_dict()


@router.get("", summary="All reports with content details")
async def list_reports(
    report_service: ReportServiceDep, _admin: AdminUser
) -> list[dict[str, Any]]:
    return await report_service.with_details(await report_service.list_reports())


@router.get("/status/{report_status}", summary="Reports by status")
async def list_reports_by_status(
    report_status: ReportStatus, report_service: ReportServiceDep, _admin: AdminUser
) -> list[dict[str, Any]]:
    reports = await report_service.list_by_status(report_status)
    return await report_service.with_details(reports)


@router.get("/content/{content_id}", summary="Reports for one item")
async def list_reports_for_content(
    content_id: str, report_service: ReportServiceDep, _admin: AdminUser
) -> list[dict[str, Any]]:
    return [r.to_dict() for r in await report_service.list_by_content(content_id)]


@router.get("/content/{content_id}/count", summary="Pending reports for one item")
async def count_reports_for_content(
    content_id: str, report_service: ReportServiceDep, _admin: AdminUser
) -> dict[str, Any]:
    count = await report_service.count_pending_for_content(content_id)
    return {"content_id": content_id, "count": count}


@router.get("/author/{username}", summary="Reports against an author")
async def list_reports_for_author(
    username: str, report_service: ReportServiceDep, _admin: AdminUser
) -> list[dict[str, Any]]:
    return [r.to_dict() for r in await report_service.list_by_author(username)]


@router.get("/author/{username}/count", summary="Pending reports against an author")
async def count_reports_for_author(
    username: str, report_service: ReportServiceDep, _admin: AdminUser
) -> dict[str, Any]:
    count = await report_service.count_pending_for_author(username)
    return {"username": username, "count": count}


@router.patch("/{report_id}/status", summary="Review a report")
async def update_report_status(
    report_id: str,
    data: UpdateReportStatusRequest,
    report_service: ReportServiceDep,
    admin: AdminUser,
) -> dict[str, Any]:
    try:
        report = await report_service.update_status(report_id, data.status, admin)
    except ReportError as e:
        raise handle_report_error(e) from e
    return report.to_dict()


@router.delete("/{report_id}", summary="Delete a report")
async def delete_report(
    report_id: str, report_service: ReportServiceDep, _admin: AdminUser
) -> dict[str, str]:
    try:
        await report_service.delete_report(report_id)
    except ReportError as e:
        raise handle_report_error(e) from e
    return {"message": "Report deleted successfully"}
