"""FastAPI dependencies for reports."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from .service import ReportError, ReportService


async def get_report_service(request: Request) -> ReportService:
    """Get report service from app state."""
    app_state = request.app.state
    if not getattr(app_state, "report_service", None):
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Report service not available",
        )
    return app_state.report_service


ReportServiceDep = Annotated[ReportService, Depends(get_report_service)]


def handle_report_error(error: ReportError) -> HTTPException:
    """Convert report errors to HTTP exceptions."""
    status_map = {
        "report_not_found": status.HTTP_404_NOT_FOUND,
        "content_not_found": status.HTTP_404_NOT_FOUND,
        "reporter_not_found": status.HTTP_404_NOT_FOUND,
        "already_reported": status.HTTP_409_CONFLICT,
    }

    status_code = status_map.get(error.code, status.HTTP_500_INTERNAL_SERVER_ERROR)

    return HTTPException(status_code=status_code, detail=error.message)
