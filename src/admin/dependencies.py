"""FastAPI dependencies for admin endpoints."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from .service import AdminError, AdminService


async def get_admin_service(request: Request) -> AdminService:
    """Get admin service from app state."""
    app_state = request.app.state
    if not getattr(app_state, "admin_service", None):
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Admin service not available",
        )
    return app_state.admin_service


AdminServiceDep = Annotated[AdminService, Depends(get_admin_service)]


def handle_admin_error(error: AdminError) -> HTTPException:
    """Convert admin errors to HTTP exceptions."""
    status_map = {
        "user_not_found": status.HTTP_404_NOT_FOUND,
        "story_not_found": status.HTTP_404_NOT_FOUND,
        "comment_not_found": status.HTTP_404_NOT_FOUND,
        "blocked_email_not_found": status.HTTP_404_NOT_FOUND,
        "already_blocked": status.HTTP_400_BAD_REQUEST,
        "not_blocked": status.HTTP_400_BAD_REQUEST,
        "not_deleted": status.HTTP_400_BAD_REQUEST,
    }

    status_code = status_map.get(error.code, status.HTTP_500_INTERNAL_SERVER_ERROR)

    return HTTPException(status_code=status_code, detail=error.message)
