"""FastAPI dependencies for the users feature."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from .service import UserError, UserService


async def get_user_service(request: Request) -> UserService:
    """Get user service from app state."""
    app_state = request.app.state
    if not getattr(app_state, "user_service", None):
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="User service not available",
        )
    return app_state.user_service


UserServiceDep = Annotated[UserService, Depends(get_user_service)]


def handle_user_error(error: UserError) -> HTTPException:
    """Convert user errors to HTTP exceptions."""
    status_map = {
        "user_not_found": status.HTTP_404_NOT_FOUND,
        "blocked_email_not_found": status.HTTP_404_NOT_FOUND,
        "user_exists": status.HTTP_409_CONFLICT,
        "email_blocked": status.HTTP_400_BAD_REQUEST,
        "invalid_credentials": status.HTTP_400_BAD_REQUEST,
        "account_blocked": status.HTTP_400_BAD_REQUEST,
        "already_blocked": status.HTTP_400_BAD_REQUEST,
        "bad_request": status.HTTP_400_BAD_REQUEST,
    }

    return HTTPException(
        status_code=status_map.get(error.code, status.HTTP_500_INTERNAL_SERVER_ERROR),
        detail=error.message,
    )
