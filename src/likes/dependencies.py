"""FastAPI dependencies for likes."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from .service import LikeError, LikeService


async def get_like_service(request: Request) -> LikeService:
    """Get like service from app state."""
    app_state = request.app.state
    if not getattr(app_state, "like_service", None):
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Like service not available",
        )
    return app_state.like_service


LikeServiceDep = Annotated[LikeService, Depends(get_like_service)]


def handle_like_error(error: LikeError) -> HTTPException:
    """Convert like errors to HTTP exceptions."""
    status_map = {
        "item_not_found": status.HTTP_404_NOT_FOUND,
    }

    status_code = status_map.get(error.code, status.HTTP_500_INTERNAL_SERVER_ERROR)

    return HTTPException(status_code=status_code, detail=error.message)
