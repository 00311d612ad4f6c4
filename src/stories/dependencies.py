"""FastAPI dependencies for stories."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from .service import StoryError, StoryService


async def get_story_service(request: Request) -> StoryService:
    """Get story service from app state."""
    app_state = request.app.state
    if not getattr(app_state, "story_service", None):
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Story service not available",
        )
    return app_state.story_service


StoryServiceDep = Annotated[StoryService, Depends(get_story_service)]


def handle_story_error(error: StoryError) -> HTTPException:
    """Convert story errors to HTTP exceptions."""
    status_map = {
        "story_not_found": status.HTTP_404_NOT_FOUND,
        "story_exists": status.HTTP_409_CONFLICT,
        "permission_denied": status.HTTP_403_FORBIDDEN,
        "not_deleted": status.HTTP_400_BAD_REQUEST,
    }

    status_code = status_map.get(error.code, status.HTTP_500_INTERNAL_SERVER_ERROR)

    return HTTPException(status_code=status_code, detail=error.message)
