"""FastAPI dependencies for the search proxy."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from .client import SearchError
from .service import SearchService


async def get_search_service(request: Request) -> SearchService:
    """Get search service from app state."""
    app_state = request.app.state
    if not getattr(app_state, "search_service", None):
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Search service not available",
        )
    return app_state.search_service


SearchServiceDep = Annotated[SearchService, Depends(get_search_service)]


def handle_search_error(error: SearchError) -> HTTPException:
    """Convert external-source errors to HTTP exceptions."""
    status_map = {
        "item_not_found": status.HTTP_404_NOT_FOUND,
        "bad_request": status.HTTP_400_BAD_REQUEST,
        "upstream_unavailable": status.HTTP_502_BAD_GATEWAY,
    }

    return HTTPException(
        status_code=status_map.get(error.code, status.HTTP_500_INTERNAL_SERVER_ERROR),
        detail=error.message,
    )
