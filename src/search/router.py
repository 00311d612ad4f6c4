"""Search proxy endpoints, mounted at the application root."""

from typing import Any

from fastapi import APIRouter, Query

from .client import SearchError
from .dependencies import SearchServiceDep, handle_search_error


router = APIRouter(tags=["search"])


@router.get("/search", summary="Search Hacker News")
async def search(
    search_service: SearchServiceDep,
    query: str | None = None,
    tags: str | None = None,
    page: str | None = None,
    hits_per_page: str | None = Query(None, alias="hitsPerPage"),
    numeric_filters: str | None = Query(None, alias="numericFilters"),
    sort: str | None = None,
) -> dict[str, Any]:
    """Proxy to Algolia ``search`` or ``search_by_date`` (via ``sort``)."""
    raw = {
        "query": query,
        "tags": tags,
        "page": page,
        "hitsPerPage": hits_per_page,
        "numericFilters": numeric_filters,
        "sort": sort,
    }
    try:
        return await search_service.search(raw)
    except SearchError as e:
        raise handle_search_error(e) from e


@router.get("/items/{item_id}", summary="Item with nested children")
async def get_item(item_id: str, search_service: SearchServiceDep) -> dict[str, Any]:
    try:
        return await search_service.get_item(item_id)
    except SearchError as e:
        raise handle_search_error(e) from e


@router.get("/front-page", summary="Front page stories")
async def front_page(
    search_service: SearchServiceDep,
    story_type: str | None = Query(None, alias="storyType"),
) -> dict[str, Any]:
    try:
        return await search_service.front_page(story_type)
    except SearchError as e:
        raise handle_search_error(e) from e


@router.get("/tag/{story_type}", summary="Stories by tag")
async def tag(story_type: str, search_service: SearchServiceDep) -> dict[str, Any]:
    try:
        return await search_service.tag(story_type)
    except SearchError as e:
        raise handle_search_error(e) from e
