"""Story API endpoints."""

from typing import Any

from fastapi import APIRouter, Body, status

from src.auth.dependencies import CurrentUser
from src.comments.schemas import DeleteRequest

from .dependencies import StoryServiceDep, handle_story_error
from .models import StoryType
from .schemas import CreateStoryRequest, UpdateStoryRequest
from .service import StoryError


router = APIRouter(prefix="/story", tags=["stories"])


@router.post("", status_code=status.HTTP_201_CREATED, summary="Create story")
async def create_story(
    data: CreateStoryRequest,
    story_service: StoryServiceDep,
    user: CurrentUser,
) -> dict[str, Any]:
    """Post a story. Job postings require the employer or admin role."""
    try:
        story = await story_service.create_story(user, data)
    except StoryError as e:
        raise handle_story_error(e) from e
    return story.to_item()


@router.get("", summary="List stories")
async def list_stories(story_service: StoryServiceDep) -> list[dict[str, Any]]:
    return [s.to_item() for s in await story_service.list_stories()]


@router.get("/type/{story_type}", summary="List stories by type")
async def list_stories_by_type(
    story_type: StoryType, story_service: StoryServiceDep
) -> list[dict[str, Any]]:
    stories = await story_service.list_stories_by_type(story_type.value)
    return [s.to_item() for s in stories]


@router.get("/{story_id}/full", summary="Story with comment trees")
async def get_story_full(
    story_id: str, story_service: StoryServiceDep
) -> dict[str, Any]:
    try:
        return await story_service.get_story_with_children(story_id)
    except StoryError as e:
        raise handle_story_error(e) from e


@router.get("/{story_id}", summary="Get story")
async def get_story(story_id: str, story_service: StoryServiceDep) -> dict[str, Any]:
    try:
        story = await story_service.get_visible_story(story_id)
    except StoryError as e:
        raise handle_story_error(e) from e
    return story.to_item()


@router.patch("/{story_id}", summary="Edit story")
async def update_story(
    story_id: str,
    data: UpdateStoryRequest,
    story_service: StoryServiceDep,
    user: CurrentUser,
) -> dict[str, Any]:
    try:
        story = await story_service.update_story(story_id, user, data)
    except StoryError as e:
        raise handle_story_error(e) from e
    return story.to_item()


@router.delete("/{story_id}", summary="Delete story")
async def delete_story(
    story_id: str,
    story_service: StoryServiceDep,
    user: CurrentUser,
    data: DeleteRequest | None = Body(None),
) -> dict[str, Any]:
    try:
        return await story_service.delete_story(
            story_id, user, data.reason if data else None
        )
    except StoryError as e:
        raise handle_story_error(e) from e
