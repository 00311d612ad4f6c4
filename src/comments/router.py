"""Comment API endpoints."""

from typing import Any

from fastapi import APIRouter, Body, status

from src.auth.dependencies import CurrentUser

from .dependencies import CommentServiceDep, handle_comment_error
from .schemas import CreateCommentRequest, DeleteRequest, UpdateCommentRequest
from .service import CommentError


router = APIRouter(prefix="/comment", tags=["comments"])


@router.post("", status_code=status.HTTP_201_CREATED, summary="Create comment")
async def create_comment(
    data: CreateCommentRequest,
    comment_service: CommentServiceDep,
    user: CurrentUser,
) -> dict[str, Any]:
    """Comment on a story, or reply to a comment when ``parent_id`` is set.

    Both IDs may reference Hacker News items.
    """
    try:
        comment = await comment_service.create_comment(
            author=user.username,
            text=data.text,
            story_id=data.story_id,
            parent_id=data.parent_id,
        )
    except CommentError as e:
        raise handle_comment_error(e) from e
    return comment.to_item()


@router.get("/story/{story_id}", summary="Comment thread of a story")
async def get_story_comments(
    story_id: str, comment_service: CommentServiceDep
) -> dict[str, Any]:
    return await comment_service.get_thread(story_id)


@router.get("/{comment_id}", summary="Get comment")
async def get_comment(
    comment_id: str, comment_service: CommentServiceDep
) -> dict[str, Any]:
    try:
        comment = await comment_service.get_visible_comment(comment_id)
    except CommentError as e:
        raise handle_comment_error(e) from e
    return comment.to_item()


@router.patch("/{comment_id}", summary="Edit comment")
async def update_comment(
    comment_id: str,
    data: UpdateCommentRequest,
    comment_service: CommentServiceDep,
    user: CurrentUser,
) -> dict[str, Any]:
    try:
        comment = await comment_service.update_comment(comment_id, user, data.text)
    except CommentError as e:
        raise handle_comment_error(e) from e
    return comment.to_item()


@router.delete("/{comment_id}", summary="Delete comment")
async def delete_comment(
    comment_id: str,
    comment_service: CommentServiceDep,
    user: CurrentUser,
    data: DeleteRequest | None = Body(None),
) -> dict[str, Any]:
    """Leaf comments are removed, comments with replies are masked."""
    try:
        return await comment_service.delete_comment(
            comment_id, user, data.reason if data else None
        )
    except CommentError as e:
        raise handle_comment_error(e) from e
