"""Admin API endpoints. Every route requires the admin role."""

from typing import Any, Literal

from fastapi import APIRouter, Query

from src.auth.dependencies import AdminUser
from src.auth.permissions import UserRole

from .dependencies import AdminServiceDep, handle_admin_error
from .schemas import BlockEmailRequest, Page
from .service import AdminError


router = APIRouter(prefix="/admin", tags=["admin"])

PageQuery = Query(1, ge=1)
LimitQuery = Query(20, ge=1, le=100)


# ==============================================================================
# Users
# ==============================================================================


@router.post("/users/{user_id}/block", summary="Block user")
async def block_user(
    user_id: str, admin_service: AdminServiceDep, admin: AdminUser
) -> dict[str, Any]:
    """Block a user and auto-delete all of their active content."""
    try:
        return await admin_service.block_user(user_id, admin)
    except AdminError as e:
        raise handle_admin_error(e) from e


@router.post("/users/{user_id}/unblock", summary="Unblock user")
async def unblock_user(
    user_id: str, admin_service: AdminServiceDep, _admin: AdminUser
) -> dict[str, Any]:
    """Unblock a user and restore the content their block removed."""
    try:
        return await admin_service.unblock_user(user_id)
    except AdminError as e:
        raise handle_admin_error(e) from e


@router.get("/users", response_model=Page[dict[str, Any]], summary="List users")
async def list_users(
    admin_service: AdminServiceDep,
    _admin: AdminUser,
    page: int = PageQuery,
    limit: int = LimitQuery,
    role: UserRole | None = None,
    is_blocked: bool | None = Query(None, alias="isBlocked"),
) -> Page:
    return await admin_service.list_users(
        page, limit, role.value if role else None, is_blocked
    )


@router.get("/users/{user_id}", summary="User details")
async def get_user(
    user_id: str, admin_service: AdminServiceDep, _admin: AdminUser
) -> dict[str, Any]:
    try:
        return await admin_service.get_user(user_id)
    except AdminError as e:
        raise handle_admin_error(e) from e


# ==============================================================================
# Email blocklist
# ==============================================================================


@router.post("/emails/block", summary="Block email")
async def block_email(
    data: BlockEmailRequest, admin_service: AdminServiceDep, admin: AdminUser
) -> dict[str, Any]:
    try:
        return await admin_service.block_email(data.email, admin, data.reason)
    except AdminError as e:
        raise handle_admin_error(e) from e


@router.delete("/emails/{email}", summary="Unblock email")
async def unblock_email(
    email: str, admin_service: AdminServiceDep, _admin: AdminUser
) -> dict[str, str]:
    try:
        return await admin_service.unblock_email(email)
    except AdminError as e:
        raise handle_admin_error(e) from e


@router.get(
    "/emails/blocked", response_model=Page[dict[str, Any]], summary="Blocked emails"
)
async def list_blocked_emails(
    admin_service: AdminServiceDep,
    _admin: AdminUser,
    page: int = PageQuery,
    limit: int = LimitQuery,
) -> Page:
    return await admin_service.list_blocked_emails(page, limit)


# ==============================================================================
# Content
# ==============================================================================


@router.get("/stories", response_model=Page[dict[str, Any]], summary="List stories")
async def list_stories(
    admin_service: AdminServiceDep,
    _admin: AdminUser,
    page: int = PageQuery,
    limit: int = LimitQuery,
    story_type: str | None = Query(None, alias="type"),
    author: str | None = None,
    include_deleted: bool = Query(False, alias="includeDeleted"),
) -> Page:
    return await admin_service.list_stories(
        page, limit, story_type, author, include_deleted
    )


@router.get("/comments", response_model=Page[dict[str, Any]], summary="List comments")
async def list_comments(
    admin_service: AdminServiceDep,
    _admin: AdminUser,
    page: int = PageQuery,
    limit: int = LimitQuery,
    story_id: str | None = Query(None, alias="storyId"),
    author: str | None = None,
    include_deleted: bool = Query(False, alias="includeDeleted"),
) -> Page:
    return await admin_service.list_comments(
        page, limit, story_id, author, include_deleted
    )


@router.get(
    "/deleted/stories", response_model=Page[dict[str, Any]], summary="Deleted stories"
)
async def list_deleted_stories(
    admin_service: AdminServiceDep,
    _admin: AdminUser,
    page: int = PageQuery,
    limit: int = LimitQuery,
) -> Page:
    return await admin_service.list_deleted_stories(page, limit)


@router.get(
    "/deleted/comments", response_model=Page[dict[str, Any]], summary="Deleted comments"
)
async def list_deleted_comments(
    admin_service: AdminServiceDep,
    _admin: AdminUser,
    page: int = PageQuery,
    limit: int = LimitQuery,
) -> Page:
    return await admin_service.list_deleted_comments(page, limit)


@router.post("/stories/{story_id}/restore", summary="Restore story")
async def restore_story(
    story_id: str, admin_service: AdminServiceDep, admin: AdminUser
) -> dict[str, Any]:
    try:
        return await admin_service.restore_story(story_id, admin)
    except AdminError as e:
        raise handle_admin_error(e) from e


@router.post("/comments/{comment_id}/restore", summary="Restore comment")
async def restore_comment(
    comment_id: str, admin_service: AdminServiceDep, admin: AdminUser
) -> dict[str, Any]:
    try:
        return await admin_service.restore_comment(comment_id, admin)
    except AdminError as e:
        raise handle_admin_error(e) from e


# ==============================================================================
# Analytics
# ==============================================================================


@router.get("/analytics/problematic-users", summary="Users with high deletion rates")
async def problematic_users(
    admin_service: AdminServiceDep,
    _admin: AdminUser,
    limit: int = LimitQuery,
) -> dict[str, Any]:
    return await admin_service.problematic_users(limit)


@router.get("/analytics/top-contributors", summary="Most active members")
async def top_contributors(
    admin_service: AdminServiceDep,
    _admin: AdminUser,
    limit: int = Query(10, ge=1, le=100),
) -> dict[str, Any]:
    return await admin_service.top_contributors(limit)


@router.get("/analytics/trending", summary="Trending local content")
async def trending(
    admin_service: AdminServiceDep,
    _admin: AdminUser,
    period: Literal["week", "month"] = "week",
) -> dict[str, Any]:
    return await admin_service.trending(period)


@router.get("/stats", summary="Dashboard statistics")
async def dashboard_stats(
    admin_service: AdminServiceDep, _admin: AdminUser
) -> dict[str, Any]:
    return await admin_service.dashboard_stats()
