"""User API endpoints.

Provides routes for:
- Registration and login
- Own profile, public profiles and username checks
- Follows and bookmarks
"""

from typing import Any

from fastapi import APIRouter, status

from src.auth.dependencies import CurrentUser
from src.auth.schemas import TokenResponse
from src.search.client import SearchError
from src.search.dependencies import handle_search_error

from .dependencies import UserServiceDep, handle_user_error
from .models import User
from .schemas import (
    AvailabilityResponse,
    BookmarkRequest,
    FollowStatusResponse,
    LoginRequest,
    MessageResponse,
    RegisterRequest,
    UpdateProfileRequest,
)
from .service import UserError, UserService


router = APIRouter(prefix="/users", tags=["users"])


async def _full_profile(user: User, user_service: UserService) -> dict[str, Any]:
    data = user.to_dict()
    data["followers"] = await user_service.resolve_refs(user.followers)
    data["following"] = await user_service.resolve_refs(user.following)
    return data


@router.post(
    "/register",
    status_code=status.HTTP_201_CREATED,
    summary="Register new user",
    responses={
        400: {"description": "Email is blocked"},
        409: {"description": "Username or email already exists"},
    },
)
async def register(data: RegisterRequest, user_service: UserServiceDep) -> dict[str, Any]:
    """Create an account. Employers may sign up as such; admins cannot."""
    try:
        user = await user_service.register(data)
    except UserError as e:
        raise handle_user_error(e) from e
    return {"message": "User registered successfully", "user": user.to_dict()}


@router.post("/login", response_model=TokenResponse, summary="User login")
async def login(data: LoginRequest, user_service: UserServiceDep) -> TokenResponse:
    try:
        user, token = await user_service.authenticate(data.username, data.password)
    except UserError as e:
        raise handle_user_error(e) from e
    return TokenResponse(access_token=token, role=user.role)


@router.get("/isAuthenticated", summary="Check token validity")
async def is_authenticated(user: CurrentUser) -> dict[str, Any]:
    return {
        "authenticated": True,
        "user": {"id": user.id, "username": user.username, "role": user.role.value},
    }


@router.get("/me", summary="Get current user")
async def get_me(user: CurrentUser, user_service: UserServiceDep) -> dict[str, Any]:
    try:
        profile = await user_service.require_user(user.id)
    except UserError as e:
        raise handle_user_error(e) from e
    return await _full_profile(profile, user_service)


@router.patch("/me", summary="Update current user profile")
async def update_me(
    data: UpdateProfileRequest,
    user: CurrentUser,
    user_service: UserServiceDep,
) -> dict[str, Any]:
    try:
        profile = await user_service.update_profile(user.id, data)
    except UserError as e:
        raise handle_user_error(e) from e
    return await _full_profile(profile, user_service)


@router.post("/me/bookmarks", response_model=MessageResponse, summary="Add bookmark")
async def add_bookmark(
    data: BookmarkRequest,
    user: CurrentUser,
    user_service: UserServiceDep,
) -> MessageResponse:
    try:
        await user_service.add_bookmark(user.id, data.item_id)
    except UserError as e:
        raise handle_user_error(e) from e
    return MessageResponse(message="Bookmark added")


@router.patch("/me/bookmarks", response_model=MessageResponse, summary="Remove bookmark")
async def remove_bookmark(
    data: BookmarkRequest,
    user: CurrentUser,
    user_service: UserServiceDep,
) -> MessageResponse:
    try:
        await user_service.remove_bookmark(user.id, data.item_id)
    except UserError as e:
        raise handle_user_error(e) from e
    return MessageResponse(message="Bookmark removed")


@router.get(
    "/checkHnUsername/{username}",
    response_model=AvailabilityResponse,
    summary="Check a name against Hacker News users",
)
async def check_hn_username(
    username: str, user_service: UserServiceDep
) -> AvailabilityResponse:
    try:
        exists = await user_service.hn_username_exists(username)
    except SearchError as e:
        raise handle_search_error(e) from e
    if exists:
        return AvailabilityResponse(
            available=False, message="Username is taken on Hacker News"
        )
    return AvailabilityResponse(available=True, message="Username is available")


@router.get(
    "/checkUsername/{username}",
    response_model=AvailabilityResponse,
    summary="Check local username availability",
)
async def check_username(
    username: str, user_service: UserServiceDep
) -> AvailabilityResponse:
    if await user_service.is_username_available(username):
        return AvailabilityResponse(available=True, message="Username is available")
    return AvailabilityResponse(available=False, message="Username already exists")


@router.get("/search/{username}", summary="Search users by username")
async def search_users(
    username: str, user_service: UserServiceDep
) -> list[dict[str, Any]]:
    users = await user_service.search_users(username)
    return [u.to_public_dict() for u in users]


@router.get("/{user_id}", summary="Public profile")
async def get_profile(user_id: str, user_service: UserServiceDep) -> dict[str, Any]:
    try:
        user = await user_service.require_user(user_id)
    except UserError as e:
        raise handle_user_error(e) from e
    data = user.to_public_dict()
    data["followers"] = await user_service.resolve_refs(user.followers)
    data["following"] = await user_service.resolve_refs(user.following)
    return data


@router.post("/{user_id}/follow", response_model=MessageResponse, summary="Follow user")
async def follow(
    user_id: str, user: CurrentUser, user_service: UserServiceDep
) -> MessageResponse:
    try:
        await user_service.follow(user.id, user_id)
    except UserError as e:
        raise handle_user_error(e) from e
    return MessageResponse(message="User followed")


@router.patch(
    "/{user_id}/unfollow", response_model=MessageResponse, summary="Unfollow user"
)
async def unfollow(
    user_id: str, user: CurrentUser, user_service: UserServiceDep
) -> MessageResponse:
    try:
        await user_service.unfollow(user.id, user_id)
    except UserError as e:
        raise handle_user_error(e) from e
    return MessageResponse(message="User unfollowed")


@router.get(
    "/{user_id}/isFollowing",
    response_model=FollowStatusResponse,
    summary="Whether the caller follows a user",
)
async def is_following(
    user_id: str, user: CurrentUser, user_service: UserServiceDep
) -> FollowStatusResponse:
    try:
        following = await user_service.is_following(user.id, user_id)
    except UserError as e:
        raise handle_user_error(e) from e
    return FollowStatusResponse(is_following=following)
