"""Like API endpoints."""

from fastapi import APIRouter, Query

from src.auth.dependencies import CurrentUser, OptionalUser
from src.users.dependencies import handle_user_error
from src.users.service import UserError

from .dependencies import LikeServiceDep, handle_like_error
from .models import LikeItemType
from .schemas import LikeStatusResponse, ToggleLikeResponse
from .service import LikeError


router = APIRouter(prefix="/likes", tags=["likes"])


@router.post(
    "/{item_id}/toggle", response_model=ToggleLikeResponse, summary="Toggle like"
)
async def toggle_like(
    item_id: str,
    like_service: LikeServiceDep,
    user: CurrentUser,
    item_type: LikeItemType | None = Query(None, alias="type"),
) -> ToggleLikeResponse:
    try:
        result = await like_service.toggle_like(item_id, user, item_type)
    except LikeError as e:
        raise handle_like_error(e) from e
    return ToggleLikeResponse(**result)


@router.get(
    "/{item_id}/status", response_model=LikeStatusResponse, summary="Like status"
)
async def get_like_status(
    item_id: str,
    like_service: LikeServiceDep,
    user: OptionalUser,
    item_type: LikeItemType | None = Query(None, alias="type"),
    username: str | None = None,
) -> LikeStatusResponse:
    """``isLiked`` is answered for ``username``, or the caller when omitted."""
    who = username or (user.username if user else None)
    try:
        result = await like_service.get_status(item_id, item_type, who)
    except LikeError as e:
        raise handle_like_error(e) from e
    return LikeStatusResponse(**result)


@router.get("/user/my-likes", summary="Items liked by the caller")
async def get_my_likes(like_service: LikeServiceDep, user: CurrentUser) -> list[str]:
    try:
        return await like_service.get_user_likes(user)
    except UserError as e:
        raise handle_user_error(e) from e
