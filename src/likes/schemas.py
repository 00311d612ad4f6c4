"""Pydantic schemas for likes."""

from pydantic import BaseModel, Field


class ToggleLikeResponse(BaseModel):
    liked: bool
    total_points: int = Field(..., serialization_alias="totalPoints")


class LikeStatusResponse(BaseModel):
    like_count: int = Field(..., serialization_alias="likeCount")
    total_points: int = Field(..., serialization_alias="totalPoints")
    is_liked: bool = Field(..., serialization_alias="isLiked")
