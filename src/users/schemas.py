"""Pydantic schemas for registration, login and profiles."""

from pydantic import BaseModel, EmailStr, Field, field_validator

from src.auth.permissions import UserRole, can_self_assign
from src.config.settings import get_settings

from .models import SOCIAL_KEYS, VISIBILITY_KEYS


# ==============================================================================
# Request Schemas
# ==============================================================================


class RegisterRequest(BaseModel):
    """User registration request."""

    username: str = Field(..., min_length=1, max_length=50)
    email: EmailStr
    first_name: str = Field("", max_length=100, alias="firstName")
    last_name: str = Field("", max_length=100, alias="lastName")
    password: str
    role: UserRole = UserRole.USER

    model_config = {"populate_by_name": True}

    @field_validator("username")
    @classmethod
    def validate_username(cls, v: str) -> str:
        v = v.strip()
        if not v:
            msg = "Username cannot be empty"
            raise ValueError(msg)
        return v

    @field_validator("password")
    @classmethod
    def validate_password_length(cls, v: str) -> str:
        min_length = get_settings().auth_min_password_length
        if len(v) < min_length:
            msg = f"Password must be at least {min_length} characters long"
            raise ValueError(msg)
        return v

    @field_validator("role")
    @classmethod
    def validate_role(cls, v: UserRole) -> UserRole:
        if not can_self_assign(v):
            msg = "This role cannot be chosen at registration"
            raise ValueError(msg)
        return v


class LoginRequest(BaseModel):
    """User login request."""

    username: str
    password: str


class SocialLinks(BaseModel):
    twitter: str | None = None
    github: str | None = None
    linkedin: str | None = None


class VisibilitySettings(BaseModel):
    name: bool | None = None
    bio: bool | None = None
    location: bool | None = None
    website: bool | None = None
    interests: bool | None = None
    social: bool | None = None


class UpdateProfileRequest(BaseModel):
    """Partial profile update. Social links and visibility are merged."""

    username: str | None = Field(None, min_length=1, max_length=50)
    email: EmailStr | None = None
    first_name: str | None = Field(None, max_length=100, alias="firstName")
    last_name: str | None = Field(None, max_length=100, alias="lastName")
    bio: str | None = Field(None, max_length=2000)
    location: str | None = Field(None, max_length=200)
    website: str | None = Field(None, max_length=500)
    interests: list[str] | None = None
    social: SocialLinks | None = None
    visibility: VisibilitySettings | None = None

    model_config = {"populate_by_name": True}

    def social_updates(self) -> dict[str, str]:
        if self.social is None:
            return {}
        return {
            k: v
            for k, v in self.social.model_dump().items()
            if k in SOCIAL_KEYS and v is not None
        }

    def visibility_updates(self) -> dict[str, bool]:
        if self.visibility is None:
            return {}
        return {
            k: v
            for k, v in self.visibility.model_dump().items()
            if k in VISIBILITY_KEYS and v is not None
        }


class BookmarkRequest(BaseModel):
    item_id: str = Field(..., min_length=1, alias="itemId")

    model_config = {"populate_by_name": True}


# ==============================================================================
# Response Schemas
# ==============================================================================


class UserRef(BaseModel):
    """Follower or followee reference."""

    id: str
    username: str


class FollowStatusResponse(BaseModel):
    is_following: bool = Field(..., serialization_alias="isFollowing")


class AvailabilityResponse(BaseModel):
    available: bool
    message: str


class MessageResponse(BaseModel):
    message: str
