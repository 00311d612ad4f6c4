"""Pydantic schemas shared by the authentication dependencies."""

from pydantic import BaseModel, Field

from src.auth.permissions import UserRole


class TokenUser(BaseModel):
    """Identity decoded from a bearer token.

    Only what the token carries. Services load the full user when they need
    more than the caller's identity and role.
    """

    id: str = Field(..., description="User ID (token subject)")
    username: str
    role: UserRole = UserRole.USER


class TokenResponse(BaseModel):
    """Login response."""

    message: str = "Login successful"
    access_token: str
    role: UserRole
