"""FastAPI dependencies for authentication.

Provides:
- Current user extraction from the bearer JWT, checked against the users table
- Role-based access control
"""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from jose import JWTError

from src.auth.permissions import UserRole
from src.auth.schemas import TokenUser
from src.auth.security import decode_access_token
from src.core.middleware import set_user_context
from src.users.dependencies import get_user_service


def get_token_from_header(request: Request) -> str | None:
    """Extract Bearer token from Authorization header."""
    auth_header = request.headers.get("Authorization")
    if not auth_header:
        return None

    expected_parts = 2
    parts = auth_header.split()
    if len(parts) != expected_parts or parts[0].lower() != "bearer":
        return None

    return parts[1]


async def _user_from_payload(request: Request, payload: dict) -> TokenUser | None:
    """Identity from the claims, or None when the account no longer exists."""
    user_service = await get_user_service(request)
    if not await user_service.get_user_by_id(payload["sub"]):
        return None

    user = TokenUser(
        id=payload["sub"],
        username=payload["username"],
        role=payload.get("role", UserRole.USER.value),
    )
    set_user_context(user.id, user.username)
    return user


async def get_current_user(
    request: Request,
    token: Annotated[str | None, Depends(get_token_from_header)],
) -> TokenUser:
    """Get current authenticated user from JWT token.

    Raises:
        HTTPException(401): If token is missing, invalid, expired, or names
            a user that no longer exists
    """
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="No token, authorization denied",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        payload = decode_access_token(token)
    except JWTError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token is not valid",
            headers={"WWW-Authenticate": "Bearer"},
        ) from e

    user = await _user_from_payload(request, payload)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


async def get_current_user_optional(
    request: Request,
    token: Annotated[str | None, Depends(get_token_from_header)],
) -> TokenUser | None:
    """Get current user if authenticated, None otherwise."""
    if not token:
        return None

    try:
        payload = decode_access_token(token)
    except JWTError:
        return None

    return await _user_from_payload(request, payload)


def require_role(*allowed_roles: UserRole):
    """Create dependency requiring one of the given roles (exact match)."""

    async def role_checker(
        user: Annotated[TokenUser, Depends(get_current_user)],
    ) -> TokenUser:
        if user.role not in allowed_roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Admin access required"
                if allowed_roles == (UserRole.ADMIN,)
                else "Insufficient permissions",
            )
        return user

    return role_checker


# ==============================================================================
# Type Aliases
# ==============================================================================

CurrentUser = Annotated[TokenUser, Depends(get_current_user)]
OptionalUser = Annotated[TokenUser | None, Depends(get_current_user_optional)]
AdminUser = Annotated[TokenUser, Depends(require_role(UserRole.ADMIN))]
