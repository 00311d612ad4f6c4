"""Role-based access control.

Hierarchical roles:
- ADMIN (level 2): moderation, user blocking, reports
- EMPLOYER (level 1): may post job stories
- USER (level 0): regular member
"""

from enum import Enum


class UserRole(str, Enum):
    """User roles with hierarchical levels."""

    USER = "user"
    EMPLOYER = "employer"
    ADMIN = "admin"


ROLE_HIERARCHY: dict[UserRole, int] = {
    UserRole.USER: 0,
    UserRole.EMPLOYER: 1,
    UserRole.ADMIN: 2,
}


def get_role_level(role: UserRole | str) -> int:
    """Get the permission level for a role, 0 for unknown roles."""
    if isinstance(role, str):
        try:
            role = UserRole(role)
        except ValueError:
            return 0
    return ROLE_HIERARCHY.get(role, 0)


def has_permission(user_role: UserRole | str, required_role: UserRole | str) -> bool:
    """Check if user has at least the required permission level.

    Examples:
        >>> has_permission(UserRole.ADMIN, UserRole.EMPLOYER)
        True
        >>> has_permission("user", "employer")
        False
    """
    return get_role_level(user_role) >= get_role_level(required_role)


def is_admin(role: UserRole | str) -> bool:
    """Check if role is ADMIN."""
    return get_role_level(role) == ROLE_HIERARCHY[UserRole.ADMIN]


def can_post_jobs(role: UserRole | str) -> bool:
    """Check if role is EMPLOYER or higher."""
    return has_permission(role, UserRole.EMPLOYER)


def can_self_assign(role: UserRole | str) -> bool:
    """Roles a visitor may pick at registration. ADMIN is never self-assigned."""
    return get_role_level(role) < ROLE_HIERARCHY[UserRole.ADMIN]
