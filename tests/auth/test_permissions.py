"""Tests for roles and content access rules."""

import pytest

from src.auth.access import (
    DELETED_BY_ADMIN,
    DELETED_BY_AUTHOR,
    can_create_story_type,
    can_modify,
    deletion_reason,
)
from src.auth.permissions import (
    ROLE_HIERARCHY,
    UserRole,
    can_post_jobs,
    can_self_assign,
    get_role_level,
    has_permission,
    is_admin,
)
from src.auth.schemas import TokenUser


class TestUserRole:
    """Tests for UserRole enum."""

    def test_role_values(self) -> None:
        assert UserRole.USER.value == "user"
        assert UserRole.EMPLOYER.value == "employer"
        assert UserRole.ADMIN.value == "admin"

    def test_all_roles_have_levels(self) -> None:
        for role in UserRole:
            assert role in ROLE_HIERARCHY


class TestRoleLevels:
    @pytest.mark.parametrize(
        "role,expected_level",
        [("user", 0), ("employer", 1), ("admin", 2), ("moderator", 0)],
    )
    def test_string_roles(self, role: str, expected_level: int) -> None:
        """Unknown roles fall back to the lowest level."""
        assert get_role_level(role) == expected_level

    def test_has_permission(self) -> None:
        assert has_permission(UserRole.ADMIN, UserRole.EMPLOYER)
        assert not has_permission(UserRole.USER, UserRole.EMPLOYER)

    def test_is_admin(self) -> None:
        assert is_admin("admin")
        assert not is_admin(UserRole.EMPLOYER)

    @pytest.mark.parametrize(
        "role,allowed",
        [(UserRole.USER, False), (UserRole.EMPLOYER, True), (UserRole.ADMIN, True)],
    )
    def test_can_post_jobs(self, role: UserRole, allowed: bool) -> None:
        assert can_post_jobs(role) is allowed

    def test_admin_is_never_self_assigned(self) -> None:
        assert can_self_assign(UserRole.EMPLOYER)
        assert not can_self_assign(UserRole.ADMIN)


class TestContentAccess:
    """Ownership and moderation rules."""

    @pytest.fixture
    def alice(self) -> TokenUser:
        return TokenUser(id="1", username="alice", role=UserRole.USER)

    @pytest.fixture
    def admin(self) -> TokenUser:
        return TokenUser(id="2", username="root", role=UserRole.ADMIN)

    def test_author_can_modify_own_content(self, alice: TokenUser) -> None:
        assert can_modify(alice, "alice")
        assert not can_modify(alice, "bob")

    def test_admin_can_modify_anything(self, admin: TokenUser) -> None:
        assert can_modify(admin, "bob")

    @pytest.mark.parametrize(
        "role,story_type,allowed",
        [
            (UserRole.USER, "story", True),
            (UserRole.USER, "poll", True),
            (UserRole.USER, "job", False),
            (UserRole.EMPLOYER, "job", True),
            (UserRole.ADMIN, "job", True),
        ],
    )
    def test_can_create_story_type(
        self, role: UserRole, story_type: str, allowed: bool
    ) -> None:
        assert can_create_story_type(role, story_type) is allowed

    def test_deletion_reason_for_author_is_fixed(self, alice: TokenUser) -> None:
        assert deletion_reason(alice, "my reason") == DELETED_BY_AUTHOR

    def test_deletion_reason_for_admin(self, admin: TokenUser) -> None:
        assert deletion_reason(admin, "spam") == "spam"
        assert deletion_reason(admin) == DELETED_BY_ADMIN
