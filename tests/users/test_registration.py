"""Tests for registration, login and the email blocklist."""

from types import SimpleNamespace

import pytest
from fastapi import status

from src.auth.permissions import UserRole
from src.auth.security import decode_access_token
from src.users.dependencies import handle_user_error
from src.users.schemas import RegisterRequest
from src.users.service import (
    AccountBlockedError,
    BlockedEmailNotFoundError,
    EmailAlreadyBlockedError,
    EmailBlockedError,
    InvalidCredentialsError,
    UserExistsError,
    UserService,
)


USER_COLUMNS = (
    "id",
    "username",
    "email",
    "first_name",
    "last_name",
    "password_hash",
    "role",
    "is_blocked",
    "blocked_at",
    "blocked_by",
    "followers",
    "following",
    "bookmarks",
    "likes",
    "bio",
    "location",
    "website",
    "interests",
    "social",
    "visibility",
    "created_at",
    "updated_at",
)


class UserStore:
    """In-memory users and blocked_emails tables."""

    def __init__(self, service: UserService):
        self.service = service
        self.users: list[dict] = []
        self.blocked: dict[str, dict] = {}

    async def aexecute(self, statement, params=None):
        s = self.service
        if statement == s._get_blocked_email:
            row = self.blocked.get(params[0])
            return [SimpleNamespace(**row)] if row else []
        if statement == s._insert_blocked_email:
            email, reason, blocked_by, created_at = params
            self.blocked[email] = {
                "email": email,
                "reason": reason,
                "blocked_by": blocked_by,
                "created_at": created_at,
            }
            return []
        if statement == s._delete_blocked_email:
            self.blocked.pop(params[0], None)
            return []
        if statement == s._get_by_username:
            return [SimpleNamespace(**u) for u in self.users if u["username"] == params[0]]
        if statement == s._get_by_email:
            return [SimpleNamespace(**u) for u in self.users if u["email"] == params[0]]
        if statement == s._insert_user:
            self.users.append(dict(zip(USER_COLUMNS, params, strict=True)))
            return []
        raise AssertionError(f"unexpected statement: {statement}")


@pytest.fixture
def store(mock_session):
    service = UserService(session=mock_session, keyspace="test")
    store = UserStore(service)
    mock_session.aexecute.side_effect = store.aexecute
    return store


def _request(**overrides) -> RegisterRequest:
    data = {
        "username": "alice",
        "email": "Alice@Example.com",
        "password": "correct-horse-battery",
    }
    data.update(overrides)
    return RegisterRequest(**data)


class TestRegister:
    @pytest.mark.asyncio
    async def test_register_normalizes_email_and_hashes_password(self, store):
        user = await store.service.register(_request())

        assert user.email == "alice@example.com"
        assert user.role == UserRole.USER.value
        assert user.password_hash.startswith("$argon2id$")
        assert store.users[0]["username"] == "alice"

    @pytest.mark.asyncio
    async def test_duplicate_username_conflicts(self, store):
        await store.service.register(_request())

        with pytest.raises(UserExistsError) as exc_info:
            await store.service.register(_request(email="other@example.com"))

        assert exc_info.value.field == "username"
        assert handle_user_error(exc_info.value).status_code == status.HTTP_409_CONFLICT

    @pytest.mark.asyncio
    async def test_duplicate_email_conflicts(self, store):
        await store.service.register(_request())

        with pytest.raises(UserExistsError) as exc_info:
            await store.service.register(_request(username="alice2"))

        assert exc_info.value.field == "email"


class TestEmailBlocklist:
    @pytest.mark.asyncio
    async def test_blocked_email_cannot_register(self, store):
        await store.service.block_email("ALICE@example.com", "root", "spam wave")

        with pytest.raises(EmailBlockedError):
            await store.service.register(_request())
        assert store.users == []

    @pytest.mark.asyncio
    async def test_registration_succeeds_after_unblock(self, store):
        await store.service.block_email("alice@example.com", "root")
        await store.service.unblock_email("alice@example.com")

        user = await store.service.register(_request())

        assert user.username == "alice"

    @pytest.mark.asyncio
    async def test_block_twice(self, store):
        await store.service.block_email("alice@example.com", "root")

        with pytest.raises(EmailAlreadyBlockedError):
            await store.service.block_email("alice@example.com", "root")

    @pytest.mark.asyncio
    async def test_unblock_unknown_email(self, store):
        with pytest.raises(BlockedEmailNotFoundError):
            await store.service.unblock_email("nobody@example.com")


class TestLogin:
    @pytest.mark.asyncio
    async def test_valid_credentials_issue_token(self, store):
        await store.service.register(_request())

        user, token = await store.service.authenticate("alice", "correct-horse-battery")

        assert user.username == "alice"
        assert decode_access_token(token)["username"] == "alice"

    @pytest.mark.asyncio
    async def test_wrong_password(self, store):
        await store.service.register(_request())

        with pytest.raises(InvalidCredentialsError) as exc_info:
            await store.service.authenticate("alice", "wrong-password")

        assert handle_user_error(exc_info.value).status_code == status.HTTP_400_BAD_REQUEST

    @pytest.mark.asyncio
    async def test_unknown_username(self, store):
        with pytest.raises(InvalidCredentialsError):
            await store.service.authenticate("ghost", "correct-horse-battery")

    @pytest.mark.asyncio
    async def test_blocked_account(self, store):
        await store.service.register(_request())
        store.users[0]["is_blocked"] = True

        with pytest.raises(AccountBlockedError) as exc_info:
            await store.service.authenticate("alice", "correct-horse-battery")

        assert handle_user_error(exc_info.value).status_code == status.HTTP_400_BAD_REQUEST


class TestRegisterRequest:
    def test_admin_role_cannot_be_self_assigned(self):
        with pytest.raises(ValueError):
            _request(role="admin")

    def test_employer_role_allowed(self):
        assert _request(role="employer").role == UserRole.EMPLOYER
