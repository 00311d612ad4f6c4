"""User service layer.

Business logic for:
- Registration (gated by the email blocklist) and login
- Profiles, follows and bookmarks
- The liked-items set maintained by the like service
- Blocklist and block-state writes used by the admin service
"""

from typing import TYPE_CHECKING
from uuid import UUID

import structlog

from src.auth.security import create_access_token, hash_password, verify_password
from src.utils import utc_now

from .models import BlockedEmail, User, create_blocked_email
from .schemas import RegisterRequest, UpdateProfileRequest


if TYPE_CHECKING:
    from cassandra.cluster import Session

    from src.search.client import HackerNewsClient


logger = structlog.get_logger(__name__)


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class UserError(Exception):
    """Base user error."""

    def __init__(self, message: str, code: str = "user_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class UserNotFoundError(UserError):
    def __init__(self, message: str = "User not found"):
        super().__init__(message, "user_not_found")


class UserExistsError(UserError):
    """Username or email already taken."""

    def __init__(self, message: str = "User already exists", field: str | None = None):
        super().__init__(message, "user_exists")
        self.field = field


class EmailBlockedError(UserError):
    def __init__(self, message: str = "This email address is not allowed to register."):
        super().__init__(message, "email_blocked")


class InvalidCredentialsError(UserError):
    def __init__(self, message: str = "Invalid username or password"):
        super().__init__(message, "invalid_credentials")


class AccountBlockedError(UserError):
    def __init__(
        self, message: str = "Your account has been blocked. Please contact support."
    ):
        super().__init__(message, "account_blocked")


class UserBadRequestError(UserError):
    def __init__(self, message: str = "Bad request"):
        super().__init__(message, "bad_request")


class EmailAlreadyBlockedError(UserError):
    def __init__(self, message: str = "Email is already blocked"):
        super().__init__(message, "already_blocked")


class BlockedEmailNotFoundError(UserError):
    def __init__(self, message: str = "Email is not blocked"):
        super().__init__(message, "blocked_email_not_found")


# ==============================================================================
# User Service
# ==============================================================================


class UserService:
    """Service for user accounts and the social graph."""

    def __init__(
        self,
        session: "Session",
        keyspace: str,
        hn_client: "HackerNewsClient | None" = None,
    ):
        self.session = session
        self.keyspace = keyspace
        self.hn_client = hn_client
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements."""
        self._insert_user = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.users
            (id, username, email, first_name, last_name, password_hash, role,
             is_blocked, blocked_at, blocked_by, followers, following, bookmarks,
             likes, bio, location, website, interests, social, visibility,
             created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)

        self._get_by_id = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.users WHERE id = ?"
        )
        self._get_by_ids = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.users WHERE id IN ?"
        )
        self._get_by_username = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.users WHERE username = ?"
        )
        self._get_by_email = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.users WHERE email = ?"
        )
        self._list_users = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.users"
        )

        self._update_profile = self.session.prepare(f"""
            UPDATE {self.keyspace}.users
            SET username = ?, email = ?, first_name = ?, last_name = ?, bio = ?,
                location = ?, website = ?, interests = ?, social = ?,
                visibility = ?, updated_at = ?
            WHERE id = ?
        """)
        self._update_password_hash = self.session.prepare(f"""
            UPDATE {self.keyspace}.users SET password_hash = ? WHERE id = ?
        """)
        self._set_block_state = self.session.prepare(f"""
            UPDATE {self.keyspace}.users
            SET is_blocked = ?, blocked_at = ?, blocked_by = ?, updated_at = ?
            WHERE id = ?
        """)

        # Collection updates are single-row and atomic
        self._add_follower = self.session.prepare(f"""
            UPDATE {self.keyspace}.users SET followers = followers + ? WHERE id = ?
        """)
        self._remove_follower = self.session.prepare(f"""
            UPDATE {self.keyspace}.users SET followers = followers - ? WHERE id = ?
        """)
        self._add_following = self.session.prepare(f"""
            UPDATE {self.keyspace}.users SET following = following + ? WHERE id = ?
        """)
        self._remove_following = self.session.prepare(f"""
            UPDATE {self.keyspace}.users SET following = following - ? WHERE id = ?
        """)
        self._add_bookmark = self.session.prepare(f"""
            UPDATE {self.keyspace}.users SET bookmarks = bookmarks + ? WHERE id = ?
        """)
        self._remove_bookmark = self.session.prepare(f"""
            UPDATE {self.keyspace}.users SET bookmarks = bookmarks - ? WHERE id = ?
        """)
        self._add_liked_item = self.session.prepare(f"""
            UPDATE {self.keyspace}.users SET likes = likes + ? WHERE id = ?
        """)
        self._remove_liked_item = self.session.prepare(f"""
            UPDATE {self.keyspace}.users SET likes = likes - ? WHERE id = ?
        """)

        # Blocklist
        self._get_blocked_email = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.blocked_emails WHERE email = ?"
        )
        self._insert_blocked_email = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.blocked_emails
            (email, reason, blocked_by, created_at)
            VALUES (?, ?, ?, ?)
        """)
        self._delete_blocked_email = self.session.prepare(
            f"DELETE FROM {self.keyspace}.blocked_emails WHERE email = ?"
        )
        self._list_blocked_emails = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.blocked_emails"
        )

    # ==========================================================================
    # Lookups
    # ==========================================================================

    async def get_user_by_id(self, user_id: UUID | str) -> User | None:
        try:
            uid = UUID(str(user_id))
        except ValueError:
            return None
        result = await self.session.aexecute(self._get_by_id, [uid])
        row = result[0] if result else None
        return User.from_row(row) if row else None

    async def get_user_by_username(self, username: str) -> User | None:
        result = await self.session.aexecute(self._get_by_username, [username])
        row = result[0] if result else None
        return User.from_row(row) if row else None

    async def get_user_by_email(self, email: str) -> User | None:
        result = await self.session.aexecute(
            self._get_by_email, [email.lower().strip()]
        )
        row = result[0] if result else None
        return User.from_row(row) if row else None

    async def require_user(self, user_id: UUID | str) -> User:
        """Get a user or raise UserNotFoundError."""
        user = await self.get_user_by_id(user_id)
        if not user:
            raise UserNotFoundError
        return user

    async def get_users_by_ids(self, user_ids: set[UUID] | list[UUID]) -> list[User]:
        """Resolve many users with one ``IN`` query."""
        ids = list(user_ids)
        if not ids:
            return []
        rows = await self.session.aexecute(self._get_by_ids, [ids])
        return [User.from_row(row) for row in rows]

    async def list_users(self) -> list[User]:
        """All users. Admin listings filter and paginate the result in memory."""
        rows = await self.session.aexecute(self._list_users)
        return [User.from_row(row) for row in rows]

    async def search_users(self, term: str, limit: int = 20) -> list[User]:
        """Case-insensitive substring match on username."""
        term_lower = term.lower().strip()
        if not term_lower:
            return []
        users = [u for u in await self.list_users() if term_lower in u.username.lower()]
        users.sort(key=lambda u: (not u.username.lower().startswith(term_lower), u.username))
        return users[:limit]

    # ==========================================================================
    # Registration and login
    # ==========================================================================

    async def is_email_blocked(self, email: str) -> bool:
        result = await self.session.aexecute(
            self._get_blocked_email, [email.lower().strip()]
        )
        return bool(result)

    async def register(self, data: RegisterRequest) -> User:
        """Create an account.

        Raises:
            EmailBlockedError: Email is on the blocklist.
            UserExistsError: Username or email already taken.
        """
        email = str(data.email).lower()

        if await self.is_email_blocked(email):
            logger.info("registration_rejected_blocked_email", username=data.username)
            raise EmailBlockedError

        if await self.get_user_by_username(data.username):
            raise UserExistsError("Username already exists", field="username")

        if await self.get_user_by_email(email):
            raise UserExistsError("Email already exists", field="email")

        user = User(
            username=data.username,
            email=email,
            first_name=data.first_name,
            last_name=data.last_name,
            password_hash=hash_password(data.password),
            role=data.role.value,
        )
        await self._insert_user_to_db(user)

        logger.info("user_registered", user_id=str(user.id), role=user.role)
        return user

    async def _insert_user_to_db(self, user: User) -> None:
        await self.session.aexecute(
            self._insert_user,
            [
                user.id,
                user.username,
                user.email,
                user.first_name,
                user.last_name,
                user.password_hash,
                user.role,
                user.is_blocked,
                user.blocked_at,
                user.blocked_by,
                user.followers,
                user.following,
                user.bookmarks,
                user.likes,
                user.bio,
                user.location,
                user.website,
                user.interests,
                user.social,
                user.visibility,
                user.created_at,
                user.updated_at,
            ],
        )

    async def authenticate(self, username: str, password: str) -> tuple[User, str]:
        """Check credentials and issue an access token.

        Raises:
            InvalidCredentialsError: Unknown user or wrong password.
            AccountBlockedError: The account is blocked.
        """
        user = await self.get_user_by_username(username)
        if not user:
            raise InvalidCredentialsError

        is_valid, new_hash = verify_password(password, user.password_hash)
        if not is_valid:
            logger.info("login_failed", username=username)
            raise InvalidCredentialsError

        if user.is_blocked:
            logger.info("login_rejected_blocked", user_id=str(user.id))
            raise AccountBlockedError

        if new_hash:
            await self.session.aexecute(self._update_password_hash, [new_hash, user.id])

        token = create_access_token(
            {"sub": str(user.id), "username": user.username, "role": user.role}
        )
        logger.info("user_logged_in", user_id=str(user.id))
        return user, token

    async def is_username_available(self, username: str) -> bool:
        return await self.get_user_by_username(username.strip()) is None

    async def hn_username_exists(self, username: str) -> bool:
        """Whether the name is taken on Hacker News itself."""
        if self.hn_client is None:
            return False
        return await self.hn_client.get_user(username) is not None

    # ==========================================================================
    # Profile
    # ==========================================================================

    async def update_profile(self, user_id: UUID | str, data: UpdateProfileRequest) -> User:
        """Apply a partial profile update.

        Raises:
            UserNotFoundError: Unknown user.
            UserExistsError: New username or email belongs to someone else.
        """
        user = await self.require_user(user_id)

        if data.username is not None and data.username.strip() != user.username:
            if await self.get_user_by_username(data.username.strip()):
                raise UserExistsError("Username already exists", field="username")
            user.username = data.username.strip()

        if data.email is not None and str(data.email).lower() != user.email:
            if await self.get_user_by_email(str(data.email)):
                raise UserExistsError("Email already exists", field="email")
            user.email = str(data.email).lower()

        for field in ("first_name", "last_name", "bio", "location", "website", "interests"):
            value = getattr(data, field)
            if value is not None:
                setattr(user, field, value)

        user.social.update(data.social_updates())
        user.visibility.update(data.visibility_updates())
        user.updated_at = utc_now()

        await self.session.aexecute(
            self._update_profile,
            [
                user.username,
                user.email,
                user.first_name,
                user.last_name,
                user.bio,
                user.location,
                user.website,
                user.interests,
                user.social,
                user.visibility,
                user.updated_at,
                user.id,
            ],
        )
        logger.info("profile_updated", user_id=str(user.id))
        return user

    # ==========================================================================
    # Social graph
    # ==========================================================================

    async def follow(self, follower_id: UUID | str, target_id: UUID | str) -> None:
        """Follow another user.

        Raises:
            UserBadRequestError: Following oneself.
            UserNotFoundError: Either user is unknown.
        """
        if str(follower_id) == str(target_id):
            raise UserBadRequestError("You cannot follow yourself")

        follower = await self.require_user(follower_id)
        target = await self.require_user(target_id)

        await self.session.aexecute(self._add_following, [{target.id}, follower.id])
        await self.session.aexecute(self._add_follower, [{follower.id}, target.id])
        logger.info("user_followed", follower_id=str(follower.id), target_id=str(target.id))

    async def unfollow(self, follower_id: UUID | str, target_id: UUID | str) -> None:
        """Stop following a user."""
        follower = await self.require_user(follower_id)
        target = await self.require_user(target_id)

        await self.session.aexecute(self._remove_following, [{target.id}, follower.id])
        await self.session.aexecute(self._remove_follower, [{follower.id}, target.id])
        logger.info("user_unfollowed", follower_id=str(follower.id), target_id=str(target.id))

    async def is_following(self, follower_id: UUID | str, target_id: UUID | str) -> bool:
        follower = await self.require_user(follower_id)
        return any(str(f) == str(target_id) for f in follower.following)

    async def resolve_refs(self, user_ids: set[UUID]) -> list[dict[str, str]]:
        """Turn a set of user IDs into ``{id, username}`` pairs."""
        users = await self.get_users_by_ids(user_ids)
        return sorted(
            ({"id": str(u.id), "username": u.username} for u in users),
            key=lambda ref: ref["username"],
        )

    # ==========================================================================
    # Bookmarks and likes
    # ==========================================================================

    async def add_bookmark(self, user_id: UUID | str, item_id: str) -> None:
        user = await self.require_user(user_id)
        await self.session.aexecute(self._add_bookmark, [{item_id}, user.id])

    async def remove_bookmark(self, user_id: UUID | str, item_id: str) -> None:
        user = await self.require_user(user_id)
        await self.session.aexecute(self._remove_bookmark, [{item_id}, user.id])

    async def add_liked_item(self, user_id: UUID | str, item_id: str) -> None:
        await self.session.aexecute(
            self._add_liked_item, [{item_id}, UUID(str(user_id))]
        )

    async def remove_liked_item(self, user_id: UUID | str, item_id: str) -> None:
        await self.session.aexecute(
            self._remove_liked_item, [{item_id}, UUID(str(user_id))]
        )

    # ==========================================================================
    # Moderation state
    # ==========================================================================

    async def set_block_state(
        self, user: User, blocked: bool, admin_username: str | None
    ) -> None:
        """Write the block flag and audit fields on a user row."""
        now = utc_now()
        user.is_blocked = blocked
        user.blocked_at = now if blocked else None
        user.blocked_by = admin_username if blocked else None
        user.updated_at = now
        await self.session.aexecute(
            self._set_block_state,
            [user.is_blocked, user.blocked_at, user.blocked_by, now, user.id],
        )

    async def block_email(
        self, email: str, admin_username: str, reason: str | None = None
    ) -> BlockedEmail:
        """Add an email to the registration blocklist.

        Raises:
            EmailAlreadyBlockedError: Already on the list.
        """
        entry = create_blocked_email(email, admin_username, reason)
        if await self.is_email_blocked(entry.email):
            raise EmailAlreadyBlockedError

        await self.session.aexecute(
            self._insert_blocked_email,
            [entry.email, entry.reason, entry.blocked_by, entry.created_at],
        )
        logger.info("email_blocked", blocked_by=admin_username)
        return entry

    async def unblock_email(self, email: str) -> None:
        """Remove an email from the blocklist.

        Raises:
            BlockedEmailNotFoundError: Not on the list.
        """
        normalized = email.lower().strip()
        if not await self.is_email_blocked(normalized):
            raise BlockedEmailNotFoundError

        await self.session.aexecute(self._delete_blocked_email, [normalized])
        logger.info("email_unblocked")

    async def list_blocked_emails(self) -> list[BlockedEmail]:
        """Blocklist, newest first."""
        rows = await self.session.aexecute(self._list_blocked_emails)
        entries = [BlockedEmail.from_row(row) for row in rows]
        entries.sort(key=lambda e: e.created_at.timestamp() if e.created_at else 0, reverse=True)
        return entries
