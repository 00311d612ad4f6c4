"""Database models for users and the registration blocklist.

Tables are created via CQL statements in the database module.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from src.auth.permissions import UserRole
from src.utils import ensure_utc_aware, utc_now


USER_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.users (
    id UUID PRIMARY KEY,
    username TEXT,
    email TEXT,
    first_name TEXT,
    last_name TEXT,
    password_hash TEXT,
    role TEXT,
    is_blocked BOOLEAN,
    blocked_at TIMESTAMP,
    blocked_by TEXT,
    followers SET<UUID>,
    following SET<UUID>,
    bookmarks SET<TEXT>,
    likes SET<TEXT>,
    bio TEXT,
    location TEXT,
    website TEXT,
    interests LIST<TEXT>,
    social MAP<TEXT, TEXT>,
    visibility MAP<TEXT, BOOLEAN>,
    created_at TIMESTAMP,
    updated_at TIMESTAMP
)
"""

USER_USERNAME_INDEX_CQL = """
CREATE INDEX IF NOT EXISTS users_username_idx ON {keyspace}.users (username)
"""

USER_EMAIL_INDEX_CQL = """
CREATE INDEX IF NOT EXISTS users_email_idx ON {keyspace}.users (email)
"""

USER_ROLE_INDEX_CQL = """
CREATE INDEX IF NOT EXISTS users_role_idx ON {keyspace}.users (role)
"""

BLOCKED_EMAIL_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.blocked_emails (
    email TEXT PRIMARY KEY,
    reason TEXT,
    blocked_by TEXT,
    created_at TIMESTAMP
)
"""

USERS_TABLES_CQL = [
    USER_TABLE_CQL,
    USER_USERNAME_INDEX_CQL,
    USER_EMAIL_INDEX_CQL,
    USER_ROLE_INDEX_CQL,
    BLOCKED_EMAIL_TABLE_CQL,
]

SOCIAL_KEYS = ("twitter", "github", "linkedin")
VISIBILITY_KEYS = ("name", "bio", "location", "website", "interests", "social")
DEFAULT_VISIBILITY = dict.fromkeys(VISIBILITY_KEYS, True)


class User:
    """User entity.

    Attributes:
        id: Unique identifier (UUID)
        username: Unique public handle, denormalized onto authored content
        email: Unique email address, stored lowercased
        role: user, employer or admin
        is_blocked / blocked_at / blocked_by: moderation state
        followers / following: sets of user IDs
        bookmarks / likes: sets of item IDs (internal or external)
        visibility: which profile fields other users may see
    """

    def __init__(
        self,
        id: UUID | None = None,
        username: str = "",
        email: str = "",
        first_name: str = "",
        last_name: str = "",
        password_hash: str = "",
        role: str = UserRole.USER.value,
        is_blocked: bool = False,
        blocked_at: datetime | None = None,
        blocked_by: str | None = None,
        followers: set[UUID] | None = None,
        following: set[UUID] | None = None,
        bookmarks: set[str] | None = None,
        likes: set[str] | None = None,
        bio: str | None = None,
        location: str | None = None,
        website: str | None = None,
        interests: list[str] | None = None,
        social: dict[str, str] | None = None,
        visibility: dict[str, bool] | None = None,
        created_at: datetime | None = None,
        updated_at: datetime | None = None,
    ):
        self.id = id or uuid4()
        self.username = username.strip()
        self.email = email.lower().strip()
        self.first_name = first_name
        self.last_name = last_name
        self.password_hash = password_hash
        self.role = role
        self.is_blocked = is_blocked
        self.blocked_at = ensure_utc_aware(blocked_at)
        self.blocked_by = blocked_by
        self.followers = set(followers or ())
        self.following = set(following or ())
        self.bookmarks = set(bookmarks or ())
        self.likes = set(likes or ())
        self.bio = bio
        self.location = location
        self.website = website
        self.interests = list(interests or ())
        self.social = dict(social or {})
        self.visibility = {**DEFAULT_VISIBILITY, **(visibility or {})}
        self.created_at = ensure_utc_aware(created_at) or utc_now()
        self.updated_at = ensure_utc_aware(updated_at)

    @classmethod
    def from_row(cls, row: Any) -> "User":
        """Create User instance from Cassandra row."""
        return cls(
            id=row.id,
            username=row.username or "",
            email=row.email or "",
            first_name=row.first_name or "",
            last_name=row.last_name or "",
            password_hash=row.password_hash or "",
            role=row.role or UserRole.USER.value,
            is_blocked=bool(row.is_blocked),
            blocked_at=row.blocked_at,
            blocked_by=row.blocked_by,
            followers=row.followers,
            following=row.following,
            bookmarks=row.bookmarks,
            likes=row.likes,
            bio=row.bio,
            location=row.location,
            website=row.website,
            interests=row.interests,
            social=row.social,
            visibility=row.visibility,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    def to_dict(self) -> dict[str, Any]:
        """Full profile for the owner and admins. Never includes the hash."""
        return {
            "id": str(self.id),
            "username": self.username,
            "email": self.email,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "role": self.role,
            "is_blocked": self.is_blocked,
            "blocked_at": self.blocked_at.isoformat() if self.blocked_at else None,
            "blocked_by": self.blocked_by,
            "followers": sorted(str(f) for f in self.followers),
            "following": sorted(str(f) for f in self.following),
            "bookmarks": sorted(self.bookmarks),
            "likes": sorted(self.likes),
            "bio": self.bio,
            "location": self.location,
            "website": self.website,
            "interests": self.interests,
            "social": self.social,
            "visibility": self.visibility,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def to_public_dict(self) -> dict[str, Any]:
        """Profile as seen by other users, honouring visibility settings."""
        data = {
            "id": str(self.id),
            "username": self.username,
            "role": self.role,
            "followers_count": len(self.followers),
            "following_count": len(self.following),
            "created_at": self.created_at.isoformat(),
        }
        if self.visibility.get("name", True):
            data["first_name"] = self.first_name
            data["last_name"] = self.last_name
        for field in ("bio", "location", "website", "interests", "social"):
            if self.visibility.get(field, True):
                data[field] = getattr(self, field)
        return data

    def __repr__(self) -> str:
        return f"<User {self.username} ({self.role})>"


@dataclass
class BlockedEmail:
    """An email address that may not register."""

    email: str
    reason: str
    blocked_by: str
    created_at: datetime

    @classmethod
    def from_row(cls, row: Any) -> "BlockedEmail":
        """Create BlockedEmail from Cassandra row."""
        return cls(
            email=row.email,
            reason=row.reason or "",
            blocked_by=row.blocked_by or "",
            created_at=ensure_utc_aware(row.created_at),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "email": self.email,
            "reason": self.reason,
            "blocked_by": self.blocked_by,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


def create_blocked_email(email: str, blocked_by: str, reason: str | None) -> BlockedEmail:
    """Create a blocklist entry. Emails are matched lowercased."""
    return BlockedEmail(
        email=email.lower().strip(),
        reason=reason or "No reason provided",
        blocked_by=blocked_by,
        created_at=utc_now(),
    )
