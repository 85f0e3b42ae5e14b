"""Database models for users and authentication.

Cassandra table definitions for:
- users: main user table keyed by id
- users_by_email: unique email claim, written with IF NOT EXISTS

Note: Uses cassandra-driver directly (not ORM). Tables are created via the
CQL statements below in the database module.
"""

from datetime import UTC, datetime
from typing import Any

from src.auth.permissions import UserRole
from src.core.ids import new_object_id


# CQL statements for table creation
USER_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.users (
    user_id TEXT PRIMARY KEY,
    name TEXT,
    email TEXT,
    password_hash TEXT,
    role TEXT,
    is_banned BOOLEAN,
    created_at TIMESTAMP,
    updated_at TIMESTAMP
)
"""

# Lookup table doubling as the email uniqueness constraint
USERS_BY_EMAIL_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.users_by_email (
    email TEXT PRIMARY KEY,
    user_id TEXT
)
"""

AUTH_TABLES_CQL = [
    USER_TABLE_CQL,
    USERS_BY_EMAIL_TABLE_CQL,
]


def ensure_utc_aware(dt: datetime | None) -> datetime | None:
    """Ensure datetime is UTC-aware (Cassandra returns naive datetimes)."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt


class User:
    """User entity.

    Attributes:
        id: 24-hex identifier
        name: Display name, copied onto posts and comments as author name
        email: Unique email address (stored lowercased)
        password_hash: Argon2id hash
        role: ``user`` or ``admin``
        is_banned: Banned users cannot log in
        created_at: Account creation timestamp
        updated_at: Last update timestamp
    """

    def __init__(
        self,
        id: str | None = None,
        name: str = "",
        email: str = "",
        password_hash: str = "",
        role: str = UserRole.USER.value,
        is_banned: bool = False,
        created_at: datetime | None = None,
        updated_at: datetime | None = None,
    ):
        self.id = id or new_object_id()
        self.name = name
        self.email = email.lower().strip()
        self.password_hash = password_hash
        self.role = role
        self.is_banned = is_banned
        self.created_at = ensure_utc_aware(created_at) or datetime.now(UTC)
        self.updated_at = ensure_utc_aware(updated_at) or self.created_at

    @classmethod
    def from_row(cls, row: Any) -> "User":
        """Create User instance from Cassandra row."""
        return cls(
            id=row.user_id,
            name=row.name or "",
            email=row.email,
            password_hash=row.password_hash,
            role=row.role or UserRole.USER.value,
            is_banned=bool(row.is_banned),
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value

    def __repr__(self) -> str:
        return f"<User {self.email} ({self.role})>"
