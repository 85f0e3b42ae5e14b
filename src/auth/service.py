"""Authentication service layer.

Business logic for:
- User registration and login
- Access token creation
- User storage and admin-level user queries
"""

from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

import structlog

from src.auth.models import User
from src.auth.permissions import UserRole
from src.auth.schemas import (
    AdminCreateUserRequest,
    RegisterRequest,
    TokenResponse,
    UserResponse,
)
from src.auth.security import create_access_token, hash_password, verify_password
from src.config.settings import get_settings
from src.core.database.lwt import was_applied
from src.core.exceptions import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    UnauthorizedError,
)


if TYPE_CHECKING:
    from cassandra.cluster import Session


logger = structlog.get_logger(__name__)


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class InvalidCredentialsError(UnauthorizedError):
    def __init__(self, message: str = "Invalid credentials"):
        super().__init__(message, "invalid_credentials")


class UserBannedError(ForbiddenError):
    def __init__(self, message: str = "Your account has been banned"):
        super().__init__(message, "user_banned")


class UserNotFoundError(NotFoundError):
    def __init__(self, user_id: str):
        super().__init__(f"User not found with id of {user_id}", "user_not_found")


# ==============================================================================
# Auth Service
# ==============================================================================


class AuthService:
    """User storage, registration and login."""

    def __init__(self, session: "Session", keyspace: str):
        """Initialize with Cassandra session.

        Args:
            session: Cassandra session with ``aexecute()``
            keyspace: Keyspace name for queries
        """
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for better performance."""
        self._get_user_by_id = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.users WHERE user_id = ?"
        )
        self._get_user_id_by_email = self.session.prepare(
            f"SELECT user_id FROM {self.keyspace}.users_by_email WHERE email = ?"
        )
        self._claim_email = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.users_by_email (email, user_id)
            VALUES (?, ?)
            IF NOT EXISTS
        """)
        self._release_email = self.session.prepare(
            f"DELETE FROM {self.keyspace}.users_by_email WHERE email = ?"
        )
        self._insert_user = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.users
            (user_id, name, email, password_hash, role, is_banned, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        """)
        self._update_user = self.session.prepare(f"""
            UPDATE {self.keyspace}.users
            SET name = ?, email = ?, role = ?, updated_at = ?
            WHERE user_id = ?
        """)
        self._update_password = self.session.prepare(f"""
            UPDATE {self.keyspace}.users
            SET password_hash = ?, updated_at = ?
            WHERE user_id = ?
        """)
        self._update_banned = self.session.prepare(f"""
            UPDATE {self.keyspace}.users
            SET is_banned = ?, updated_at = ?
            WHERE user_id = ?
        """)
        self._delete_user = self.session.prepare(
            f"DELETE FROM {self.keyspace}.users WHERE user_id = ?"
        )
        self._list_users = self.session.prepare(f"SELECT * FROM {self.keyspace}.users")

    # ==========================================================================
    # User Storage
    # ==========================================================================

    async def get_user_by_id(self, user_id: str) -> User | None:
        rows = await self.session.aexecute(self._get_user_by_id, [user_id])
        return User.from_row(rows[0]) if rows else None

    async def get_user_by_email(self, email: str) -> User | None:
        rows = await self.session.aexecute(
            self._get_user_id_by_email, [email.lower().strip()]
        )
        if not rows:
            return None
        return await self.get_user_by_id(rows[0].user_id)

    async def require_user(self, user_id: str) -> User:
        user = await self.get_user_by_id(user_id)
        if not user:
            raise UserNotFoundError(user_id)
        return user

    async def list_users(self) -> list[User]:
        """All users, newest first.

        Full-table scan; the user table is only listed by admins.
        """
        rows = await self.session.aexecute(self._list_users)
        users = [User.from_row(row) for row in rows]
        users.sort(key=lambda u: u.created_at, reverse=True)
        return users

    async def _claim_email_or_fail(self, email: str, user_id: str) -> None:
        rows = await self.session.aexecute(self._claim_email, [email, user_id])
        if not was_applied(rows):
            raise ConflictError("email")

    async def create_user(
        self,
        name: str,
        email: str,
        password: str,
        role: UserRole = UserRole.USER,
    ) -> User:
        """Create a user, claiming the email first.

        Raises:
            ConflictError: If the email is already registered.
        """
        user = User(
            name=name,
            email=email,
            password_hash=hash_password(password),
            role=role.value,
        )
        await self._claim_email_or_fail(user.email, user.id)
        await self.session.aexecute(
            self._insert_user,
            [
                user.id,
                user.name,
                user.email,
                user.password_hash,
                user.role,
                user.is_banned,
                user.created_at,
                user.updated_at,
            ],
        )
        logger.info("user_created", user_id=user.id, role=user.role)
        return user

    async def update_user(
        self,
        user_id: str,
        name: str,
        email: str,
        role: UserRole | None = None,
    ) -> User:
        """Update name, email and optionally role.

        A changed email is claimed before the old one is released.
        """
        user = await self.require_user(user_id)
        new_email = email.lower().strip()

        if new_email != user.email:
            await self._claim_email_or_fail(new_email, user.id)
            await self.session.aexecute(self._release_email, [user.email])

        user.name = name
        user.email = new_email
        if role is not None:
            user.role = role.value
        user.updated_at = datetime.now(UTC)

        await self.session.aexecute(
            self._update_user,
            [user.name, user.email, user.role, user.updated_at, user.id],
        )
        logger.info("user_updated", user_id=user.id)
        return user

    async def set_banned(self, user: User, is_banned: bool) -> User:
        user.is_banned = is_banned
        user.updated_at = datetime.now(UTC)
        await self.session.aexecute(
            self._update_banned, [user.is_banned, user.updated_at, user.id]
        )
        return user

    async def delete_user(self, user: User) -> None:
        """Remove the user row and release the email."""
        await self.session.aexecute(self._delete_user, [user.id])
        await self.session.aexecute(self._release_email, [user.email])

    # ==========================================================================
    # Registration & Login
    # ==========================================================================

    async def register_user(self, data: RegisterRequest) -> User:
        """Register a new ``user`` role account."""
        return await self.create_user(data.name, data.email, data.password)

    async def admin_create_user(self, data: AdminCreateUserRequest) -> User:
        return await self.create_user(data.name, data.email, data.password, data.role)

    async def authenticate_user(self, email: str, password: str) -> User:
        """Authenticate user with email and password.

        Raises:
            InvalidCredentialsError: If email or password is wrong
            UserBannedError: If the account is banned
        """
        user = await self.get_user_by_email(email)
        if not user:
            raise InvalidCredentialsError

        is_valid, new_hash = verify_password(password, user.password_hash)
        if not is_valid:
            raise InvalidCredentialsError

        if user.is_banned:
            logger.warning("banned_user_login_rejected", user_id=user.id)
            raise UserBannedError

        # Upgrade the hash when the hashing parameters changed
        if new_hash:
            await self.session.aexecute(
                self._update_password, [new_hash, datetime.now(UTC), user.id]
            )
            user.password_hash = new_hash

        return user

    def create_token(self, user: User) -> TokenResponse:
        """Issue an access token for ``user``."""
        settings = get_settings()
        lifetime = timedelta(minutes=settings.auth_access_token_expire_minutes)
        token = create_access_token(
            {"sub": user.id, "email": user.email, "role": user.role, "name": user.name},
            expires_delta=lifetime,
        )
        return TokenResponse(
            access_token=token,
            expires_in=int(lifetime.total_seconds()),
            user=self.to_response(user),
        )

    def to_response(self, user: User) -> UserResponse:
        return UserResponse.model_validate(user)
