"""Pydantic schemas for authentication and user administration."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from src.auth.permissions import UserRole


MIN_PASSWORD_LENGTH = 6


def _strip_required(value: str) -> str:
    value = value.strip()
    if not value:
        msg = "Please add a name"
        raise ValueError(msg)
    return value


# ==============================================================================
# Request Schemas
# ==============================================================================


class RegisterRequest(BaseModel):
    """User registration request."""

    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=MIN_PASSWORD_LENGTH)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        return _strip_required(v)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class AdminCreateUserRequest(RegisterRequest):
    """User creation by an admin, who may pick the role."""

    role: UserRole = UserRole.USER


class AdminUpdateUserRequest(BaseModel):
    """Admin update of a user's name, email and role."""

    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    role: UserRole | None = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        return _strip_required(v)


# ==============================================================================
# Response Schemas
# ==============================================================================


class UserResponse(BaseModel):
    """Public user representation."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    email: str
    role: UserRole
    is_banned: bool = False
    created_at: datetime | None = None


class TokenUser(BaseModel):
    """Authenticated principal decoded from the access token."""

    id: str
    email: str
    name: str = ""
    role: UserRole = UserRole.USER

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int = Field(..., description="Token lifetime in seconds")
    user: UserResponse
