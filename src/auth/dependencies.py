"""FastAPI dependencies for authentication.

Provides dependency injection for:
- Auth service from app state
- Current user extraction from JWT
- Admin-only access
"""

from typing import Annotated

from fastapi import Depends, Request
from jose import JWTError

from src.auth.permissions import UserRole
from src.auth.schemas import TokenUser
from src.auth.security import decode_access_token
from src.auth.service import AuthService
from src.core.exceptions import ForbiddenError, UnauthorizedError
from src.core.middleware import set_user_context


NOT_AUTHORIZED = "Not authorized to access this route"


def get_auth_service(request: Request) -> AuthService:
    """Get auth service from app state."""
    service = getattr(request.app.state, "auth_service", None)
    if service is None:
        msg = "AuthService not initialized"
        raise RuntimeError(msg)
    return service


def get_token_from_header(request: Request) -> str | None:
    """Extract Bearer token from the Authorization header."""
    auth_header = request.headers.get("Authorization")
    if not auth_header:
        return None

    expected_parts = 2
    parts = auth_header.split()
    if len(parts) != expected_parts or parts[0].lower() != "bearer":
        return None

    return parts[1]


def _user_from_payload(payload: dict) -> TokenUser:
    user = TokenUser(
        id=payload["sub"],
        email=payload.get("email", ""),
        name=payload.get("name", ""),
        role=payload.get("role", UserRole.USER.value),
    )
    set_user_context(user.id)
    return user


async def get_current_user(
    token: Annotated[str | None, Depends(get_token_from_header)],
) -> TokenUser:
    """Get the authenticated user from the access token.

    Raises:
        UnauthorizedError: If the token is missing, invalid or expired.
    """
    if not token:
        raise UnauthorizedError(NOT_AUTHORIZED)

    try:
        payload = decode_access_token(token)
    except JWTError as e:
        raise UnauthorizedError(NOT_AUTHORIZED) from e

    return _user_from_payload(payload)


async def get_current_user_optional(
    token: Annotated[str | None, Depends(get_token_from_header)],
) -> TokenUser | None:
    """Get the current user if authenticated, None for anonymous callers."""
    if not token:
        return None

    try:
        payload = decode_access_token(token)
    except JWTError:
        return None

    return _user_from_payload(payload)


async def require_admin(
    user: Annotated[TokenUser, Depends(get_current_user)],
) -> TokenUser:
    if not user.is_admin:
        raise ForbiddenError(
            f"User role {user.role.value} is not authorized to access this route"
        )
    return user


# ==============================================================================
# Type Aliases for Cleaner Code
# ==============================================================================

AuthServiceDep = Annotated[AuthService, Depends(get_auth_service)]
CurrentUser = Annotated[TokenUser, Depends(get_current_user)]
OptionalUser = Annotated[TokenUser | None, Depends(get_current_user_optional)]
AdminUser = Annotated[TokenUser, Depends(require_admin)]
