"""FastAPI dependencies for user administration."""

from typing import Annotated

from fastapi import Depends, Request

from .service import UserAdminService


def get_user_admin_service(request: Request) -> UserAdminService:
    """Get user administration service from app state."""
    service = getattr(request.app.state, "user_admin_service", None)
    if service is None:
        msg = "UserAdminService not initialized"
        raise RuntimeError(msg)
    return service


UserAdminServiceDep = Annotated[UserAdminService, Depends(get_user_admin_service)]
