"""Authentication API endpoints.

Provides routes for:
- User registration and login
- Current user profile
"""

from fastapi import APIRouter, status

from src.auth.dependencies import AuthServiceDep, CurrentUser
from src.auth.schemas import LoginRequest, RegisterRequest, TokenResponse, UserResponse
from src.core.schemas import DataResponse


router = APIRouter(prefix="/v1/auth", tags=["auth"])


@router.post(
    "/register",
    response_model=DataResponse[TokenResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Register new user",
    responses={400: {"description": "Duplicate email or validation error"}},
)
async def register(
    data: RegisterRequest,
    auth_service: AuthServiceDep,
) -> DataResponse[TokenResponse]:
    """Register a new account with the ``user`` role and log it in."""
    user = await auth_service.register_user(data)
    return DataResponse(data=auth_service.create_token(user))


@router.post(
    "/login",
    response_model=DataResponse[TokenResponse],
    summary="User login",
    responses={
        401: {"description": "Invalid credentials"},
        403: {"description": "Account banned"},
    },
)
async def login(
    data: LoginRequest,
    auth_service: AuthServiceDep,
) -> DataResponse[TokenResponse]:
    user = await auth_service.authenticate_user(data.email, data.password)
    return DataResponse(data=auth_service.create_token(user))


@router.get(
    "/me",
    response_model=DataResponse[UserResponse],
    summary="Current user",
)
async def get_me(
    user: CurrentUser,
    auth_service: AuthServiceDep,
) -> DataResponse[UserResponse]:
    """Return the stored profile of the authenticated user."""
    stored = await auth_service.require_user(user.id)
    return DataResponse(data=auth_service.to_response(stored))
