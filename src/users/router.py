"""User administration API endpoints (admin only)."""

from typing import Annotated

from fastapi import APIRouter, Query, status

from src.auth.dependencies import AdminUser
from src.auth.schemas import AdminCreateUserRequest, AdminUpdateUserRequest, UserResponse
from src.core.schemas import DataResponse, EmptyData, PaginatedResponse, build_pagination
from src.posts.schemas import PostSummary

from .dependencies import UserAdminServiceDep
from .schemas import UserDetailResponse, UserStatsResponse


router = APIRouter(prefix="/v1/users", tags=["users"])


@router.get(
    "",
    response_model=PaginatedResponse[UserResponse],
    summary="List users",
)
async def list_users(
    service: UserAdminServiceDep,
    _admin: AdminUser,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=100)] = 25,
) -> PaginatedResponse[UserResponse]:
    users, total = await service.list_users(page, limit)
    return PaginatedResponse(
        count=len(users),
        total=total,
        pagination=build_pagination(page, limit, total),
        data=[UserResponse.model_validate(u) for u in users],
    )


@router.post(
    "",
    response_model=DataResponse[UserResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Create user",
    responses={400: {"description": "Duplicate email or validation error"}},
)
async def create_user(
    data: AdminCreateUserRequest,
    service: UserAdminServiceDep,
    _admin: AdminUser,
) -> DataResponse[UserResponse]:
    user = await service.create_user(data)
    return DataResponse(data=UserResponse.model_validate(user))


# Declared before /{user_id} so "stats" is not taken as an id
@router.get(
    "/stats",
    response_model=DataResponse[UserStatsResponse],
    summary="User statistics",
)
async def user_stats(
    service: UserAdminServiceDep,
    _admin: AdminUser,
) -> DataResponse[UserStatsResponse]:
    stats = await service.stats()
    return DataResponse(data=UserStatsResponse.model_validate(stats, from_attributes=True))


@router.get(
    "/{user_id}",
    response_model=DataResponse[UserDetailResponse],
    summary="Get user",
    responses={404: {"description": "User not found"}},
)
async def get_user(
    user_id: str,
    service: UserAdminServiceDep,
    _admin: AdminUser,
) -> DataResponse[UserDetailResponse]:
    """A user with their five most recent posts."""
    user, posts = await service.get_user(user_id)
    detail = UserDetailResponse(
        **UserResponse.model_validate(user).model_dump(),
        posts=[PostSummary.from_post(p) for p in posts],
    )
    return DataResponse(data=detail)


@router.put(
    "/{user_id}",
    response_model=DataResponse[UserResponse],
    summary="Update user",
    responses={404: {"description": "User not found"}},
)
async def update_user(
    user_id: str,
    data: AdminUpdateUserRequest,
    service: UserAdminServiceDep,
    _admin: AdminUser,
) -> DataResponse[UserResponse]:
    user = await service.update_user(user_id, data)
    return DataResponse(data=UserResponse.model_validate(user))


@router.delete(
    "/{user_id}",
    response_model=DataResponse[EmptyData],
    summary="Delete user",
    responses={404: {"description": "User not found"}},
)
async def delete_user(
    user_id: str,
    service: UserAdminServiceDep,
    _admin: AdminUser,
) -> DataResponse[EmptyData]:
    """Delete a user together with their posts, comments and reactions."""
    await service.delete_user(user_id)
    return DataResponse(data=EmptyData())


@router.put(
    "/{user_id}/ban",
    response_model=DataResponse[UserResponse],
    summary="Ban or unban user",
    responses={
        403: {"description": "Target is an admin"},
        404: {"description": "User not found"},
    },
)
async def toggle_ban(
    user_id: str,
    service: UserAdminServiceDep,
    _admin: AdminUser,
) -> DataResponse[UserResponse]:
    user = await service.toggle_ban(user_id)
    return DataResponse(data=UserResponse.model_validate(user))
