"""Post API endpoints.

Provides routes for:
- Paginated listing of posts by status
- Lookup by id, slug or author
- Create, update and delete (author or admin)
"""

from typing import Annotated

from fastapi import APIRouter, Query, status

from src.auth.dependencies import CurrentUser
from src.config.settings import get_settings
from src.core.schemas import (
    DataResponse,
    EmptyData,
    ListResponse,
    PaginatedResponse,
    build_pagination,
)

from .dependencies import PostServiceDep
from .models import PostStatus
from .schemas import CreatePostRequest, PostResponse, UpdatePostRequest


router = APIRouter(prefix="/v1/posts", tags=["posts"])

_settings = get_settings()


@router.get(
    "",
    response_model=PaginatedResponse[PostResponse],
    summary="List posts",
)
async def list_posts(
    post_service: PostServiceDep,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[
        int, Query(ge=1, le=_settings.posts_page_size_max)
    ] = _settings.posts_page_size_default,
    post_status: Annotated[PostStatus, Query(alias="status")] = PostStatus.PUBLISHED,
) -> PaginatedResponse[PostResponse]:
    """List posts newest first with offset pagination."""
    posts, total = await post_service.list_posts(post_status, page, limit)
    return PaginatedResponse(
        count=len(posts),
        total=total,
        pagination=build_pagination(page, limit, total),
        data=[PostResponse.from_post(p) for p in posts],
    )


@router.get(
    "/slug/{slug}",
    response_model=DataResponse[PostResponse],
    summary="Get post by slug",
    responses={404: {"description": "Post not found"}},
)
async def get_post_by_slug(
    slug: str,
    post_service: PostServiceDep,
) -> DataResponse[PostResponse]:
    post = await post_service.get_by_id_or_slug(slug)
    return DataResponse(data=PostResponse.from_post(post))


@router.get(
    "/user/{user_id}",
    response_model=ListResponse[PostResponse],
    summary="List posts of an author",
)
async def list_user_posts(
    user_id: str,
    post_service: PostServiceDep,
) -> ListResponse[PostResponse]:
    posts = await post_service.list_by_author(user_id)
    return ListResponse(
        count=len(posts),
        data=[PostResponse.from_post(p) for p in posts],
    )


@router.get(
    "/{post_id}",
    response_model=DataResponse[PostResponse],
    summary="Get post by id or slug",
    responses={404: {"description": "Post not found"}},
)
async def get_post(
    post_id: str,
    post_service: PostServiceDep,
) -> DataResponse[PostResponse]:
    """Fetch a post and count a view.

    The identifier may be a post id or a slug.
    """
    post = await post_service.get_by_id_or_slug(post_id)
    return DataResponse(data=PostResponse.from_post(post))


@router.post(
    "",
    response_model=DataResponse[PostResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Create post",
)
async def create_post(
    data: CreatePostRequest,
    post_service: PostServiceDep,
    user: CurrentUser,
) -> DataResponse[PostResponse]:
    author_name = user.name or user.email.split("@")[0]
    post = await post_service.create(user.id, author_name, data)
    return DataResponse(data=PostResponse.from_post(post))


@router.put(
    "/{post_id}",
    response_model=DataResponse[PostResponse],
    summary="Update post",
    responses={
        403: {"description": "Not the author or an admin"},
        404: {"description": "Post not found"},
    },
)
async def update_post(
    post_id: str,
    data: UpdatePostRequest,
    post_service: PostServiceDep,
    user: CurrentUser,
) -> DataResponse[PostResponse]:
    post = await post_service.update(
        post_id,
        requester_id=user.id,
        requester_role=user.role.value,
        changes=data.model_dump(exclude_unset=True),
    )
    return DataResponse(data=PostResponse.from_post(post))


@router.delete(
    "/{post_id}",
    response_model=DataResponse[EmptyData],
    summary="Delete post",
    responses={
        403: {"description": "Not the author or an admin"},
        404: {"description": "Post not found"},
    },
)
async def delete_post(
    post_id: str,
    post_service: PostServiceDep,
    user: CurrentUser,
) -> DataResponse[EmptyData]:
    """Delete a post together with its comments."""
    await post_service.delete(
        post_id, requester_id=user.id, requester_role=user.role.value
    )
    return DataResponse(data=EmptyData())
