"""Comment API endpoints.

Provides routes for:
- Top-level comments of a post
- Replies of a comment
- Comment edit and delete (author or admin)
"""

from fastapi import APIRouter, status

from src.auth.dependencies import CurrentUser
from src.core.schemas import DataResponse, EmptyData, ListResponse

from .dependencies import CommentServiceDep
from .schemas import CommentContentRequest, CommentResponse


router = APIRouter(prefix="/v1", tags=["comments"])


def _author_name(user: CurrentUser) -> str:
    return user.name or user.email.split("@")[0]


@router.get(
    "/posts/{post_id}/comments",
    response_model=ListResponse[CommentResponse],
    summary="List comments of a post",
    responses={404: {"description": "Post not found"}},
)
async def list_comments(
    post_id: str,
    comment_service: CommentServiceDep,
) -> ListResponse[CommentResponse]:
    """Top-level comments of a post, newest first."""
    comments = await comment_service.list_top_level(post_id)
    return ListResponse(
        count=len(comments),
        data=[CommentResponse.from_comment(c) for c in comments],
    )


@router.post(
    "/posts/{post_id}/comments",
    response_model=DataResponse[CommentResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Comment on a post",
    responses={404: {"description": "Post not found"}},
)
async def add_comment(
    post_id: str,
    data: CommentContentRequest,
    comment_service: CommentServiceDep,
    user: CurrentUser,
) -> DataResponse[CommentResponse]:
    comment = await comment_service.add_comment(
        post_id=post_id,
        author_id=user.id,
        author_name=_author_name(user),
        content=data.content,
    )
    return DataResponse(data=CommentResponse.from_comment(comment))


@router.get(
    "/comments/{comment_id}/replies",
    response_model=ListResponse[CommentResponse],
    summary="List replies of a comment",
    responses={404: {"description": "Comment not found"}},
)
async def list_replies(
    comment_id: str,
    comment_service: CommentServiceDep,
) -> ListResponse[CommentResponse]:
    """Direct replies of a comment, oldest first."""
    replies = await comment_service.list_replies(comment_id)
    return ListResponse(
        count=len(replies),
        data=[CommentResponse.from_comment(r) for r in replies],
    )


@router.post(
    "/comments/{comment_id}/replies",
    response_model=DataResponse[CommentResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Reply to a comment",
    responses={404: {"description": "Parent comment not found"}},
)
async def add_reply(
    comment_id: str,
    data: CommentContentRequest,
    comment_service: CommentServiceDep,
    user: CurrentUser,
) -> DataResponse[CommentResponse]:
    reply = await comment_service.add_reply(
        parent_comment_id=comment_id,
        author_id=user.id,
        author_name=_author_name(user),
        content=data.content,
    )
    return DataResponse(data=CommentResponse.from_comment(reply))


@router.put(
    "/comments/{comment_id}",
    response_model=DataResponse[CommentResponse],
    summary="Edit comment",
    responses={
        403: {"description": "Not the author or an admin"},
        404: {"description": "Comment not found"},
    },
)
async def update_comment(
    comment_id: str,
    data: CommentContentRequest,
    comment_service: CommentServiceDep,
    user: CurrentUser,
) -> DataResponse[CommentResponse]:
    comment = await comment_service.update(
        comment_id,
        requester_id=user.id,
        requester_role=user.role.value,
        content=data.content,
    )
    return DataResponse(data=CommentResponse.from_comment(comment))


@router.delete(
    "/comments/{comment_id}",
    response_model=DataResponse[EmptyData],
    summary="Delete comment",
    responses={
        403: {"description": "Not the author or an admin"},
        404: {"description": "Comment not found"},
    },
)
async def delete_comment(
    comment_id: str,
    comment_service: CommentServiceDep,
    user: CurrentUser,
) -> DataResponse[EmptyData]:
    """Delete a comment. Deleting a top-level comment also deletes its replies."""
    await comment_service.delete(
        comment_id, requester_id=user.id, requester_role=user.role.value
    )
    return DataResponse(data=EmptyData())
