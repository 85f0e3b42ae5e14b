"""Reaction API endpoints.

Provides routes for:
- Setting, changing or toggling off the caller's reaction to a post
- Listing a post's reactions with counts
- Removing the caller's reaction
"""

from fastapi import APIRouter

from src.auth.dependencies import CurrentUser, OptionalUser
from src.core.schemas import DataResponse

from .dependencies import ReactionServiceDep
from .schemas import (
    PostReactions,
    PostReactionsResponse,
    ReactionChange,
    ReactionResponse,
    SetReactionRequest,
)


router = APIRouter(prefix="/v1/posts/{post_id}/reactions", tags=["reactions"])


@router.put(
    "",
    response_model=DataResponse[ReactionChange],
    summary="React to a post",
    responses={404: {"description": "Post not found"}},
)
async def set_reaction(
    post_id: str,
    data: SetReactionRequest,
    reaction_service: ReactionServiceDep,
    user: CurrentUser,
) -> DataResponse[ReactionChange]:
    """Add or change the caller's reaction.

    Sending the type the caller already has removes the reaction.
    """
    reaction, counts = await reaction_service.set_reaction(
        post_id, user.id, data.type, user_name=user.name
    )
    return DataResponse(
        data=ReactionChange(
            reaction=ReactionResponse.from_reaction(reaction) if reaction else None,
            reaction_counts=counts,
        )
    )


@router.get(
    "",
    response_model=PostReactionsResponse,
    summary="List reactions of a post",
    responses={404: {"description": "Post not found"}},
)
async def list_reactions(
    post_id: str,
    reaction_service: ReactionServiceDep,
    user: OptionalUser,
) -> PostReactionsResponse:
    reactions = await reaction_service.list_reactions(post_id)
    counts = await reaction_service.get_counts(post_id)
    user_reaction = (
        await reaction_service.get_user_reaction(post_id, user.id) if user else None
    )
    return PostReactionsResponse(
        count=len(reactions),
        data=PostReactions(
            reactions=[ReactionResponse.from_reaction(r) for r in reactions],
            reaction_counts=counts,
            user_reaction=user_reaction,
        ),
    )


@router.delete(
    "",
    response_model=DataResponse[ReactionChange],
    summary="Remove reaction",
    responses={404: {"description": "Post or reaction not found"}},
)
async def remove_reaction(
    post_id: str,
    reaction_service: ReactionServiceDep,
    user: CurrentUser,
) -> DataResponse[ReactionChange]:
    counts = await reaction_service.remove_reaction(post_id, user.id)
    return DataResponse(data=ReactionChange(reaction=None, reaction_counts=counts))
