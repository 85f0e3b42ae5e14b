"""Pydantic schemas for reactions."""

from datetime import datetime

from pydantic import BaseModel, Field

from .models import Reaction, ReactionType


class SetReactionRequest(BaseModel):
    type: ReactionType


class ReactionUser(BaseModel):
    id: str
    name: str = ""


class ReactionResponse(BaseModel):
    id: str
    type: ReactionType
    post: str
    user: ReactionUser
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_reaction(cls, reaction: Reaction) -> "ReactionResponse":
        return cls(
            id=reaction.reaction_id,
            type=reaction.reaction_type,
            post=reaction.post_id,
            user=ReactionUser(id=reaction.user_id, name=reaction.user_name),
            created_at=reaction.created_at,
            updated_at=reaction.updated_at,
        )


class ReactionChange(BaseModel):
    """Result of a mutation: the current reaction (None when removed) and counts."""

    reaction: ReactionResponse | None = None
    reaction_counts: dict[str, int] = Field(default_factory=dict)


class PostReactions(BaseModel):
    reactions: list[ReactionResponse]
    reaction_counts: dict[str, int] = Field(default_factory=dict)
    user_reaction: ReactionType | None = None


class PostReactionsResponse(BaseModel):
    """``count`` is the number of reactions on the post."""

    success: bool = True
    count: int
    data: PostReactions
