"""Pydantic schemas for comments."""

from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from .models import CONTENT_MAX_LENGTH, Comment


# ==============================================================================
# Request Schemas
# ==============================================================================


class CommentContentRequest(BaseModel):
    """Body of comment and reply creation and of comment edits."""

    content: str = Field(..., min_length=1, max_length=CONTENT_MAX_LENGTH)

    @field_validator("content", mode="before")
    @classmethod
    def validate_content(cls, v: str) -> str:
        """Strip whitespace before the length checks."""
        if isinstance(v, str):
            v = v.strip()
            if not v:
                msg = "Please add some content"
                raise ValueError(msg)
        return v


# ==============================================================================
# Response Schemas
# ==============================================================================


class CommentAuthor(BaseModel):
    id: str
    name: str


class CommentResponse(BaseModel):
    id: str
    content: str
    post: str
    author: CommentAuthor
    parent_comment: str | None = None
    is_edited: bool = False
    edited_at: datetime | None = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_comment(cls, comment: Comment) -> "CommentResponse":
        return cls(
            id=comment.comment_id,
            content=comment.content,
            post=comment.post_id,
            author=CommentAuthor(id=comment.author_id, name=comment.author_name),
            parent_comment=comment.parent_id,
            is_edited=comment.is_edited,
            edited_at=comment.edited_at,
            created_at=comment.created_at,
            updated_at=comment.updated_at,
        )
