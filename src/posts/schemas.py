"""Pydantic schemas for posts."""

from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from src.posts.models import Post, PostStatus


TITLE_MAX_LENGTH = 100
EXCERPT_MAX_LENGTH = 500


def _clean_tags(tags: list[str] | None) -> list[str] | None:
    if tags is None:
        return None
    return [tag.strip() for tag in tags if tag and tag.strip()]


# ==============================================================================
# Request Schemas
# ==============================================================================


class CreatePostRequest(BaseModel):
    """Post creation request."""

    title: str = Field(..., max_length=TITLE_MAX_LENGTH)
    content: str = Field(..., min_length=1)
    excerpt: str | None = Field(None, max_length=EXCERPT_MAX_LENGTH)
    status: PostStatus = PostStatus.PUBLISHED
    featured_image: str = ""
    tags: list[str] = Field(default_factory=list)

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        v = v.strip()
        if not v:
            msg = "Please add a title"
            raise ValueError(msg)
        return v

    @field_validator("content")
    @classmethod
    def validate_content(cls, v: str) -> str:
        if not v.strip():
            msg = "Please add some content"
            raise ValueError(msg)
        return v

    @field_validator("tags")
    @classmethod
    def validate_tags(cls, v: list[str]) -> list[str]:
        return _clean_tags(v) or []


class UpdatePostRequest(BaseModel):
    """Partial post update. Only the fields that are sent are changed."""

    title: str | None = Field(None, max_length=TITLE_MAX_LENGTH)
    content: str | None = Field(None, min_length=1)
    excerpt: str | None = Field(None, max_length=EXCERPT_MAX_LENGTH)
    status: PostStatus | None = None
    featured_image: str | None = None
    tags: list[str] | None = None

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str | None) -> str | None:
        if v is None:
            return None
        v = v.strip()
        if not v:
            msg = "Please add a title"
            raise ValueError(msg)
        return v

    @field_validator("tags")
    @classmethod
    def validate_tags(cls, v: list[str] | None) -> list[str] | None:
        return _clean_tags(v)


# ==============================================================================
# Response Schemas
# ==============================================================================


class PostAuthor(BaseModel):
    id: str
    name: str


class PostResponse(BaseModel):
    """Full post representation."""

    id: str
    title: str
    slug: str
    content: str
    excerpt: str | None = None
    author: PostAuthor
    status: PostStatus
    featured_image: str = ""
    tags: list[str] = Field(default_factory=list)
    views: int = 0
    reaction_counts: dict[str, int] = Field(default_factory=dict)
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_post(cls, post: Post) -> "PostResponse":
        return cls(
            id=post.post_id,
            title=post.title,
            slug=post.slug,
            content=post.content,
            excerpt=post.excerpt,
            author=PostAuthor(id=post.author_id, name=post.author_name),
            status=post.status,
            featured_image=post.featured_image,
            tags=post.tags,
            views=post.views,
            reaction_counts=post.reaction_counts,
            created_at=post.created_at,
            updated_at=post.updated_at,
        )


class PostSummary(BaseModel):
    """Short post representation used in user details."""

    id: str
    title: str
    excerpt: str | None = None
    created_at: datetime

    @classmethod
    def from_post(cls, post: Post) -> "PostSummary":
        return cls(
            id=post.post_id,
            title=post.title,
            excerpt=post.excerpt,
            created_at=post.created_at,
        )
