"""Database models for blog posts.

Cassandra table definitions for:
- posts: main table keyed by post id
- posts_by_slug: unique slug claim, written with IF NOT EXISTS
- posts_by_status: newest-first listing per status
- posts_by_author: newest-first listing per author
- post_views: view counter
"""

import re
import secrets
import string
import unicodedata
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from src.auth.models import ensure_utc_aware
from src.core.ids import new_object_id


class PostStatus(str, Enum):
    DRAFT = "draft"
    PUBLISHED = "published"


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

POST_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.posts (
    post_id TEXT PRIMARY KEY,
    title TEXT,
    slug TEXT,
    content TEXT,
    excerpt TEXT,
    author_id TEXT,
    author_name TEXT,
    status TEXT,
    featured_image TEXT,
    tags LIST<TEXT>,
    reaction_counts MAP<TEXT, INT>,
    created_at TIMESTAMP,
    updated_at TIMESTAMP
)
"""

# Slug lookup doubling as the uniqueness constraint
POSTS_BY_SLUG_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.posts_by_slug (
    slug TEXT PRIMARY KEY,
    post_id TEXT
)
"""

POSTS_BY_STATUS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.posts_by_status (
    status TEXT,
    created_at TIMESTAMP,
    post_id TEXT,
    PRIMARY KEY ((status), created_at, post_id)
) WITH CLUSTERING ORDER BY (created_at DESC, post_id ASC)
"""

POSTS_BY_AUTHOR_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.posts_by_author (
    author_id TEXT,
    created_at TIMESTAMP,
    post_id TEXT,
    PRIMARY KEY ((author_id), created_at, post_id)
) WITH CLUSTERING ORDER BY (created_at DESC, post_id ASC)
"""

POST_VIEWS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.post_views (
    post_id TEXT PRIMARY KEY,
    views COUNTER
)
"""

POSTS_TABLES_CQL = [
    POST_TABLE_CQL,
    POSTS_BY_SLUG_TABLE_CQL,
    POSTS_BY_STATUS_TABLE_CQL,
    POSTS_BY_AUTHOR_TABLE_CQL,
    POST_VIEWS_TABLE_CQL,
]


# ==============================================================================
# Slugs
# ==============================================================================

SLUG_MAX_LENGTH = 100
SLUG_SUFFIX_LENGTH = 5
_SLUG_ALPHABET = string.ascii_lowercase + string.digits


def generate_slug(title: str) -> str:
    """Generate URL-friendly slug from title.

    Lowercases, strips everything but word characters, whitespace and
    hyphens, turns whitespace runs into ``-``, collapses repeated hyphens
    and truncates to 100 characters.

    Example:
        >>> generate_slug("Hello, World!!")
        'hello-world'
    """
    slug = unicodedata.normalize("NFKD", title)
    slug = slug.encode("ascii", "ignore").decode("ascii")
    slug = slug.lower().strip()
    slug = re.sub(r"[^\w\s-]", "", slug)
    slug = re.sub(r"\s+", "-", slug)
    slug = re.sub(r"-{2,}", "-", slug)
    return slug[:SLUG_MAX_LENGTH]


def random_slug_suffix() -> str:
    return "".join(secrets.choice(_SLUG_ALPHABET) for _ in range(SLUG_SUFFIX_LENGTH))


def unique_slug(title: str) -> str:
    """Slug candidate: ``generate_slug(title)`` plus a random 5-char suffix."""
    return f"{generate_slug(title)}-{random_slug_suffix()}"


# ==============================================================================
# Entity Classes
# ==============================================================================


@dataclass
class Post:
    """Blog post entity."""

    post_id: str
    title: str
    slug: str
    content: str
    author_id: str
    author_name: str
    excerpt: str | None = None
    status: PostStatus = PostStatus.PUBLISHED
    featured_image: str = ""
    tags: list[str] = field(default_factory=list)
    reaction_counts: dict[str, int] = field(default_factory=dict)
    views: int = 0
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @classmethod
    def from_row(cls, row: Any, views: int = 0) -> "Post":
        """Create Post from Cassandra row."""
        created_at = ensure_utc_aware(row.created_at)
        return cls(
            post_id=row.post_id,
            title=row.title,
            slug=row.slug,
            content=row.content,
            author_id=row.author_id,
            author_name=row.author_name or "",
            excerpt=row.excerpt,
            status=PostStatus(row.status or PostStatus.PUBLISHED.value),
            featured_image=row.featured_image or "",
            tags=list(row.tags or []),
            reaction_counts=dict(row.reaction_counts or {}),
            views=views,
            created_at=created_at,
            updated_at=ensure_utc_aware(row.updated_at) or created_at,
        )


def create_post(
    title: str,
    content: str,
    author_id: str,
    author_name: str,
    slug: str,
    excerpt: str | None = None,
    status: PostStatus = PostStatus.PUBLISHED,
    featured_image: str = "",
    tags: list[str] | None = None,
) -> Post:
    """Create a new post with a fresh id and timestamps."""
    now = datetime.now(UTC)
    return Post(
        post_id=new_object_id(),
        title=title,
        slug=slug,
        content=content,
        author_id=author_id,
        author_name=author_name,
        excerpt=excerpt,
        status=status,
        featured_image=featured_image,
        tags=tags or [],
        created_at=now,
        updated_at=now,
    )
