"""Database models for threaded post comments.

Cassandra table definitions for:
- comments_by_id: lookup by comment id
- comments_by_post: all comments of a post, newest first
- comments_by_parent: replies of a comment, oldest first
- comments_by_author: comment ids per author (user cascade)

Architecture: Adjacency List pattern
- parent_id references the parent comment (NULL for top-level comments)
- Author name is denormalized into every row
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from src.auth.models import ensure_utc_aware
from src.core.ids import new_object_id


CONTENT_MAX_LENGTH = 1000


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

COMMENTS_BY_ID_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.comments_by_id (
    comment_id TEXT PRIMARY KEY,
    post_id TEXT,
    parent_id TEXT,
    author_id TEXT,
    author_name TEXT,
    content TEXT,
    is_edited BOOLEAN,
    edited_at TIMESTAMP,
    created_at TIMESTAMP,
    updated_at TIMESTAMP
)
"""

# Partition per post; parent_id is carried so top-level filtering
# happens in the service
COMMENTS_BY_POST_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.comments_by_post (
    post_id TEXT,
    created_at TIMESTAMP,
    comment_id TEXT,
    parent_id TEXT,
    author_id TEXT,
    author_name TEXT,
    content TEXT,
    is_edited BOOLEAN,
    edited_at TIMESTAMP,
    updated_at TIMESTAMP,
    PRIMARY KEY ((post_id), created_at, comment_id)
) WITH CLUSTERING ORDER BY (created_at DESC, comment_id ASC)
"""

COMMENTS_BY_PARENT_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.comments_by_parent (
    parent_id TEXT,
    created_at TIMESTAMP,
    comment_id TEXT,
    post_id TEXT,
    author_id TEXT,
    author_name TEXT,
    content TEXT,
    is_edited BOOLEAN,
    edited_at TIMESTAMP,
    updated_at TIMESTAMP,
    PRIMARY KEY ((parent_id), created_at, comment_id)
) WITH CLUSTERING ORDER BY (created_at ASC, comment_id ASC)
"""

COMMENTS_BY_AUTHOR_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.comments_by_author (
    author_id TEXT,
    comment_id TEXT,
    PRIMARY KEY ((author_id), comment_id)
)
"""

COMMENTS_TABLES_CQL = [
    COMMENTS_BY_ID_TABLE_CQL,
    COMMENTS_BY_POST_TABLE_CQL,
    COMMENTS_BY_PARENT_TABLE_CQL,
    COMMENTS_BY_AUTHOR_TABLE_CQL,
]


# ==============================================================================
# Entity Classes
# ==============================================================================


@dataclass
class Comment:
    """Comment entity. ``parent_id`` is None for top-level comments."""

    comment_id: str
    post_id: str
    author_id: str
    author_name: str
    content: str
    parent_id: str | None = None
    is_edited: bool = False
    edited_at: datetime | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def is_top_level(self) -> bool:
        return self.parent_id is None

    @classmethod
    def from_row(cls, row: Any) -> "Comment":
        """Create Comment from any of the comment tables' rows."""
        created_at = ensure_utc_aware(row.created_at)
        return cls(
            comment_id=row.comment_id,
            post_id=row.post_id,
            author_id=row.author_id,
            author_name=row.author_name or "",
            content=row.content,
            parent_id=row.parent_id or None,
            is_edited=row.is_edited or False,
            edited_at=ensure_utc_aware(row.edited_at),
            created_at=created_at,
            updated_at=ensure_utc_aware(row.updated_at) or created_at,
        )


# ==============================================================================
# Factory Functions
# ==============================================================================


def create_comment(
    post_id: str,
    author_id: str,
    author_name: str,
    content: str,
    parent_id: str | None = None,
) -> Comment:
    """Create a new comment with a fresh id and timestamps."""
    now = datetime.now(UTC)
    return Comment(
        comment_id=new_object_id(),
        post_id=post_id,
        author_id=author_id,
        author_name=author_name,
        content=content,
        parent_id=parent_id,
        created_at=now,
        updated_at=now,
    )
