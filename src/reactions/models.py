"""Database models for post reactions.

Cassandra table definitions for:
- post_reactions: one row per (post, user); the primary key is the
  uniqueness constraint
- reactions_by_user: posts a user reacted to (user cascade)
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from src.auth.models import ensure_utc_aware
from src.core.ids import new_object_id


class ReactionType(str, Enum):
    """Available reaction types for posts."""

    LIKE = "like"
    LOVE = "love"
    LAUGH = "laugh"
    WOW = "wow"
    SAD = "sad"
    ANGRY = "angry"


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

POST_REACTIONS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.post_reactions (
    post_id TEXT,
    user_id TEXT,
    reaction_id TEXT,
    reaction_type TEXT,
    user_name TEXT,
    created_at TIMESTAMP,
    updated_at TIMESTAMP,
    PRIMARY KEY ((post_id), user_id)
)
"""

REACTIONS_BY_USER_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.reactions_by_user (
    user_id TEXT,
    post_id TEXT,
    PRIMARY KEY ((user_id), post_id)
)
"""

REACTIONS_TABLES_CQL = [
    POST_REACTIONS_TABLE_CQL,
    REACTIONS_BY_USER_TABLE_CQL,
]


# ==============================================================================
# Entity Classes
# ==============================================================================


@dataclass
class Reaction:
    """A user's reaction to a post."""

    reaction_id: str
    post_id: str
    user_id: str
    reaction_type: ReactionType
    user_name: str = ""
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @classmethod
    def from_row(cls, row: Any) -> "Reaction":
        created_at = ensure_utc_aware(row.created_at)
        return cls(
            reaction_id=row.reaction_id,
            post_id=row.post_id,
            user_id=row.user_id,
            reaction_type=ReactionType(row.reaction_type),
            user_name=row.user_name or "",
            created_at=created_at,
            updated_at=ensure_utc_aware(row.updated_at) or created_at,
        )


def create_reaction(
    post_id: str,
    user_id: str,
    reaction_type: ReactionType,
    user_name: str = "",
) -> Reaction:
    """Create a new reaction with a fresh id and timestamps."""
    now = datetime.now(UTC)
    return Reaction(
        reaction_id=new_object_id(),
        post_id=post_id,
        user_id=user_id,
        reaction_type=reaction_type,
        user_name=user_name,
        created_at=now,
        updated_at=now,
    )


def count_by_type(reactions: list[Reaction]) -> dict[str, int]:
    """Group reactions by type. Types nobody picked are absent.

    Example:
        >>> count_by_type([])
        {}
    """
    counts: dict[str, int] = {}
    for reaction in reactions:
        key = reaction.reaction_type.value
        counts[key] = counts.get(key, 0) + 1
    return counts
