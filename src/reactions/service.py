"""Reaction service layer.

Business logic for:
- Setting, changing and toggling off a user's reaction to a post
- Reaction counts per type, cached in Redis
- Denormalized count snapshot on the post row
"""

from datetime import UTC, datetime
from typing import TYPE_CHECKING

import structlog
from redis.exceptions import RedisError

from src.core.database.lwt import was_applied
from src.core.exceptions import NotFoundError
from src.core.redis import reaction_counts_key
from src.posts.service import PostNotFoundError

from .models import Reaction, ReactionType, count_by_type, create_reaction


if TYPE_CHECKING:
    from cassandra.cluster import Session
    from redis.asyncio import Redis


logger = structlog.get_logger(__name__)

DEFAULT_CACHE_TTL_SECONDS = 3600

# Inserts tried when a lost race leaves no row to change
CREATE_ATTEMPTS = 2


class ReactionNotFoundError(NotFoundError):
    def __init__(self):
        super().__init__("No reaction found for this user and post", "reaction_not_found")


class ReactionService:
    """Service for post reactions.

    Each (post, user) pair is either without reaction or reacted with one
    type. Submitting the current type again removes the reaction.
    """

    def __init__(
        self,
        session: "Session",
        keyspace: str,
        redis: "Redis | None" = None,
        cache_ttl: int = DEFAULT_CACHE_TTL_SECONDS,
    ):
        self.session = session
        self.keyspace = keyspace
        self.redis = redis
        self.cache_ttl = cache_ttl
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient queries."""
        ks = self.keyspace

        self._post_exists = self.session.prepare(
            f"SELECT post_id FROM {ks}.posts WHERE post_id = ?"
        )
        self._update_post_snapshot = self.session.prepare(f"""
            UPDATE {ks}.posts SET reaction_counts = ?
            WHERE post_id = ?
            IF EXISTS
        """)

        self._insert_reaction = self.session.prepare(f"""
            INSERT INTO {ks}.post_reactions
            (post_id, user_id, reaction_id, reaction_type, user_name,
             created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            IF NOT EXISTS
        """)
        self._update_reaction = self.session.prepare(f"""
            UPDATE {ks}.post_reactions
            SET reaction_type = ?, updated_at = ?
            WHERE post_id = ? AND user_id = ?
        """)
        self._get_reaction = self.session.prepare(f"""
            SELECT * FROM {ks}.post_reactions
            WHERE post_id = ? AND user_id = ?
        """)
        self._list_reactions = self.session.prepare(
            f"SELECT * FROM {ks}.post_reactions WHERE post_id = ?"
        )
        self._delete_reaction = self.session.prepare(f"""
            DELETE FROM {ks}.post_reactions
            WHERE post_id = ? AND user_id = ?
        """)

        self._insert_user_reaction = self.session.prepare(f"""
            INSERT INTO {ks}.reactions_by_user (user_id, post_id)
            VALUES (?, ?)
        """)
        self._list_user_reactions = self.session.prepare(
            f"SELECT post_id FROM {ks}.reactions_by_user WHERE user_id = ?"
        )
        self._delete_user_reaction = self.session.prepare(f"""
            DELETE FROM {ks}.reactions_by_user
            WHERE user_id = ? AND post_id = ?
        """)
        self._delete_user_partition = self.session.prepare(
            f"DELETE FROM {ks}.reactions_by_user WHERE user_id = ?"
        )

    # ==========================================================================
    # Reads
    # ==========================================================================

    async def _require_post(self, post_id: str) -> None:
        rows = await self.session.aexecute(self._post_exists, [post_id])
        if not rows:
            raise PostNotFoundError(post_id)

    async def _get(self, post_id: str, user_id: str) -> Reaction | None:
        rows = await self.session.aexecute(self._get_reaction, [post_id, user_id])
        return Reaction.from_row(rows[0]) if rows else None

    async def _all(self, post_id: str) -> list[Reaction]:
        rows = await self.session.aexecute(self._list_reactions, [post_id])
        reactions = [Reaction.from_row(row) for row in rows]
        reactions.sort(key=lambda r: r.created_at, reverse=True)
        return reactions

    async def list_reactions(self, post_id: str) -> list[Reaction]:
        """Every reaction of a post, newest first."""
        await self._require_post(post_id)
        return await self._all(post_id)

    async def get_user_reaction(self, post_id: str, user_id: str) -> str | None:
        """The type the user reacted with, or None."""
        await self._require_post(post_id)
        reaction = await self._get(post_id, user_id)
        return reaction.reaction_type.value if reaction else None

    async def get_counts(self, post_id: str) -> dict[str, int]:
        """Reaction counts per type for a post.

        Served from Redis when cached. Every mutation either overwrites the
        cached hash or drops it, so a hit is never older than the last
        mutation. Redis errors fall back to recomputing from Cassandra.
        """
        await self._require_post(post_id)

        if self.redis:
            try:
                cached = await self.redis.hgetall(reaction_counts_key(post_id))
            except RedisError as e:
                logger.warning(
                    "reaction_counts_cache_read_failed", post_id=post_id, error=str(e)
                )
                cached = None
            if cached:
                return {
                    (k.decode() if isinstance(k, bytes) else k): int(v)
                    for k, v in cached.items()
                }

        counts = count_by_type(await self._all(post_id))
        await self._cache_counts(post_id, counts)
        return counts

    # ==========================================================================
    # Mutations
    # ==========================================================================

    async def set_reaction(
        self,
        post_id: str,
        user_id: str,
        reaction_type: ReactionType,
        user_name: str = "",
    ) -> tuple[Reaction | None, dict[str, int]]:
        """Set, change or toggle off the user's reaction to a post.

        Returns:
            Tuple of (current reaction, or None when toggled off or when the
            create race could not settle, counts)

        Raises:
            PostNotFoundError: If the post does not exist
        """
        await self._require_post(post_id)
        existing = await self._get(post_id, user_id)

        if existing and existing.reaction_type == reaction_type:
            await self._delete(post_id, user_id)
            logger.info(
                "reaction_set",
                post_id=post_id,
                transition="removed",
                reaction_type=reaction_type.value,
            )
            return None, await self._refresh_counts(post_id)

        if existing:
            reaction = await self._change_type(existing, reaction_type)
            transition = "changed"
        else:
            reaction, transition = await self._create(
                post_id, user_id, reaction_type, user_name
            )

        logger.info(
            "reaction_set",
            post_id=post_id,
            transition=transition,
            reaction_type=reaction_type.value,
        )
        return reaction, await self._refresh_counts(post_id)

    async def _create(
        self,
        post_id: str,
        user_id: str,
        reaction_type: ReactionType,
        user_name: str,
    ) -> tuple[Reaction | None, str]:
        """Insert the reaction with ``IF NOT EXISTS``.

        A lost race turns into a type change of the winning row. When the
        winner is gone again by the time it is read, the insert is retried.
        """
        for attempt in range(1, CREATE_ATTEMPTS + 1):
            reaction = create_reaction(post_id, user_id, reaction_type, user_name)
            rows = await self.session.aexecute(
                self._insert_reaction,
                [
                    reaction.post_id,
                    reaction.user_id,
                    reaction.reaction_id,
                    reaction.reaction_type.value,
                    reaction.user_name,
                    reaction.created_at,
                    reaction.updated_at,
                ],
            )
            if was_applied(rows):
                await self.session.aexecute(
                    self._insert_user_reaction, [user_id, post_id]
                )
                return reaction, "created"

            logger.info("reaction_create_race_lost", post_id=post_id, attempt=attempt)
            winner = await self._get(post_id, user_id)
            if winner is not None:
                return await self._change_type(winner, reaction_type), "changed"

        logger.warning("reaction_create_abandoned", post_id=post_id)
        return None, "abandoned"

    async def _change_type(
        self, reaction: Reaction, reaction_type: ReactionType
    ) -> Reaction:
        reaction.reaction_type = reaction_type
        reaction.updated_at = datetime.now(UTC)
        await self.session.aexecute(
            self._update_reaction,
            [
                reaction_type.value,
                reaction.updated_at,
                reaction.post_id,
                reaction.user_id,
            ],
        )
        return reaction

    async def _delete(self, post_id: str, user_id: str) -> None:
        await self.session.aexecute(self._delete_reaction, [post_id, user_id])
        await self.session.aexecute(self._delete_user_reaction, [user_id, post_id])

    async def remove_reaction(self, post_id: str, user_id: str) -> dict[str, int]:
        """Remove the user's reaction. Returns the updated counts.

        Raises:
            PostNotFoundError: If the post does not exist
            ReactionNotFoundError: If the user has no reaction on the post
        """
        await self._require_post(post_id)
        if await self._get(post_id, user_id) is None:
            raise ReactionNotFoundError

        await self._delete(post_id, user_id)
        logger.info("reaction_removed", post_id=post_id)
        return await self._refresh_counts(post_id)

    async def delete_for_user(self, user_id: str) -> int:
        """Delete every reaction of a user. Returns the number removed."""
        rows = await self.session.aexecute(self._list_user_reactions, [user_id])
        post_ids = [row.post_id for row in rows]
        for post_id in post_ids:
            await self.session.aexecute(self._delete_reaction, [post_id, user_id])
            await self._refresh_counts(post_id)
        await self.session.aexecute(self._delete_user_partition, [user_id])
        return len(post_ids)

    # ==========================================================================
    # Count snapshot
    # ==========================================================================

    async def _refresh_counts(self, post_id: str) -> dict[str, int]:
        """Recompute counts from the reactions table and store the snapshot.

        The post row and the cache are written independently; a failure of
        one never skips the other.
        """
        counts = count_by_type(await self._all(post_id))
        try:
            await self.session.aexecute(self._update_post_snapshot, [counts, post_id])
        except Exception as e:
            logger.warning(
                "reaction_counts_snapshot_failed", post_id=post_id, error=str(e)
            )
        await self._cache_counts(post_id, counts)
        return counts

    async def _cache_counts(self, post_id: str, counts: dict[str, int]) -> None:
        """Overwrite the cached hash, or drop it when the overwrite fails."""
        if not self.redis:
            return

        key = reaction_counts_key(post_id)
        try:
            await self.redis.delete(key)
            if counts:
                await self.redis.hset(
                    key, mapping={k: str(v) for k, v in counts.items()}
                )
                await self.redis.expire(key, self.cache_ttl)
        except Exception as e:
            logger.warning(
                "reaction_counts_cache_failed", post_id=post_id, error=str(e)
            )
            await self._drop_cached_counts(key)

    async def _drop_cached_counts(self, key: str) -> None:
        try:
            await self.redis.delete(key)
        except Exception as e:
            logger.warning("reaction_counts_cache_drop_failed", key=key, error=str(e))
