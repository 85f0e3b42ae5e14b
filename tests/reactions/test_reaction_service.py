"""Tests for ReactionService."""

from datetime import datetime, timedelta
from unittest.mock import AsyncMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from src.posts.service import PostNotFoundError
from src.reactions.models import Reaction, ReactionType, count_by_type
from src.reactions.service import ReactionNotFoundError, ReactionService
from tests.fakes import APPLIED, NOT_APPLIED, Row


POST_ID = "p" * 24
USER_ID = "u" * 24


def reaction_row(user_id: str = USER_ID, reaction_type: str = "like", minutes: int = 0) -> Row:
    created = datetime(2024, 5, 1, 12, 0) + timedelta(minutes=minutes)
    return Row(
        post_id=POST_ID,
        user_id=user_id,
        reaction_id=f"{minutes:024x}",
        reaction_type=reaction_type,
        user_name="Jane",
        created_at=created,
        updated_at=created,
    )


class ReactionTable:
    """In-memory post_reactions partition driven through the fake session."""

    def __init__(self, session, rows: list[Row] | None = None) -> None:
        self.rows = {row.user_id: row for row in rows or []}
        session.on("FROM blog.posts WHERE", [Row(post_id=POST_ID)])
        session.on("SELECT * FROM blog.post_reactions WHERE post_id = ?", self._all)
        session.on("WHERE post_id = ? AND user_id = ?", self._one)
        session.on("DELETE FROM blog.post_reactions", self._delete)

    def _delete(self, params) -> list[Row]:
        self.rows.pop(params[1], None)
        return []

    def _all(self, _params) -> list[Row]:
        return list(self.rows.values())

    def _one(self, params) -> list[Row]:
        row = self.rows.get(params[1])
        return [row] if row else []


class FakeRedis:
    """Dict-backed stand-in for the hash commands the service uses."""

    def __init__(self) -> None:
        self.hashes: dict[str, dict[str, str]] = {}
        self.failing: set[str] = set()

    def _check(self, command: str) -> None:
        if command in self.failing:
            raise RedisConnectionError(f"{command} failed")

    async def hgetall(self, key: str) -> dict[str, str]:
        self._check("hgetall")
        return dict(self.hashes.get(key, {}))

    async def hset(self, key: str, mapping: dict[str, str]) -> int:
        self._check("hset")
        self.hashes.setdefault(key, {}).update(mapping)
        return len(mapping)

    async def expire(self, key: str, ttl: int) -> bool:
        self._check("expire")
        return True

    async def delete(self, key: str) -> int:
        self._check("delete")
        return int(self.hashes.pop(key, None) is not None)


@pytest.fixture
def redis():
    client = AsyncMock()
    client.hgetall = AsyncMock(return_value={})
    return client


@pytest.fixture
def service(session, redis) -> ReactionService:
    return ReactionService(session, "blog", redis=redis, cache_ttl=60)


class TestCountByType:
    def test_groups_and_omits_zero_counts(self) -> None:
        reactions = [
            Reaction.from_row(reaction_row("1" * 24, "like")),
            Reaction.from_row(reaction_row("2" * 24, "like")),
            Reaction.from_row(reaction_row("3" * 24, "love")),
        ]

        assert count_by_type(reactions) == {"like": 2, "love": 1}


class TestSetReaction:
    @pytest.mark.asyncio
    async def test_first_reaction_is_created(self, service, session, redis) -> None:
        table = ReactionTable(session)

        def insert(params):
            table.rows[params[1]] = reaction_row(params[1], params[3])
            return APPLIED

        session.on("INSERT INTO blog.post_reactions", insert)

        reaction, counts = await service.set_reaction(POST_ID, USER_ID, ReactionType.LIKE)

        assert reaction is not None
        assert reaction.reaction_type == ReactionType.LIKE
        assert counts == {"like": 1}
        assert session.calls("INSERT INTO blog.reactions_by_user") == [[USER_ID, POST_ID]]
        assert session.calls("SET reaction_counts")[0] == [{"like": 1}, POST_ID]
        redis.hset.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_same_type_toggles_off(self, service, session) -> None:
        ReactionTable(session, [reaction_row(reaction_type="like")])

        reaction, counts = await service.set_reaction(POST_ID, USER_ID, ReactionType.LIKE)

        assert reaction is None
        assert counts == {}
        assert session.calls("DELETE FROM blog.post_reactions") == [[POST_ID, USER_ID]]

    @pytest.mark.asyncio
    async def test_other_type_updates_in_place(self, service, session) -> None:
        table = ReactionTable(
            session,
            [reaction_row(reaction_type="like"), reaction_row("o" * 24, "love", 1)],
        )

        def update(params):
            table.rows[params[3]].reaction_type = params[0]
            return []

        session.on("UPDATE blog.post_reactions", update)

        reaction, counts = await service.set_reaction(POST_ID, USER_ID, ReactionType.LOVE)

        assert reaction.reaction_type == ReactionType.LOVE
        assert reaction.reaction_id == f"{0:024x}"
        assert counts == {"love": 2}
        assert session.calls("INSERT INTO blog.post_reactions") == []

    @pytest.mark.asyncio
    async def test_lost_create_race_falls_back_to_update(self, service, session) -> None:
        table = ReactionTable(session)
        winner = reaction_row(reaction_type="sad")

        def insert(_params):
            # Another request created the row between the read and the insert
            table.rows[USER_ID] = winner
            return NOT_APPLIED

        def update(params):
            table.rows[params[3]].reaction_type = params[0]
            return []

        session.on("INSERT INTO blog.post_reactions", insert)
        session.on("UPDATE blog.post_reactions", update)

        reaction, counts = await service.set_reaction(POST_ID, USER_ID, ReactionType.WOW)

        assert reaction.reaction_type == ReactionType.WOW
        assert counts == {"wow": 1}
        assert len(session.calls("UPDATE blog.post_reactions")) == 1

    @pytest.mark.asyncio
    async def test_missing_post(self, service) -> None:
        with pytest.raises(PostNotFoundError):
            await service.set_reaction(POST_ID, USER_ID, ReactionType.LIKE)

    @pytest.mark.asyncio
    async def test_snapshot_failure_does_not_fail(self, service, session, redis) -> None:
        ReactionTable(session, [reaction_row(reaction_type="like")])
        redis.delete.side_effect = ConnectionError("redis down")

        reaction, counts = await service.set_reaction(POST_ID, USER_ID, ReactionType.LIKE)

        assert reaction is None
        assert counts == {}
        redis.hgetall.return_value = {}
        assert await service.get_counts(POST_ID) == {}

    @pytest.mark.asyncio
    async def test_lost_race_with_vanished_winner_retries(self, service, session) -> None:
        table = ReactionTable(session)
        results = iter([NOT_APPLIED, APPLIED])

        def insert(params):
            result = next(results)
            if result is APPLIED:
                table.rows[params[1]] = reaction_row(params[1], params[3])
            return result

        session.on("INSERT INTO blog.post_reactions", insert)

        reaction, counts = await service.set_reaction(POST_ID, USER_ID, ReactionType.WOW)

        assert reaction.reaction_type == ReactionType.WOW
        assert counts == {"wow": 1}
        assert len(session.calls("INSERT INTO blog.post_reactions")) == 2
        assert session.calls("INSERT INTO blog.reactions_by_user") == [[USER_ID, POST_ID]]

    @pytest.mark.asyncio
    async def test_unsettled_race_returns_no_reaction(self, service, session) -> None:
        ReactionTable(session)
        session.on("INSERT INTO blog.post_reactions", NOT_APPLIED)

        reaction, counts = await service.set_reaction(POST_ID, USER_ID, ReactionType.WOW)

        assert reaction is None
        assert counts == {}
        assert session.calls("INSERT INTO blog.reactions_by_user") == []


class TestCountsCache:
    """Cached counts stay in step with the reactions table."""

    @pytest.fixture
    def fake_redis(self) -> FakeRedis:
        return FakeRedis()

    @pytest.fixture
    def cached_service(self, session, fake_redis) -> ReactionService:
        return ReactionService(session, "blog", redis=fake_redis, cache_ttl=60)

    @staticmethod
    def _with_insert(session, table: ReactionTable) -> None:
        def insert(params):
            table.rows[params[1]] = reaction_row(params[1], params[3])
            return APPLIED

        session.on("INSERT INTO blog.post_reactions", insert)

    @pytest.mark.asyncio
    async def test_counts_fresh_after_snapshot_failure(
        self, cached_service, session
    ) -> None:
        table = ReactionTable(session, [reaction_row("o" * 24, "like")])
        self._with_insert(session, table)
        assert await cached_service.get_counts(POST_ID) == {"like": 1}

        def fail(_params):
            raise RuntimeError("write timeout")

        session.on("SET reaction_counts", fail)
        await cached_service.set_reaction(POST_ID, USER_ID, ReactionType.LOVE)

        assert await cached_service.get_counts(POST_ID) == {"like": 1, "love": 1}

    @pytest.mark.asyncio
    async def test_failed_overwrite_drops_cached_counts(
        self, cached_service, session, fake_redis
    ) -> None:
        table = ReactionTable(session, [reaction_row("o" * 24, "like")])
        self._with_insert(session, table)
        await cached_service.get_counts(POST_ID)

        fake_redis.failing.add("expire")
        await cached_service.set_reaction(POST_ID, USER_ID, ReactionType.LOVE)

        assert fake_redis.hashes == {}
        fake_redis.failing.clear()
        assert await cached_service.get_counts(POST_ID) == {"like": 1, "love": 1}

    @pytest.mark.asyncio
    async def test_read_failure_recomputes(
        self, cached_service, session, fake_redis
    ) -> None:
        ReactionTable(session, [reaction_row("o" * 24, "sad")])
        fake_redis.failing.update({"hgetall", "delete"})

        assert await cached_service.get_counts(POST_ID) == {"sad": 1}


class TestReads:
    @pytest.mark.asyncio
    async def test_list_is_newest_first(self, service, session) -> None:
        ReactionTable(
            session,
            [reaction_row("1" * 24, "like", 0), reaction_row("2" * 24, "love", 5)],
        )

        reactions = await service.list_reactions(POST_ID)

        assert [r.user_id for r in reactions] == ["2" * 24, "1" * 24]

    @pytest.mark.asyncio
    async def test_get_user_reaction(self, service, session) -> None:
        ReactionTable(session, [reaction_row(reaction_type="angry")])

        assert await service.get_user_reaction(POST_ID, USER_ID) == "angry"
        assert await service.get_user_reaction(POST_ID, "z" * 24) is None

    @pytest.mark.asyncio
    async def test_counts_from_cache(self, service, session, redis) -> None:
        ReactionTable(session)
        redis.hgetall.return_value = {"like": "4"}

        assert await service.get_counts(POST_ID) == {"like": 4}
        assert session.calls("SELECT * FROM blog.post_reactions") == []

    @pytest.mark.asyncio
    async def test_counts_recomputed_on_cache_miss(self, service, session) -> None:
        ReactionTable(
            session,
            [
                reaction_row("1" * 24, "like"),
                reaction_row("2" * 24, "like"),
                reaction_row("3" * 24, "love"),
            ],
        )

        assert await service.get_counts(POST_ID) == {"like": 2, "love": 1}


class TestRemove:
    @pytest.mark.asyncio
    async def test_remove_existing(self, service, session) -> None:
        ReactionTable(session, [reaction_row()])

        await service.remove_reaction(POST_ID, USER_ID)

        assert session.calls("DELETE FROM blog.reactions_by_user") == [[USER_ID, POST_ID]]

    @pytest.mark.asyncio
    async def test_remove_without_reaction(self, service, session) -> None:
        ReactionTable(session)

        with pytest.raises(ReactionNotFoundError) as exc:
            await service.remove_reaction(POST_ID, USER_ID)

        assert exc.value.message == "No reaction found for this user and post"

    @pytest.mark.asyncio
    async def test_delete_for_user(self, service, session) -> None:
        ReactionTable(session)
        session.on("FROM blog.reactions_by_user WHERE user_id = ?", [Row(post_id=POST_ID)])

        assert await service.delete_for_user(USER_ID) == 1
        assert session.calls("DELETE FROM blog.post_reactions") == [[POST_ID, USER_ID]]
