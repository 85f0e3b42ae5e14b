"""Tests for PostService."""

import re
from datetime import UTC, datetime
from unittest.mock import AsyncMock, Mock

import pytest

from src.core.exceptions import ConflictError
from src.posts.models import PostStatus
from src.posts.schemas import CreatePostRequest
from src.posts.service import PostNotFoundError, PostPermissionError, PostService
from tests.fakes import APPLIED, NOT_APPLIED, Row


AUTHOR_ID = "a" * 24
OTHER_ID = "b" * 24
POST_ID = "c" * 24


def post_row(post_id: str = POST_ID, **overrides) -> Row:
    now = datetime(2024, 5, 1, 12, 0)
    values = {
        "post_id": post_id,
        "title": "Hello",
        "slug": "hello-ab12c",
        "content": "Body",
        "excerpt": None,
        "author_id": AUTHOR_ID,
        "author_name": "Jane",
        "status": "published",
        "featured_image": "",
        "tags": ["python"],
        "reaction_counts": {"like": 2},
        "created_at": now,
        "updated_at": now,
    }
    values.update(overrides)
    return Row(**values)


@pytest.fixture
def comment_service():
    service = Mock()
    service.delete_for_post = AsyncMock(return_value=3)
    return service


@pytest.fixture
def service(session, comment_service) -> PostService:
    return PostService(session, "blog", comment_service=comment_service)


class TestCreate:
    @pytest.mark.asyncio
    async def test_create_claims_slug_and_writes_indexes(self, service, session) -> None:
        session.on("posts_by_slug (slug, post_id)", APPLIED)

        post = await service.create(
            AUTHOR_ID, "Jane", CreatePostRequest(title="Hello, World!!", content="Hi")
        )

        assert re.fullmatch(r"hello-world-[a-z0-9]{5}", post.slug)
        assert post.status == PostStatus.PUBLISHED
        assert len(post.post_id) == 24
        assert session.calls("INSERT INTO blog.posts (")[0][0] == post.post_id
        assert session.calls("INSERT INTO blog.posts_by_status")[0][0] == "published"
        assert session.calls("INSERT INTO blog.posts_by_author")[0][0] == AUTHOR_ID

    @pytest.mark.asyncio
    async def test_lost_slug_claim_draws_new_suffix(self, service, session) -> None:
        results = iter([NOT_APPLIED, APPLIED])
        session.on("posts_by_slug (slug, post_id)", lambda _params: next(results))

        post = await service.create(
            AUTHOR_ID, "Jane", CreatePostRequest(title="Hello", content="Hi")
        )

        claims = session.calls("posts_by_slug (slug, post_id)")
        assert len(claims) == 2
        assert post.slug == claims[1][0]

    @pytest.mark.asyncio
    async def test_exhausted_slug_claims_conflict(self, service, session) -> None:
        session.on("posts_by_slug (slug, post_id)", NOT_APPLIED)

        with pytest.raises(ConflictError) as exc:
            await service.create(
                AUTHOR_ID, "Jane", CreatePostRequest(title="Hello", content="Hi")
            )

        assert exc.value.message == "Duplicate field value entered for slug"
        assert session.calls("INSERT INTO blog.posts (") == []


class TestLookup:
    @pytest.mark.asyncio
    async def test_fetch_by_id_counts_a_view(self, service, session) -> None:
        session.on("FROM blog.posts WHERE post_id", [post_row()])
        session.on("SELECT views FROM blog.post_views", [Row(views=8)])

        post = await service.get_by_id_or_slug(POST_ID)

        assert post.views == 8
        assert session.calls("SET views = views + 1") == [[POST_ID]]
        assert session.calls("FROM blog.posts_by_slug") == []

    @pytest.mark.asyncio
    async def test_fetch_by_slug_counts_a_view(self, service, session) -> None:
        session.on("FROM blog.posts_by_slug", [Row(post_id=POST_ID)])
        session.on("FROM blog.posts WHERE post_id", [post_row()])
        session.on("SELECT views FROM blog.post_views", [Row(views=1)])

        post = await service.get_by_id_or_slug("hello-ab12c")

        assert post.post_id == POST_ID
        assert post.views == 1
        assert session.calls("SET views = views + 1") == [[POST_ID]]

    @pytest.mark.asyncio
    async def test_unknown_identifier(self, service) -> None:
        with pytest.raises(PostNotFoundError) as exc:
            await service.get_by_id_or_slug("missing-slug")

        assert exc.value.message == "Post not found with identifier: missing-slug"

    @pytest.mark.asyncio
    async def test_list_posts_slices_page(self, service, session) -> None:
        ids = [f"{i:024x}" for i in range(5)]
        session.on("FROM blog.posts_by_status", [Row(post_id=i) for i in ids])
        session.on(
            "FROM blog.posts WHERE post_id",
            lambda params: [post_row(post_id=params[0])],
        )
        session.on("COUNT(*)", [Row(count=5)])

        posts, total = await service.list_posts(PostStatus.PUBLISHED, page=2, limit=2)

        assert [p.post_id for p in posts] == ids[2:4]
        assert total == 5
        assert session.calls("FROM blog.posts_by_status")[0] == ["published", 4]


class TestUpdate:
    @pytest.mark.asyncio
    async def test_author_updates_and_slug_is_stable(self, service, session) -> None:
        session.on("FROM blog.posts WHERE post_id", [post_row()])

        post = await service.update(
            POST_ID, AUTHOR_ID, "user", {"title": "New title", "tags": ["a"]}
        )

        assert post.title == "New title"
        assert post.slug == "hello-ab12c"
        assert post.updated_at.tzinfo == UTC
        assert session.calls("DELETE FROM blog.posts_by_status") == []

    @pytest.mark.asyncio
    async def test_status_change_moves_listing_row(self, service, session) -> None:
        session.on("FROM blog.posts WHERE post_id", [post_row()])

        await service.update(POST_ID, AUTHOR_ID, "user", {"status": PostStatus.DRAFT})

        assert session.calls("DELETE FROM blog.posts_by_status")[0][0] == "published"
        assert session.calls("INSERT INTO blog.posts_by_status")[0][0] == "draft"

    @pytest.mark.asyncio
    async def test_admin_may_update_any_post(self, service, session) -> None:
        session.on("FROM blog.posts WHERE post_id", [post_row()])

        post = await service.update(POST_ID, OTHER_ID, "admin", {"content": "edited"})

        assert post.content == "edited"

    @pytest.mark.asyncio
    async def test_other_user_is_forbidden(self, service, session) -> None:
        session.on("FROM blog.posts WHERE post_id", [post_row()])

        with pytest.raises(PostPermissionError):
            await service.update(POST_ID, OTHER_ID, "user", {"title": "x"})

        assert session.calls("UPDATE blog.posts SET") == []


class TestDelete:
    @pytest.mark.asyncio
    async def test_delete_cascades_to_comments(
        self, service, session, comment_service
    ) -> None:
        session.on("FROM blog.posts WHERE post_id", [post_row()])

        await service.delete(POST_ID, AUTHOR_ID, "user")

        comment_service.delete_for_post.assert_awaited_once_with(POST_ID)
        assert session.calls("DELETE FROM blog.posts WHERE") == [[POST_ID]]
        assert session.calls("DELETE FROM blog.posts_by_slug") == [["hello-ab12c"]]

    @pytest.mark.asyncio
    async def test_other_user_cannot_delete(
        self, service, session, comment_service
    ) -> None:
        session.on("FROM blog.posts WHERE post_id", [post_row()])

        with pytest.raises(PostPermissionError):
            await service.delete(POST_ID, OTHER_ID, "user")

        comment_service.delete_for_post.assert_not_awaited()
        assert session.calls("DELETE FROM blog.posts WHERE") == []

    @pytest.mark.asyncio
    async def test_missing_post(self, service) -> None:
        with pytest.raises(PostNotFoundError) as exc:
            await service.delete(POST_ID, AUTHOR_ID, "user")

        assert exc.value.status_code == 404

    @pytest.mark.asyncio
    async def test_delete_for_author(self, service, session, comment_service) -> None:
        session.on("FROM blog.posts_by_author", [Row(post_id=POST_ID)])
        session.on("FROM blog.posts WHERE post_id", [post_row()])

        assert await service.delete_for_author(AUTHOR_ID) == 1
        comment_service.delete_for_post.assert_awaited_once_with(POST_ID)
