"""Tests for comment routes."""

from datetime import UTC, datetime
from unittest.mock import AsyncMock, Mock

import pytest

from src.comments.models import Comment
from src.comments.service import CommentPermissionError
from src.posts.service import PostNotFoundError
from tests.fakes import bearer


POST_ID = "p" * 24
AUTHOR_ID = "a" * 24


def make_comment(comment_id: str = "1" * 24, parent_id: str | None = None) -> Comment:
    now = datetime(2024, 5, 1, tzinfo=UTC)
    return Comment(
        comment_id=comment_id,
        post_id=POST_ID,
        author_id=AUTHOR_ID,
        author_name="Jane",
        content="Nice",
        parent_id=parent_id,
        created_at=now,
        updated_at=now,
    )


@pytest.fixture
def comment_service(app):
    service = Mock()
    app.state.comment_service = service
    return service


def test_list_comments(client, comment_service) -> None:
    comment_service.list_top_level = AsyncMock(return_value=[make_comment()])

    response = client.get(f"/v1/posts/{POST_ID}/comments")

    assert response.status_code == 200
    body = response.json()
    assert body["count"] == 1
    assert body["data"][0]["parent_comment"] is None
    assert body["data"][0]["author"]["name"] == "Jane"


def test_list_comments_missing_post(client, comment_service) -> None:
    comment_service.list_top_level = AsyncMock(side_effect=PostNotFoundError(POST_ID))

    response = client.get(f"/v1/posts/{POST_ID}/comments")

    assert response.status_code == 404
    assert response.json()["error"] == f"Post not found with id of {POST_ID}"


def test_add_comment_trims_content(client, comment_service) -> None:
    comment_service.add_comment = AsyncMock(return_value=make_comment())

    response = client.post(
        f"/v1/posts/{POST_ID}/comments",
        json={"content": "  Nice  "},
        headers=bearer(AUTHOR_ID, name="Jane"),
    )

    assert response.status_code == 201
    assert comment_service.add_comment.await_args.kwargs["content"] == "Nice"


@pytest.mark.parametrize("content", ["", "   ", "x" * 1001])
def test_add_comment_rejects_bad_content(client, comment_service, content) -> None:
    response = client.post(
        f"/v1/posts/{POST_ID}/comments",
        json={"content": content},
        headers=bearer(AUTHOR_ID),
    )

    assert response.status_code == 400


def test_add_reply(client, comment_service) -> None:
    comment_service.add_reply = AsyncMock(
        return_value=make_comment("2" * 24, parent_id="1" * 24)
    )

    response = client.post(
        f"/v1/comments/{'1' * 24}/replies",
        json={"content": "Agreed"},
        headers=bearer(AUTHOR_ID),
    )

    assert response.status_code == 201
    assert response.json()["data"]["parent_comment"] == "1" * 24


def test_update_forbidden(client, comment_service) -> None:
    comment_service.update = AsyncMock(
        side_effect=CommentPermissionError("b" * 24, "update")
    )

    response = client.put(
        f"/v1/comments/{'1' * 24}",
        json={"content": "x"},
        headers=bearer("b" * 24),
    )

    assert response.status_code == 403
    assert response.json()["success"] is False


def test_delete_comment(client, comment_service) -> None:
    comment_service.delete = AsyncMock(return_value=3)

    response = client.delete(f"/v1/comments/{'1' * 24}", headers=bearer(AUTHOR_ID))

    assert response.status_code == 200
    assert response.json() == {"success": True, "data": {}}
