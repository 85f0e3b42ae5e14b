"""Tests for request-scoped logging context."""

from src.core.context import (
    clear_context,
    get_context,
    get_request_id,
    set_request_id,
    set_user_id,
)


def test_request_id_generated_when_missing() -> None:
    rid = set_request_id(None)
    assert len(rid) == 32
    assert get_request_id() == rid
    clear_context()


def test_context_skips_empty_values() -> None:
    set_request_id("req-1")
    set_user_id("a" * 24)

    assert get_context() == {"request_id": "req-1", "user_id": "a" * 24}

    clear_context()
    assert get_context() == {}
