"""Tests for auth permissions."""

import pytest

from src.auth.permissions import UserRole, can_modify, is_admin


OWNER = "a" * 24
OTHER = "b" * 24


class TestUserRole:
    def test_role_values(self) -> None:
        assert UserRole.USER.value == "user"
        assert UserRole.ADMIN.value == "admin"


class TestIsAdmin:
    @pytest.mark.parametrize(
        "role,expected",
        [
            (UserRole.ADMIN, True),
            ("admin", True),
            (UserRole.USER, False),
            ("user", False),
            ("root", False),
        ],
    )
    def test_is_admin(self, role, expected: bool) -> None:
        assert is_admin(role) is expected


class TestCanModify:
    def test_owner(self) -> None:
        assert can_modify(OWNER, OWNER, UserRole.USER)

    def test_other_user(self) -> None:
        assert not can_modify(OWNER, OTHER, UserRole.USER)

    def test_admin(self) -> None:
        assert can_modify(OWNER, OTHER, "admin")
