"""Role-based access control.

Two roles:
- ADMIN: manages users and may edit or delete any post or comment
- USER: registered author, may only edit or delete their own content
"""

from enum import Enum


class UserRole(str, Enum):
    USER = "user"
    ADMIN = "admin"


def is_admin(role: UserRole | str) -> bool:
    """Check if role is ADMIN."""
    if isinstance(role, str):
        return role == UserRole.ADMIN.value
    return role == UserRole.ADMIN


def can_modify(owner_id: str, requester_id: str, requester_role: UserRole | str) -> bool:
    """True when the requester owns the resource or is an admin.

    Examples:
        >>> can_modify("a" * 24, "a" * 24, "user")
        True
        >>> can_modify("a" * 24, "b" * 24, "user")
        False
        >>> can_modify("a" * 24, "b" * 24, "admin")
        True
    """
    return owner_id == requester_id or is_admin(requester_role)
