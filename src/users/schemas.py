"""Pydantic schemas for user administration."""

from pydantic import BaseModel

from src.auth.schemas import UserResponse
from src.posts.schemas import PostSummary


class UserDetailResponse(UserResponse):
    """User with their most recent posts."""

    posts: list[PostSummary] = []


class UserStatsResponse(BaseModel):
    total_users: int
    admin_users: int
    banned_users: int
    active_users: int
