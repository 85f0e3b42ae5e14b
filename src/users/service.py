"""User administration service.

Admin-only operations on accounts, including the delete cascade across
posts, comments and reactions.
"""

from dataclasses import dataclass

import structlog

from src.auth.models import User
from src.auth.schemas import AdminCreateUserRequest, AdminUpdateUserRequest
from src.auth.service import AuthService
from src.comments.service import CommentService
from src.core.exceptions import ForbiddenError
from src.posts.models import Post
from src.posts.service import PostService
from src.reactions.service import ReactionService


logger = structlog.get_logger(__name__)

RECENT_POSTS_LIMIT = 5


class CannotBanAdminError(ForbiddenError):
    def __init__(self):
        super().__init__("Cannot ban admin users", "cannot_ban_admin")


@dataclass
class UserStats:
    total_users: int
    admin_users: int
    banned_users: int
    active_users: int


class UserAdminService:
    """Orchestrates account administration across the domain services."""

    def __init__(
        self,
        auth_service: AuthService,
        post_service: PostService,
        comment_service: CommentService,
        reaction_service: ReactionService,
    ):
        self.auth_service = auth_service
        self.post_service = post_service
        self.comment_service = comment_service
        self.reaction_service = reaction_service

    async def list_users(self, page: int = 1, limit: int = 25) -> tuple[list[User], int]:
        """Page of users, newest first, and the total number of users."""
        users = await self.auth_service.list_users()
        start = (page - 1) * limit
        return users[start : start + limit], len(users)

    async def get_user(self, user_id: str) -> tuple[User, list[Post]]:
        """A user and their most recent posts.

        Raises:
            UserNotFoundError: If the user does not exist
        """
        user = await self.auth_service.require_user(user_id)
        posts = await self.post_service.list_by_author(user_id, limit=RECENT_POSTS_LIMIT)
        return user, posts

    async def create_user(self, data: AdminCreateUserRequest) -> User:
        return await self.auth_service.admin_create_user(data)

    async def update_user(self, user_id: str, data: AdminUpdateUserRequest) -> User:
        return await self.auth_service.update_user(
            user_id, name=data.name, email=data.email, role=data.role
        )

    async def delete_user(self, user_id: str) -> None:
        """Delete a user with their posts, comments and reactions.

        Raises:
            UserNotFoundError: If the user does not exist
        """
        user = await self.auth_service.require_user(user_id)

        deleted_posts = await self.post_service.delete_for_author(user.id)
        deleted_comments = await self.comment_service.delete_for_author(user.id)
        deleted_reactions = await self.reaction_service.delete_for_user(user.id)
        await self.auth_service.delete_user(user)

        logger.info(
            "user_deleted",
            user_id=user.id,
            deleted_posts=deleted_posts,
            deleted_comments=deleted_comments,
            deleted_reactions=deleted_reactions,
        )

    async def toggle_ban(self, user_id: str) -> User:
        """Flip the ban flag of a user.

        Raises:
            UserNotFoundError: If the user does not exist
            CannotBanAdminError: If the user is an admin
        """
        user = await self.auth_service.require_user(user_id)
        if user.is_admin:
            raise CannotBanAdminError

        user = await self.auth_service.set_banned(user, not user.is_banned)
        logger.info("user_ban_toggled", user_id=user.id, is_banned=user.is_banned)
        return user

    async def stats(self) -> UserStats:
        users = await self.auth_service.list_users()
        banned = sum(1 for u in users if u.is_banned)
        return UserStats(
            total_users=len(users),
            admin_users=sum(1 for u in users if u.is_admin),
            banned_users=banned,
            active_users=len(users) - banned,
        )
