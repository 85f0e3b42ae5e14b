"""Post service layer.

Business logic for:
- Post CRUD with author/admin ownership checks
- Unique slug generation
- Lookup by id or slug with view counting
- Listings by status (paginated) and by author
"""

from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

import structlog

from src.auth.permissions import can_modify
from src.core.database.lwt import was_applied
from src.core.exceptions import ConflictError, ForbiddenError, NotFoundError
from src.core.ids import is_object_id

from .models import Post, PostStatus, create_post, unique_slug
from .schemas import CreatePostRequest


if TYPE_CHECKING:
    from cassandra.cluster import Session

    from src.comments.service import CommentService


logger = structlog.get_logger(__name__)

DEFAULT_SLUG_ATTEMPTS = 5


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class PostNotFoundError(NotFoundError):
    def __init__(self, post_id: str, by_identifier: bool = False):
        label = "identifier:" if by_identifier else "id of"
        super().__init__(f"Post not found with {label} {post_id}", "post_not_found")


class PostPermissionError(ForbiddenError):
    def __init__(self, user_id: str, action: str):
        super().__init__(
            f"User {user_id} is not authorized to {action} this post",
            "post_permission_denied",
        )


# ==============================================================================
# Post Service
# ==============================================================================


class PostService:
    """Service for post management."""

    def __init__(
        self,
        session: "Session",
        keyspace: str,
        comment_service: "CommentService | None" = None,
        slug_attempts: int = DEFAULT_SLUG_ATTEMPTS,
    ):
        """Initialize with Cassandra session.

        Args:
            session: Cassandra session with ``aexecute()``
            keyspace: Keyspace name for queries
            comment_service: Used to cascade post deletion to comments
            slug_attempts: Slug claims attempted before giving up
        """
        self.session = session
        self.keyspace = keyspace
        self.comment_service = comment_service
        self.slug_attempts = slug_attempts
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient queries."""
        ks = self.keyspace

        self._insert_post = self.session.prepare(f"""
            INSERT INTO {ks}.posts
            (post_id, title, slug, content, excerpt, author_id, author_name,
             status, featured_image, tags, reaction_counts, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)
        self._get_post = self.session.prepare(
            f"SELECT * FROM {ks}.posts WHERE post_id = ?"
        )
        self._update_post = self.session.prepare(f"""
            UPDATE {ks}.posts
            SET title = ?, content = ?, excerpt = ?, status = ?,
                featured_image = ?, tags = ?, updated_at = ?
            WHERE post_id = ?
        """)
        self._delete_post = self.session.prepare(
            f"DELETE FROM {ks}.posts WHERE post_id = ?"
        )

        # Slugs
        self._claim_slug = self.session.prepare(f"""
            INSERT INTO {ks}.posts_by_slug (slug, post_id)
            VALUES (?, ?)
            IF NOT EXISTS
        """)
        self._get_post_id_by_slug = self.session.prepare(
            f"SELECT post_id FROM {ks}.posts_by_slug WHERE slug = ?"
        )
        self._delete_slug = self.session.prepare(
            f"DELETE FROM {ks}.posts_by_slug WHERE slug = ?"
        )

        # Listings
        self._insert_by_status = self.session.prepare(f"""
            INSERT INTO {ks}.posts_by_status (status, created_at, post_id)
            VALUES (?, ?, ?)
        """)
        self._delete_by_status = self.session.prepare(f"""
            DELETE FROM {ks}.posts_by_status
            WHERE status = ? AND created_at = ? AND post_id = ?
        """)
        self._list_by_status = self.session.prepare(f"""
            SELECT post_id FROM {ks}.posts_by_status
            WHERE status = ?
            LIMIT ?
        """)
        self._count_by_status = self.session.prepare(
            f"SELECT COUNT(*) FROM {ks}.posts_by_status WHERE status = ?"
        )
        self._insert_by_author = self.session.prepare(f"""
            INSERT INTO {ks}.posts_by_author (author_id, created_at, post_id)
            VALUES (?, ?, ?)
        """)
        self._delete_by_author = self.session.prepare(f"""
            DELETE FROM {ks}.posts_by_author
            WHERE author_id = ? AND created_at = ? AND post_id = ?
        """)
        self._list_by_author = self.session.prepare(f"""
            SELECT post_id FROM {ks}.posts_by_author
            WHERE author_id = ?
            LIMIT ?
        """)

        # Views (counter table)
        self._incr_views = self.session.prepare(
            f"UPDATE {ks}.post_views SET views = views + 1 WHERE post_id = ?"
        )
        self._get_views = self.session.prepare(
            f"SELECT views FROM {ks}.post_views WHERE post_id = ?"
        )
        self._delete_views = self.session.prepare(
            f"DELETE FROM {ks}.post_views WHERE post_id = ?"
        )

    # ==========================================================================
    # Lookups
    # ==========================================================================

    async def _read_views(self, post_id: str) -> int:
        rows = await self.session.aexecute(self._get_views, [post_id])
        return (rows[0].views or 0) if rows else 0

    async def get_post(self, post_id: str, with_views: bool = True) -> Post | None:
        """Fetch a post by id without counting a view."""
        rows = await self.session.aexecute(self._get_post, [post_id])
        if not rows:
            return None
        views = await self._read_views(post_id) if with_views else 0
        return Post.from_row(rows[0], views=views)

    async def require_post(self, post_id: str) -> Post:
        post = await self.get_post(post_id)
        if not post:
            raise PostNotFoundError(post_id)
        return post

    async def get_post_by_slug(self, slug: str) -> Post | None:
        rows = await self.session.aexecute(self._get_post_id_by_slug, [slug])
        if not rows:
            return None
        return await self.get_post(rows[0].post_id)

    async def get_by_id_or_slug(self, identifier: str) -> Post:
        """Resolve a post by 24-hex id or by slug and count one view.

        Identifiers shaped like an id are looked up by id; anything else is
        treated as a slug.

        Raises:
            PostNotFoundError: If neither lookup resolves.
        """
        if is_object_id(identifier):
            post = await self.get_post(identifier, with_views=False)
        else:
            post = await self.get_post_by_slug(identifier)
        if not post:
            raise PostNotFoundError(identifier, by_identifier=True)

        await self.session.aexecute(self._incr_views, [post.post_id])
        post.views = await self._read_views(post.post_id)
        logger.debug("post_viewed", post_id=post.post_id, views=post.views)
        return post

    async def _load_posts(self, id_rows: list[Any]) -> list[Post]:
        posts = []
        for row in id_rows:
            post = await self.get_post(row.post_id)
            if post:
                posts.append(post)
        return posts

    async def list_posts(
        self,
        status: PostStatus = PostStatus.PUBLISHED,
        page: int = 1,
        limit: int = 10,
    ) -> tuple[list[Post], int]:
        """List posts with a given status, newest first.

        Returns:
            Tuple of (posts on the requested page, total posts with that status)
        """
        start = (page - 1) * limit
        id_rows = await self.session.aexecute(
            self._list_by_status, [status.value, start + limit]
        )
        posts = await self._load_posts(list(id_rows)[start:])

        count_rows = await self.session.aexecute(self._count_by_status, [status.value])
        total = count_rows[0].count if count_rows else 0
        return posts, total

    async def list_by_author(self, author_id: str, limit: int = 1000) -> list[Post]:
        """All posts of an author regardless of status, newest first."""
        id_rows = await self.session.aexecute(self._list_by_author, [author_id, limit])
        return await self._load_posts(id_rows)

    # ==========================================================================
    # Mutations
    # ==========================================================================

    async def _claim_unique_slug(self, title: str, post_id: str) -> str:
        for attempt in range(1, self.slug_attempts + 1):
            slug = unique_slug(title)
            rows = await self.session.aexecute(self._claim_slug, [slug, post_id])
            if was_applied(rows):
                return slug
            logger.warning("slug_collision", slug=slug, attempt=attempt)
        raise ConflictError("slug")

    async def create(
        self,
        author_id: str,
        author_name: str,
        data: CreatePostRequest,
    ) -> Post:
        """Create a post with a freshly claimed unique slug."""
        post = create_post(
            title=data.title,
            content=data.content,
            author_id=author_id,
            author_name=author_name,
            slug="",
            excerpt=data.excerpt,
            status=data.status,
            featured_image=data.featured_image,
            tags=data.tags,
        )
        post.slug = await self._claim_unique_slug(post.title, post.post_id)

        await self.session.aexecute(
            self._insert_post,
            [
                post.post_id,
                post.title,
                post.slug,
                post.content,
                post.excerpt,
                post.author_id,
                post.author_name,
                post.status.value,
                post.featured_image,
                post.tags,
                post.reaction_counts,
                post.created_at,
                post.updated_at,
            ],
        )
        await self.session.aexecute(
            self._insert_by_status, [post.status.value, post.created_at, post.post_id]
        )
        await self.session.aexecute(
            self._insert_by_author, [post.author_id, post.created_at, post.post_id]
        )

        logger.info("post_created", post_id=post.post_id, slug=post.slug)
        return post

    async def update(
        self,
        post_id: str,
        requester_id: str,
        requester_role: str,
        changes: dict[str, Any],
    ) -> Post:
        """Apply a partial update. The slug is kept stable.

        Raises:
            PostNotFoundError: If the post does not exist
            PostPermissionError: If the requester is neither author nor admin
        """
        post = await self.require_post(post_id)
        if not can_modify(post.author_id, requester_id, requester_role):
            raise PostPermissionError(requester_id, "update")

        old_status = post.status
        for name, value in changes.items():
            if value is not None or name == "excerpt":
                setattr(post, name, value)
        post.status = PostStatus(post.status)
        post.updated_at = datetime.now(UTC)

        await self.session.aexecute(
            self._update_post,
            [
                post.title,
                post.content,
                post.excerpt,
                post.status.value,
                post.featured_image,
                post.tags,
                post.updated_at,
                post.post_id,
            ],
        )
        if post.status != old_status:
            await self.session.aexecute(
                self._delete_by_status, [old_status.value, post.created_at, post.post_id]
            )
            await self.session.aexecute(
                self._insert_by_status,
                [post.status.value, post.created_at, post.post_id],
            )

        logger.info("post_updated", post_id=post.post_id, fields=sorted(changes))
        return post

    async def _remove(self, post: Post) -> int:
        """Delete a post and its comments. Returns the number of comments removed."""
        deleted_comments = 0
        if self.comment_service is not None:
            deleted_comments = await self.comment_service.delete_for_post(post.post_id)

        await self.session.aexecute(self._delete_post, [post.post_id])
        await self.session.aexecute(self._delete_slug, [post.slug])
        await self.session.aexecute(
            self._delete_by_status, [post.status.value, post.created_at, post.post_id]
        )
        await self.session.aexecute(
            self._delete_by_author, [post.author_id, post.created_at, post.post_id]
        )
        await self.session.aexecute(self._delete_views, [post.post_id])
        return deleted_comments

    async def delete(self, post_id: str, requester_id: str, requester_role: str) -> None:
        """Delete a post and cascade to its comments. Reactions are kept.

        Raises:
            PostNotFoundError: If the post does not exist
            PostPermissionError: If the requester is neither author nor admin
        """
        post = await self.require_post(post_id)
        if not can_modify(post.author_id, requester_id, requester_role):
            raise PostPermissionError(requester_id, "delete")

        deleted_comments = await self._remove(post)
        logger.info(
            "post_deleted", post_id=post.post_id, deleted_comments=deleted_comments
        )

    async def delete_for_author(self, author_id: str) -> int:
        """Delete every post of an author. Returns the number of posts removed."""
        posts = await self.list_by_author(author_id)
        for post in posts:
            await self._remove(post)
        return len(posts)
