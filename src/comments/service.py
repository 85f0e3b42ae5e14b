"""Comment service layer.

Business logic for:
- Top-level comments and replies on posts
- Edits and deletes with author/admin ownership checks
- One-level cascade when deleting a top-level comment
- Bulk removal when a post or a user is deleted
"""

from datetime import UTC, datetime
from typing import TYPE_CHECKING

import structlog

from src.auth.permissions import can_modify
from src.core.exceptions import ForbiddenError, NotFoundError
from src.posts.service import PostNotFoundError

from .models import Comment, create_comment


if TYPE_CHECKING:
    from cassandra.cluster import Session


logger = structlog.get_logger(__name__)


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class CommentNotFoundError(NotFoundError):
    def __init__(self, comment_id: str, parent: bool = False):
        label = "Parent comment" if parent else "Comment"
        super().__init__(
            f"{label} not found with id of {comment_id}", "comment_not_found"
        )


class CommentPermissionError(ForbiddenError):
    def __init__(self, user_id: str, action: str):
        super().__init__(
            f"User {user_id} is not authorized to {action} this comment",
            "comment_permission_denied",
        )


# ==============================================================================
# Comment Service
# ==============================================================================


class CommentService:
    """Service for the comment tree of posts."""

    def __init__(self, session: "Session", keyspace: str):
        """Initialize with Cassandra session.

        Args:
            session: Cassandra session with ``aexecute()``
            keyspace: Keyspace name for queries
        """
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient queries."""
        ks = self.keyspace

        self._post_exists = self.session.prepare(
            f"SELECT post_id FROM {ks}.posts WHERE post_id = ?"
        )

        # By id
        self._insert_by_id = self.session.prepare(f"""
            INSERT INTO {ks}.comments_by_id
            (comment_id, post_id, parent_id, author_id, author_name, content,
             is_edited, edited_at, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)
        self._get_by_id = self.session.prepare(
            f"SELECT * FROM {ks}.comments_by_id WHERE comment_id = ?"
        )
        self._update_by_id = self.session.prepare(f"""
            UPDATE {ks}.comments_by_id
            SET content = ?, is_edited = ?, edited_at = ?, updated_at = ?
            WHERE comment_id = ?
        """)
        self._delete_by_id = self.session.prepare(
            f"DELETE FROM {ks}.comments_by_id WHERE comment_id = ?"
        )

        # By post
        self._insert_by_post = self.session.prepare(f"""
            INSERT INTO {ks}.comments_by_post
            (post_id, created_at, comment_id, parent_id, author_id, author_name,
             content, is_edited, edited_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)
        self._list_by_post = self.session.prepare(
            f"SELECT * FROM {ks}.comments_by_post WHERE post_id = ?"
        )
        self._update_by_post = self.session.prepare(f"""
            UPDATE {ks}.comments_by_post
            SET content = ?, is_edited = ?, edited_at = ?, updated_at = ?
            WHERE post_id = ? AND created_at = ? AND comment_id = ?
        """)
        self._delete_by_post = self.session.prepare(f"""
            DELETE FROM {ks}.comments_by_post
            WHERE post_id = ? AND created_at = ? AND comment_id = ?
        """)
        self._delete_post_partition = self.session.prepare(
            f"DELETE FROM {ks}.comments_by_post WHERE post_id = ?"
        )

        # By parent (replies)
        self._insert_by_parent = self.session.prepare(f"""
            INSERT INTO {ks}.comments_by_parent
            (parent_id, created_at, comment_id, post_id, author_id, author_name,
             content, is_edited, edited_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)
        self._list_by_parent = self.session.prepare(
            f"SELECT * FROM {ks}.comments_by_parent WHERE parent_id = ?"
        )
        self._update_by_parent = self.session.prepare(f"""
            UPDATE {ks}.comments_by_parent
            SET content = ?, is_edited = ?, edited_at = ?, updated_at = ?
            WHERE parent_id = ? AND created_at = ? AND comment_id = ?
        """)
        self._delete_by_parent = self.session.prepare(f"""
            DELETE FROM {ks}.comments_by_parent
            WHERE parent_id = ? AND created_at = ? AND comment_id = ?
        """)
        self._delete_parent_partition = self.session.prepare(
            f"DELETE FROM {ks}.comments_by_parent WHERE parent_id = ?"
        )

        # By author
        self._insert_by_author = self.session.prepare(f"""
            INSERT INTO {ks}.comments_by_author (author_id, comment_id)
            VALUES (?, ?)
        """)
        self._list_by_author = self.session.prepare(
            f"SELECT comment_id FROM {ks}.comments_by_author WHERE author_id = ?"
        )
        self._delete_by_author = self.session.prepare(f"""
            DELETE FROM {ks}.comments_by_author
            WHERE author_id = ? AND comment_id = ?
        """)
        self._delete_author_partition = self.session.prepare(
            f"DELETE FROM {ks}.comments_by_author WHERE author_id = ?"
        )

    # ==========================================================================
    # Lookups
    # ==========================================================================

    async def _require_post(self, post_id: str) -> None:
        rows = await self.session.aexecute(self._post_exists, [post_id])
        if not rows:
            raise PostNotFoundError(post_id)

    async def get_comment(self, comment_id: str) -> Comment | None:
        rows = await self.session.aexecute(self._get_by_id, [comment_id])
        if not rows:
            return None
        return Comment.from_row(rows[0])

    async def require_comment(self, comment_id: str, parent: bool = False) -> Comment:
        comment = await self.get_comment(comment_id)
        if not comment:
            raise CommentNotFoundError(comment_id, parent=parent)
        return comment

    async def list_top_level(self, post_id: str) -> list[Comment]:
        """Comments of a post that have no parent, newest first.

        Raises:
            PostNotFoundError: If the post does not exist
        """
        await self._require_post(post_id)
        rows = await self.session.aexecute(self._list_by_post, [post_id])
        return [Comment.from_row(row) for row in rows if not row.parent_id]

    async def list_replies(self, comment_id: str) -> list[Comment]:
        """Direct replies of a comment, oldest first.

        Raises:
            CommentNotFoundError: If the comment does not exist
        """
        await self.require_comment(comment_id)
        rows = await self.session.aexecute(self._list_by_parent, [comment_id])
        return [Comment.from_row(row) for row in rows]

    # ==========================================================================
    # Mutations
    # ==========================================================================

    async def _write(self, comment: Comment) -> None:
        """Insert a comment into every table that holds it."""
        await self.session.aexecute(
            self._insert_by_id,
            [
                comment.comment_id,
                comment.post_id,
                comment.parent_id,
                comment.author_id,
                comment.author_name,
                comment.content,
                comment.is_edited,
                comment.edited_at,
                comment.created_at,
                comment.updated_at,
            ],
        )
        await self.session.aexecute(
            self._insert_by_post,
            [
                comment.post_id,
                comment.created_at,
                comment.comment_id,
                comment.parent_id,
                comment.author_id,
                comment.author_name,
                comment.content,
                comment.is_edited,
                comment.edited_at,
                comment.updated_at,
            ],
        )
        if comment.parent_id:
            await self.session.aexecute(
                self._insert_by_parent,
                [
                    comment.parent_id,
                    comment.created_at,
                    comment.comment_id,
                    comment.post_id,
                    comment.author_id,
                    comment.author_name,
                    comment.content,
                    comment.is_edited,
                    comment.edited_at,
                    comment.updated_at,
                ],
            )
        await self.session.aexecute(
            self._insert_by_author, [comment.author_id, comment.comment_id]
        )

    async def add_comment(
        self,
        post_id: str,
        author_id: str,
        author_name: str,
        content: str,
    ) -> Comment:
        """Create a top-level comment on a post.

        Raises:
            PostNotFoundError: If the post does not exist
        """
        await self._require_post(post_id)

        comment = create_comment(
            post_id=post_id,
            author_id=author_id,
            author_name=author_name,
            content=content,
        )
        await self._write(comment)

        logger.info("comment_created", comment_id=comment.comment_id, post_id=post_id)
        return comment

    async def add_reply(
        self,
        parent_comment_id: str,
        author_id: str,
        author_name: str,
        content: str,
    ) -> Comment:
        """Reply to a comment. The reply belongs to the parent's post.

        Raises:
            CommentNotFoundError: If the parent comment does not exist
        """
        parent = await self.require_comment(parent_comment_id, parent=True)

        reply = create_comment(
            post_id=parent.post_id,
            author_id=author_id,
            author_name=author_name,
            content=content,
            parent_id=parent.comment_id,
        )
        await self._write(reply)

        logger.info(
            "comment_created",
            comment_id=reply.comment_id,
            post_id=reply.post_id,
            parent_id=parent.comment_id,
        )
        return reply

    async def update(
        self,
        comment_id: str,
        requester_id: str,
        requester_role: str,
        content: str,
    ) -> Comment:
        """Replace the content of a comment and mark it as edited.

        Raises:
            CommentNotFoundError: If the comment does not exist
            CommentPermissionError: If the requester is neither author nor admin
        """
        comment = await self.require_comment(comment_id)
        if not can_modify(comment.author_id, requester_id, requester_role):
            raise CommentPermissionError(requester_id, "update")

        now = datetime.now(UTC)
        comment.content = content
        comment.is_edited = True
        comment.edited_at = now
        comment.updated_at = now

        values = [comment.content, True, now, now]
        await self.session.aexecute(self._update_by_id, [*values, comment.comment_id])
        await self.session.aexecute(
            self._update_by_post,
            [*values, comment.post_id, comment.created_at, comment.comment_id],
        )
        if comment.parent_id:
            await self.session.aexecute(
                self._update_by_parent,
                [*values, comment.parent_id, comment.created_at, comment.comment_id],
            )

        logger.info("comment_updated", comment_id=comment.comment_id)
        return comment

    async def _remove(self, comment: Comment) -> None:
        """Delete one comment from every table that holds it."""
        await self.session.aexecute(self._delete_by_id, [comment.comment_id])
        await self.session.aexecute(
            self._delete_by_post,
            [comment.post_id, comment.created_at, comment.comment_id],
        )
        if comment.parent_id:
            await self.session.aexecute(
                self._delete_by_parent,
                [comment.parent_id, comment.created_at, comment.comment_id],
            )
        await self.session.aexecute(
            self._delete_by_author, [comment.author_id, comment.comment_id]
        )

    async def delete(
        self,
        comment_id: str,
        requester_id: str,
        requester_role: str,
    ) -> int:
        """Delete a comment, and its direct replies when it is top-level.

        Replies to replies are not followed.

        Returns:
            Number of deleted comments

        Raises:
            CommentNotFoundError: If the comment does not exist
            CommentPermissionError: If the requester is neither author nor admin
        """
        comment = await self.require_comment(comment_id)
        if not can_modify(comment.author_id, requester_id, requester_role):
            raise CommentPermissionError(requester_id, "delete")

        deleted = 0
        if comment.is_top_level:
            rows = await self.session.aexecute(self._list_by_parent, [comment_id])
            for row in rows:
                await self._remove(Comment.from_row(row))
                deleted += 1
            await self.session.aexecute(self._delete_parent_partition, [comment_id])

        await self._remove(comment)
        deleted += 1

        logger.info("comment_deleted", comment_id=comment_id, deleted_count=deleted)
        return deleted

    async def delete_for_post(self, post_id: str) -> int:
        """Delete every comment of a post. Returns the number removed."""
        rows = await self.session.aexecute(self._list_by_post, [post_id])
        comments = [Comment.from_row(row) for row in rows]
        for comment in comments:
            await self.session.aexecute(self._delete_by_id, [comment.comment_id])
            await self.session.aexecute(
                self._delete_by_author, [comment.author_id, comment.comment_id]
            )
            await self.session.aexecute(
                self._delete_parent_partition, [comment.comment_id]
            )
        await self.session.aexecute(self._delete_post_partition, [post_id])

        if comments:
            logger.info(
                "post_comments_deleted", post_id=post_id, deleted_count=len(comments)
            )
        return len(comments)

    async def delete_for_author(self, author_id: str) -> int:
        """Delete every comment written by a user. Returns the number removed.

        Replies written by others under those comments are left in place.
        """
        rows = await self.session.aexecute(self._list_by_author, [author_id])
        deleted = 0
        for row in rows:
            comment = await self.get_comment(row.comment_id)
            if comment:
                await self._remove(comment)
                deleted += 1
        await self.session.aexecute(self._delete_author_partition, [author_id])
        return deleted
