"""FastAPI dependencies for comments."""

from typing import Annotated

from fastapi import Depends, Request

from .service import CommentService


def get_comment_service(request: Request) -> CommentService:
    """Get comment service from app state."""
    service = getattr(request.app.state, "comment_service", None)
    if service is None:
        msg = "CommentService not initialized"
        raise RuntimeError(msg)
    return service


CommentServiceDep = Annotated[CommentService, Depends(get_comment_service)]
