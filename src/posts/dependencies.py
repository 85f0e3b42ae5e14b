"""FastAPI dependencies for posts."""

from typing import Annotated

from fastapi import Depends, Request

from .service import PostService


def get_post_service(request: Request) -> PostService:
    """Get post service from app state."""
    service = getattr(request.app.state, "post_service", None)
    if service is None:
        msg = "PostService not initialized"
        raise RuntimeError(msg)
    return service


PostServiceDep = Annotated[PostService, Depends(get_post_service)]
