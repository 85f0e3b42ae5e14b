"""FastAPI dependencies for reactions."""

from typing import Annotated

from fastapi import Depends, Request

from .service import ReactionService


def get_reaction_service(request: Request) -> ReactionService:
    """Get reaction service from app state."""
    service = getattr(request.app.state, "reaction_service", None)
    if service is None:
        msg = "ReactionService not initialized"
        raise RuntimeError(msg)
    return service


ReactionServiceDep = Annotated[ReactionService, Depends(get_reaction_service)]
