"""Response envelope shared by every route.

Successful responses are ``{"success": true, "data": ...}``; list
responses add ``count`` and paginated listings add ``pagination``.
"""

from typing import Generic, TypeVar

from pydantic import BaseModel


T = TypeVar("T")


class DataResponse(BaseModel, Generic[T]):
    success: bool = True
    data: T


class ListResponse(BaseModel, Generic[T]):
    success: bool = True
    count: int
    data: list[T]


class PageRef(BaseModel):
    page: int
    limit: int


class Pagination(BaseModel):
    next: PageRef | None = None
    prev: PageRef | None = None


class PaginatedResponse(BaseModel, Generic[T]):
    success: bool = True
    count: int
    total: int
    pagination: Pagination
    data: list[T]


class EmptyData(BaseModel):
    """Body of delete responses: ``{"success": true, "data": {}}``."""


def build_pagination(page: int, limit: int, total: int) -> Pagination:
    """Offset pagination links for a page of ``limit`` items out of ``total``."""
    start = (page - 1) * limit
    pagination = Pagination()
    if start + limit < total:
        pagination.next = PageRef(page=page + 1, limit=limit)
    if start > 0:
        pagination.prev = PageRef(page=page - 1, limit=limit)
    return pagination
