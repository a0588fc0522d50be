"""Pagination utilities and models for API responses."""

from typing import Generic, TypeVar

from fastapi import Query
from pydantic import BaseModel, Field

T = TypeVar("T")

DEFAULT_LIMIT = 50
MAX_LIMIT = 100


class PaginationParams(BaseModel):
    """Query parameters for limit/offset pagination.

    Can be used as dependency in FastAPI routes:
    ```python
    @router.get("/items")
    async def list_items(pagination: PaginationParams = Depends(get_pagination)):
        stmt = select(Item).limit(pagination.limit).offset(pagination.offset)
    ```
    """

    limit: int = Field(default=DEFAULT_LIMIT, ge=1, le=MAX_LIMIT, description="Items per page (1-100)")
    offset: int = Field(default=0, ge=0, description="Number of items to skip")


def get_pagination(
    limit: int = Query(DEFAULT_LIMIT, ge=1, le=MAX_LIMIT, description="Items per page (1-100)"),
    offset: int = Query(0, ge=0, description="Number of items to skip"),
) -> PaginationParams:
    """FastAPI dependency validating ``limit``/``offset`` query parameters."""
    return PaginationParams(limit=limit, offset=offset)


class PaginatedResponse(BaseModel, Generic[T]):
    """Generic paginated response model."""

    items: list[T]
    total: int
    limit: int
    offset: int


__all__ = ["PaginatedResponse", "PaginationParams", "get_pagination"]
