"""Pagination helpers for list endpoints."""


import math

from fastapi import Query
from pydantic import BaseModel


class PaginationParams:
    """FastAPI dependency for `?page=1&limit=20&sort=created_at&order=desc`.

    Unknown sort fields are ignored by the repositories, so list endpoints
    fall back to their natural order (the ledger is always newest first).
    """

    def __init__(
        self,
        page: int = Query(default=1, ge=1, description="Page number (1-based)"),
        limit: int = Query(default=20, ge=1, le=200, description="Items per page"),
        sort: str = Query(default="created_at", description="Sort field (snake_case column)"),
        order: str = Query(default="desc", pattern="^(asc|desc)$", description="Sort order"),
    ):
        self.page = page
        self.limit = limit
        self.sort = sort
        self.order = order

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


class PageMeta(BaseModel):
    total: int
    page: int
    limit: int
    pages: int

    model_config = {"populate_by_name": True}

    @classmethod
    def build(cls, total: int, page: int, limit: int) -> "PageMeta":
        return cls(
            total=total,
            page=page,
            limit=limit,
            pages=math.ceil(total / limit) if limit else 1,
        )
