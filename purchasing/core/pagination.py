"""``?page=&limit=&sort=&order=`` query parameters for list endpoints."""

from typing import Literal

from fastapi import Query
from pydantic import BaseModel

from purchasing.core.exceptions import ValidationError

SORT_FIELDS = frozenset({"created_at", "order_date", "delivery_date", "total_amount", "order_number", "status"})


class PaginationParams:
    """Injected with ``Depends()``; rejects sort keys outside :data:`SORT_FIELDS`."""

    def __init__(
        self,
        page: int = Query(default=1, ge=1),
        limit: int = Query(default=20, ge=1, le=100),
        sort: str = Query(default="created_at"),
        order: Literal["asc", "desc"] = Query(default="desc"),
    ):
        if sort not in SORT_FIELDS:
            raise ValidationError(f"Cannot sort by '{sort}'")
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
