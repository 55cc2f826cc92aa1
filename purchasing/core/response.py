"""``{"data": ...}`` and ``{"data": [...], "meta": ...}`` envelopes used as response_model."""

from typing import Generic, TypeVar

from purchasing.core.pagination import PageMeta
from purchasing.schemas.common import CamelModel

T = TypeVar("T")


class DataResponse(CamelModel, Generic[T]):
    data: T


class ListResponse(CamelModel, Generic[T]):
    data: list[T]
    meta: PageMeta


def paginated(items: list, total: int, page: int, limit: int) -> dict:
    pages = -(-total // limit) if limit else 1
    return {"data": items, "meta": PageMeta(total=total, page=page, limit=limit, pages=pages)}
