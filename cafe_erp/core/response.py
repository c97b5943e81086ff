"""Standardized JSON response envelope helpers.

Every endpoint answers `{ success, data, error }`; errors are produced by the
handlers in :mod:`cafe_erp.core.exceptions`.
"""


from typing import Any, Generic, TypeVar

from pydantic import BaseModel
from pydantic.alias_generators import to_camel

from cafe_erp.core.pagination import PageMeta

T = TypeVar("T")


class ErrorDetail(BaseModel):
    code: str
    message: str


class DataResponse(BaseModel, Generic[T]):
    """Single-item response envelope: `{ success: true, data: {...} }`"""

    success: bool = True
    data: T
    error: ErrorDetail | None = None
    message: str | None = None

    model_config = {
        "populate_by_name": True,
        "alias_generator": to_camel,
    }


class ListResponse(BaseModel, Generic[T]):
    """Paginated list response envelope: `{ success: true, data: [...], meta: {...} }`"""

    success: bool = True
    data: list[T]
    meta: PageMeta
    error: ErrorDetail | None = None

    model_config = {
        "populate_by_name": True,
        "alias_generator": to_camel,
    }


def ok(data: Any, message: str | None = None) -> dict:
    """Build a single-item response dict for use with DataResponse."""
    body: dict = {"success": True, "data": data}
    if message:
        body["message"] = message
    return body


def paginated(items: list, total: int, page: int, limit: int) -> dict:
    """Build a paginated response dict for use with ListResponse."""
    return {
        "success": True,
        "data": items,
        "meta": PageMeta.build(total, page, limit).model_dump(),
    }
