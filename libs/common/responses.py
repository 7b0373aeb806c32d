"""Response envelopes shared by every router.

    {"success": true, "data": ...}
    {"success": true, "data": [...], "count": n, "pagination": {...}}
    {"success": false, "error": "...", "code": "..."}
"""

from typing import Any, Generic, Optional, TypeVar

from pydantic import BaseModel

from libs.db.pagination import CursorPage, PaginationInfo

T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    success: bool = True
    data: T
    message: Optional[str] = None


class ListResponse(BaseModel, Generic[T]):
    success: bool = True
    data: list[T]
    count: int
    pagination: Optional[PaginationInfo] = None


class CursorResponse(BaseModel, Generic[T]):
    success: bool = True
    data: list[T]
    next_cursor: Optional[str] = None
    prev_cursor: Optional[str] = None
    has_more: bool = False
    has_previous: bool = False


class ErrorResponse(BaseModel):
    success: bool = False
    error: str
    code: str
    details: Optional[Any] = None


def cursor_response(page: CursorPage, schema: type[BaseModel]) -> dict:
    """Serialize a CursorPage of ORM rows through ``schema``."""
    return {
        "success": True,
        "data": [schema.model_validate(item) for item in page.data],
        "next_cursor": page.next_cursor,
        "prev_cursor": page.prev_cursor,
        "has_more": page.has_more,
        "has_previous": page.has_previous,
    }


def error_body(message: str, code: str, details: Any = None) -> dict:
    body = {"success": False, "error": message, "code": code}
    if details is not None:
        body["details"] = details
    return body
