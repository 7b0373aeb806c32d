"""Pagination helpers: keyset (cursor) pages and classic offset pages.

Cursor format is URL-safe base64 of ``{"v": <sort value>, "id": <row id>}``.
Ordering is always (sort field, id) so pages are total and deterministic
even when many rows share a timestamp.
"""

import base64
import binascii
import json
import math
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Generic, Literal, Optional, Sequence, TypeVar

from pydantic import BaseModel, Field, field_validator
from sqlalchemy import DateTime, Select, and_, or_
from sqlalchemy.ext.asyncio import AsyncSession

from libs.common.datetime_utils import ensure_utc, parse_iso_datetime
from libs.common.errors import ValidationError

MIN_LIMIT = 1
MAX_LIMIT = 50
DEFAULT_LIMIT = 10

T = TypeVar("T")

Direction = Literal["forward", "backward"]


class InvalidCursorError(ValidationError):
    code = "INVALID_CURSOR"
    message = "Invalid pagination cursor"


def clamp_limit(limit: Optional[int]) -> int:
    if limit is None:
        return DEFAULT_LIMIT
    return max(MIN_LIMIT, min(MAX_LIMIT, int(limit)))


class CursorParams(BaseModel):
    cursor: Optional[str] = None
    limit: int = DEFAULT_LIMIT
    direction: Direction = "forward"

    @field_validator("limit", mode="before")
    @classmethod
    def _clamp(cls, v):
        return clamp_limit(v)


@dataclass
class DecodedCursor:
    value: Any
    entity_id: Optional[uuid.UUID] = None


@dataclass
class CursorPage(Generic[T]):
    data: list[T] = field(default_factory=list)
    next_cursor: Optional[str] = None
    prev_cursor: Optional[str] = None
    has_more: bool = False
    has_previous: bool = False


def encode_cursor(value: Any, entity_id: Any) -> str:
    if isinstance(value, datetime):
        value = ensure_utc(value).isoformat()
    payload = {"v": value, "id": str(entity_id)}
    raw = json.dumps(payload, separators=(",", ":")).encode("utf-8")
    return base64.urlsafe_b64encode(raw).decode("ascii")


def cursor_for(item: Any, sort_field: str = "created_at") -> str:
    """Cursor pointing at ``item`` (any object exposing ``sort_field`` and ``id``)."""
    return encode_cursor(getattr(item, sort_field), item.id)


def decode_cursor(cursor: str) -> DecodedCursor:
    """
    Decode a cursor produced by :func:`encode_cursor`.

    A bare ISO-8601 timestamp is also accepted and yields a cursor without a
    tie-break id. Anything else raises ``InvalidCursorError``.
    """
    try:
        return DecodedCursor(value=parse_iso_datetime(cursor))
    except ValueError:
        pass

    try:
        padded = cursor + "=" * (-len(cursor) % 4)
        raw = base64.urlsafe_b64decode(padded.encode("ascii"))
        payload = json.loads(raw.decode("utf-8"))
    except (ValueError, UnicodeError, binascii.Error) as exc:
        raise InvalidCursorError() from exc

    if not isinstance(payload, dict) or "v" not in payload or not payload.get("id"):
        raise InvalidCursorError()
    try:
        entity_id = uuid.UUID(str(payload["id"]))
    except ValueError as exc:
        raise InvalidCursorError() from exc
    return DecodedCursor(value=payload["v"], entity_id=entity_id)


def _coerce_sort_value(column, value: Any) -> Any:
    if isinstance(column.type, DateTime) and not isinstance(value, datetime):
        try:
            return parse_iso_datetime(str(value))
        except ValueError as exc:
            raise InvalidCursorError() from exc
    return value


def apply_cursor(
    stmt: Select,
    model: Any,
    params: CursorParams,
    sort_field: str = "created_at",
) -> Select:
    """
    Add keyset filtering, ordering and the ``limit + 1`` probe to ``stmt``.

    Forward pages walk ascending; backward pages walk descending from the
    cursor and are flipped back by :func:`process_cursor_result`.
    """
    sort_col = getattr(model, sort_field)
    id_col = model.id
    forward = params.direction == "forward"

    if params.cursor:
        decoded = decode_cursor(params.cursor)
        value = _coerce_sort_value(sort_col, decoded.value)
        if decoded.entity_id is None:
            stmt = stmt.where(sort_col > value if forward else sort_col < value)
        elif forward:
            stmt = stmt.where(
                or_(
                    sort_col > value,
                    and_(sort_col == value, id_col > decoded.entity_id),
                )
            )
        else:
            stmt = stmt.where(
                or_(
                    sort_col < value,
                    and_(sort_col == value, id_col < decoded.entity_id),
                )
            )

    if forward:
        stmt = stmt.order_by(sort_col.asc(), id_col.asc())
    else:
        stmt = stmt.order_by(sort_col.desc(), id_col.desc())
    return stmt.limit(params.limit + 1)


def process_cursor_result(
    rows: Sequence[T],
    params: CursorParams,
    sort_field: str = "created_at",
) -> CursorPage[T]:
    items = list(rows)
    has_more = len(items) > params.limit
    if has_more:
        items = items[: params.limit]

    forward = params.direction == "forward"
    if not forward:
        items.reverse()

    next_cursor = None
    prev_cursor = None
    if forward and has_more and items:
        next_cursor = cursor_for(items[-1], sort_field)
    if not forward and has_more and items:
        prev_cursor = cursor_for(items[0], sort_field)

    return CursorPage(
        data=items,
        next_cursor=next_cursor,
        prev_cursor=prev_cursor,
        has_more=has_more if forward else False,
        has_previous=has_more if not forward else False,
    )


async def paginate_cursor(
    db: AsyncSession,
    stmt: Select,
    model: Any,
    params: CursorParams,
    sort_field: str = "created_at",
) -> CursorPage:
    result = await db.execute(apply_cursor(stmt, model, params, sort_field))
    return process_cursor_result(result.scalars().unique().all(), params, sort_field)


class PageParams(BaseModel):
    page: int = Field(1, ge=1)
    limit: int = Field(20, ge=1, le=100)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


class PaginationInfo(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int

    @classmethod
    def build(cls, params: PageParams, total: int) -> "PaginationInfo":
        return cls(
            page=params.page,
            limit=params.limit,
            total=total,
            total_pages=math.ceil(total / params.limit) if total else 0,
        )
