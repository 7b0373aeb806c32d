"""Community search (keyset paginated)."""

from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query
from libs.common.errors import ValidationError
from libs.common.responses import CursorResponse, cursor_response
from libs.db.pagination import CursorParams, paginate_cursor
from libs.db.session import get_async_db
from services.clubs_service.models import Community
from services.clubs_service.regions import is_known_region
from services.clubs_service.schemas import CommunityResponse
from services.clubs_service.selectors import (
    MAX_SEARCH_LENGTH,
    community_filters,
    search_criteria,
    search_tokens,
    supports_array_ops,
)
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/search", tags=["search"])


@router.get("", response_model=CursorResponse[CommunityResponse])
async def search_communities(
    region: str = Query(..., min_length=1, max_length=50),
    sub_region: Optional[str] = Query(None, max_length=50),
    q: Optional[str] = Query(None),
    cursor: Optional[str] = Query(None),
    limit: int = Query(10),
    direction: Literal["forward", "backward"] = Query("forward"),
    db: AsyncSession = Depends(get_async_db),
):
    """
    Search communities in a region. ``q`` is split on whitespace (after
    truncation to 200 characters) and any token may match the name or a tag.
    """
    region = region.strip()
    sub_region = (sub_region or "").strip() or None
    if not is_known_region(region, sub_region):
        raise ValidationError(f"Unknown region: {region}", code="UNKNOWN_REGION")

    params = CursorParams(cursor=cursor, limit=limit, direction=direction)
    stmt = select(Community).where(
        *community_filters(region=region, sub_region=sub_region)
    )
    matcher = search_criteria(
        search_tokens(q[:MAX_SEARCH_LENGTH] if q else None),
        use_array_ops=supports_array_ops(db),
    )
    if matcher is not None:
        stmt = stmt.where(matcher)

    page = await paginate_cursor(db, stmt, Community, params)
    return cursor_response(page, CommunityResponse)
