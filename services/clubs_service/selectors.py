"""Reusable loader options and filter builders for clubs queries."""

import uuid
from datetime import datetime
from typing import Any, Optional, Sequence

from libs.common.datetime_utils import utc_now
from services.clubs_service.models import Community, CommunityMember, MemberRole, Reaction
from services.rounds_service.models import Round
from sqlalchemy import String, or_, type_coerce
from sqlalchemy.dialects.postgresql import ARRAY
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload, with_loader_criteria

MAX_SEARCH_LENGTH = 200


def upcoming_rounds_option(now: Optional[datetime] = None):
    """Restrict ``Community.rounds`` loads to rounds that have not ended yet."""
    now = now or utc_now()
    return with_loader_criteria(
        Round,
        or_(Round.end_time.is_(None), Round.end_time >= now),
    )


def community_card_options(now: Optional[datetime] = None) -> tuple:
    return (
        selectinload(Community.rounds),
        upcoming_rounds_option(now),
    )


def member_detail_options() -> tuple:
    return (
        selectinload(CommunityMember.user),
        selectinload(CommunityMember.community),
    )


def reaction_options() -> tuple:
    return (selectinload(Reaction.user),)


def escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def normalize_search(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()[:MAX_SEARCH_LENGTH]
    return value or None


def supports_array_ops(db: AsyncSession) -> bool:
    """Tag overlap needs native arrays (PostgreSQL)."""
    return db.get_bind().dialect.name == "postgresql"


def tags_overlap(tags: Sequence[str]) -> Any:
    return type_coerce(Community.tags, ARRAY(String)).overlap(list(tags))


def search_tokens(q: Optional[str]) -> list[str]:
    q = normalize_search(q)
    return q.split() if q else []


def search_criteria(tokens: Sequence[str], use_array_ops: bool) -> Optional[Any]:
    """Match any token against the name, and against tags where supported."""
    if not tokens:
        return None
    clauses = [
        Community.name.ilike(f"%{escape_like(token)}%", escape="\\")
        for token in tokens
    ]
    if use_array_ops:
        clauses.append(tags_overlap(tokens))
    return or_(*clauses)


def community_filters(
    *,
    is_public: Optional[bool] = None,
    region: Optional[str] = None,
    sub_region: Optional[str] = None,
    search: Optional[str] = None,
    tags: Optional[Sequence[str]] = None,
    created_after: Optional[datetime] = None,
    created_before: Optional[datetime] = None,
) -> list[Any]:
    """
    Criteria list for community queries. Unset arguments add nothing.

    Tag matching uses array overlap and therefore needs PostgreSQL.
    """
    criteria: list[Any] = []
    if is_public is not None:
        criteria.append(Community.is_public.is_(is_public))
    if region:
        criteria.append(Community.region == region)
    if sub_region:
        criteria.append(Community.sub_region == sub_region)
    search = normalize_search(search)
    if search:
        pattern = f"%{escape_like(search)}%"
        criteria.append(
            or_(
                Community.name.ilike(pattern, escape="\\"),
                Community.description.ilike(pattern, escape="\\"),
            )
        )
    if tags:
        criteria.append(tags_overlap(tags))
    if created_after:
        criteria.append(Community.created_at >= created_after)
    if created_before:
        criteria.append(Community.created_at <= created_before)
    return criteria


def member_filters(
    *,
    community_id: Optional[uuid.UUID] = None,
    user_id: Optional[uuid.UUID] = None,
    role: Optional[MemberRole] = None,
) -> list[Any]:
    criteria: list[Any] = []
    if community_id:
        criteria.append(CommunityMember.community_id == community_id)
    if user_id:
        criteria.append(CommunityMember.user_id == user_id)
    if role:
        criteria.append(CommunityMember.role == role)
    return criteria


def reaction_filters(
    *,
    member_id: Optional[uuid.UUID] = None,
    user_id: Optional[uuid.UUID] = None,
) -> list[Any]:
    criteria: list[Any] = []
    if member_id:
        criteria.append(Reaction.member_id == member_id)
    if user_id:
        criteria.append(Reaction.user_id == user_id)
    return criteria
