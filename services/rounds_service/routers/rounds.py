"""Round routes."""

import uuid
from typing import Optional

from fastapi import APIRouter, Body, Depends, Query
from libs.auth.dependencies import get_current_user
from libs.auth.models import AuthUser
from libs.auth.permissions import require_community_role
from libs.common.datetime_utils import ensure_utc
from libs.common.errors import ValidationError
from libs.common.logging import get_logger
from libs.common.responses import ApiResponse, ListResponse
from libs.common.view_cache import invalidate_path
from libs.db.repository import SoftDeleteRepository
from libs.db.session import get_async_db
from services.clubs_service.models import Community, MemberRole
from services.rounds_service.models import Attendance, Round
from services.rounds_service.operations import next_round_number, record_attendance
from services.rounds_service.schemas import (
    AttendanceMark,
    AttendanceResponse,
    RoundCreate,
    RoundResponse,
    RoundUpdate,
)
from services.rounds_service.selectors import attendance_detail_options
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)

router = APIRouter(prefix="/rounds", tags=["rounds"])


def _repo(db: AsyncSession) -> SoftDeleteRepository[Round]:
    return SoftDeleteRepository(db, Round, "Round")


@router.get("", response_model=ListResponse[RoundResponse])
async def list_rounds(
    community_id: Optional[uuid.UUID] = Query(None),
    db: AsyncSession = Depends(get_async_db),
):
    """List rounds, ordered by round number."""
    criteria = [Round.community_id == community_id] if community_id else []
    rounds = await _repo(db).list_active(
        *criteria,
        order_by=(Round.round_number.asc(), Round.created_at.asc()),
    )
    data = [RoundResponse.model_validate(r) for r in rounds]
    return ListResponse(data=data, count=len(data))


@router.post("", response_model=ApiResponse[RoundResponse], status_code=201)
async def create_round(
    payload: RoundCreate,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Schedule a round (community admins only)."""
    await SoftDeleteRepository(db, Community, "Community").get_active_or_404(
        payload.community_id
    )
    await require_community_role(
        db, current_user.user_id, payload.community_id, MemberRole.ADMIN
    )

    data = payload.model_dump()
    if data["round_number"] is None:
        data["round_number"] = await next_round_number(db, payload.community_id)

    round_ = Round(**data)
    db.add(round_)
    await db.commit()

    await invalidate_path(f"/api/communities/{payload.community_id}")
    return ApiResponse(data=RoundResponse.model_validate(round_))


@router.get("/{round_id}", response_model=ApiResponse[RoundResponse])
async def get_round(
    round_id: uuid.UUID,
    db: AsyncSession = Depends(get_async_db),
):
    round_ = await _repo(db).get_active_or_404(round_id)
    return ApiResponse(data=RoundResponse.model_validate(round_))


@router.patch("/{round_id}", response_model=ApiResponse[RoundResponse])
async def update_round(
    round_id: uuid.UUID,
    payload: RoundUpdate,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    round_ = await _repo(db).get_active_or_404(round_id)
    await require_community_role(
        db, current_user.user_id, round_.community_id, MemberRole.ADMIN
    )

    update_data = payload.model_dump(exclude_unset=True)
    start = ensure_utc(update_data.get("start_time", round_.start_time))
    end = ensure_utc(update_data.get("end_time", round_.end_time))
    if start is not None and end is not None and start > end:
        raise ValidationError("start_time must not be after end_time")

    for field, value in update_data.items():
        setattr(round_, field, value)
    await db.commit()

    await invalidate_path(f"/api/communities/{round_.community_id}")
    return ApiResponse(data=RoundResponse.model_validate(round_))


@router.delete("/{round_id}", response_model=ApiResponse[dict])
async def delete_round(
    round_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    round_ = await _repo(db).get_active_or_404(round_id)
    await require_community_role(
        db, current_user.user_id, round_.community_id, MemberRole.ADMIN
    )
    community_id = round_.community_id
    await db.delete(round_)
    removed = await SoftDeleteRepository(db, Attendance, "Attendance").soft_delete_where(
        Attendance.round_id == round_id
    )
    await db.commit()

    await invalidate_path(f"/api/communities/{community_id}")
    logger.info(
        "Round deleted",
        extra={"extra_fields": {"round_id": str(round_id), "attendance_removed": removed}},
    )
    return ApiResponse(data={"id": str(round_id)}, message="Round deleted")


@router.post(
    "/{round_id}/attend",
    response_model=ApiResponse[AttendanceResponse],
    status_code=201,
)
async def attend_round(
    round_id: uuid.UUID,
    payload: Optional[AttendanceMark] = Body(None),
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Mark the caller present. Members only, once per round, inside the round window."""
    round_ = await _repo(db).get_active_or_404(round_id)
    await require_community_role(db, current_user.user_id, round_.community_id)

    payload = payload or AttendanceMark()
    attendance = await record_attendance(
        db, round_, current_user.user_id, payload.attendance_type
    )
    await db.commit()

    attendance = await SoftDeleteRepository(db, Attendance, "Attendance").reload(
        attendance.id, *attendance_detail_options()
    )
    return ApiResponse(data=AttendanceResponse.model_validate(attendance))
