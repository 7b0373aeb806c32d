"""Attendance routes."""

import uuid
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from libs.auth.dependencies import get_current_user
from libs.auth.models import AuthUser
from libs.auth.permissions import require_community_role, require_owner_or_role
from libs.common.errors import ForbiddenError, NotFoundError
from libs.common.responses import ApiResponse, ListResponse
from libs.db.pagination import PageParams, PaginationInfo
from libs.db.repository import SoftDeleteRepository
from libs.db.session import get_async_db
from services.clubs_service.models import MemberRole
from services.rounds_service.models import Attendance, AttendanceType, Round
from services.rounds_service.operations import record_attendance
from services.rounds_service.schemas import (
    AttendanceCreate,
    AttendanceResponse,
    AttendanceUpdate,
)
from services.rounds_service.selectors import attendance_detail_options, attendance_filters
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/attendance", tags=["attendance"])


def _repo(db: AsyncSession) -> SoftDeleteRepository[Attendance]:
    return SoftDeleteRepository(db, Attendance, "Attendance")


async def _list(db: AsyncSession, *criteria) -> list[AttendanceResponse]:
    rows = await _repo(db).list_active(
        *criteria,
        options=attendance_detail_options(),
        order_by=(Attendance.attended_at.desc(), Attendance.id.desc()),
    )
    return [AttendanceResponse.model_validate(a) for a in rows]


async def _get_editable(
    db: AsyncSession, attendance_id: uuid.UUID, user_id: uuid.UUID
) -> Attendance:
    """Attendee or community admin; 404 once the round itself is gone."""
    attendance = await _repo(db).get_active_or_404(
        attendance_id, *attendance_detail_options()
    )
    if attendance.round is None:
        raise NotFoundError.for_resource("Round")
    await require_owner_or_role(
        db,
        user_id,
        attendance.user_id,
        attendance.round.community_id,
        MemberRole.ADMIN,
    )
    return attendance


@router.get("", response_model=ListResponse[AttendanceResponse])
async def list_attendance(
    user_id: Optional[uuid.UUID] = Query(None),
    round_id: Optional[uuid.UUID] = Query(None),
    community_id: Optional[uuid.UUID] = Query(None),
    attendance_type: Optional[AttendanceType] = Query(None),
    date_from: Optional[datetime] = Query(None),
    date_to: Optional[datetime] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_async_db),
):
    params = PageParams(page=page, limit=limit)
    criteria = attendance_filters(
        user_id=user_id,
        round_id=round_id,
        attendance_type=attendance_type,
        date_from=date_from,
        date_to=date_to,
        community_id=community_id,
    )
    repo = _repo(db)
    total = await repo.count_active(*criteria)
    rows = await repo.list_active(
        *criteria,
        options=attendance_detail_options(),
        order_by=(Attendance.attended_at.desc(), Attendance.id.desc()),
        limit=params.limit,
        offset=params.offset,
    )
    return ListResponse(
        data=[AttendanceResponse.model_validate(a) for a in rows],
        count=len(rows),
        pagination=PaginationInfo.build(params, total),
    )


@router.post("", response_model=ApiResponse[AttendanceResponse], status_code=201)
async def create_attendance(
    payload: AttendanceCreate,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """
    Record attendance. Members record their own; admins may record any
    member's. Same window and once-per-round rules either way.
    """
    round_ = await SoftDeleteRepository(db, Round, "Round").get_active_or_404(
        payload.round_id
    )
    target_user_id = payload.user_id or current_user.user_id
    if target_user_id == current_user.user_id:
        await require_community_role(db, current_user.user_id, round_.community_id)
    else:
        await require_community_role(
            db, current_user.user_id, round_.community_id, MemberRole.ADMIN
        )
        await require_community_role(db, target_user_id, round_.community_id)

    attendance = await record_attendance(
        db, round_, target_user_id, payload.attendance_type
    )
    await db.commit()

    attendance = await _repo(db).reload(attendance.id, *attendance_detail_options())
    return ApiResponse(data=AttendanceResponse.model_validate(attendance))


@router.get("/round/{round_id}", response_model=ListResponse[AttendanceResponse])
async def list_round_attendance(
    round_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Attendance for one round; visible to members of its community."""
    round_ = await SoftDeleteRepository(db, Round, "Round").get_active_or_404(round_id)
    await require_community_role(db, current_user.user_id, round_.community_id)

    data = await _list(db, Attendance.round_id == round_id)
    return ListResponse(data=data, count=len(data))


@router.get("/user/{user_id}", response_model=ListResponse[AttendanceResponse])
async def list_user_attendance(
    user_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """A user's own attendance history."""
    if user_id != current_user.user_id:
        raise ForbiddenError("You can only view your own attendance")

    data = await _list(db, Attendance.user_id == user_id)
    return ListResponse(data=data, count=len(data))


@router.get("/{attendance_id}", response_model=ApiResponse[AttendanceResponse])
async def get_attendance(
    attendance_id: uuid.UUID,
    db: AsyncSession = Depends(get_async_db),
):
    attendance = await _repo(db).get_active_or_404(
        attendance_id, *attendance_detail_options()
    )
    return ApiResponse(data=AttendanceResponse.model_validate(attendance))


@router.patch("/{attendance_id}", response_model=ApiResponse[AttendanceResponse])
async def update_attendance(
    attendance_id: uuid.UUID,
    payload: AttendanceUpdate,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    attendance = await _get_editable(db, attendance_id, current_user.user_id)

    attendance.attendance_type = payload.attendance_type
    await db.commit()
    return ApiResponse(data=AttendanceResponse.model_validate(attendance))


@router.delete("/{attendance_id}", response_model=ApiResponse[dict])
async def delete_attendance(
    attendance_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    attendance = await _get_editable(db, attendance_id, current_user.user_id)

    await db.delete(attendance)
    await db.commit()
    return ApiResponse(data={"id": str(attendance_id)}, message="Attendance deleted")
