"""Attendance rules shared by the rounds and attendance routers."""

import uuid
from datetime import datetime
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.common.errors import DuplicateAttendanceError, ValidationError
from libs.common.logging import get_logger
from services.rounds_service.models import Attendance, AttendanceType, Round
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)


async def find_attendance(
    db: AsyncSession, round_id: uuid.UUID, user_id: uuid.UUID
) -> Optional[Attendance]:
    result = await db.execute(
        select(Attendance).where(
            Attendance.round_id == round_id, Attendance.user_id == user_id
        )
    )
    return result.scalars().first()


async def record_attendance(
    db: AsyncSession,
    round_: Round,
    user_id: uuid.UUID,
    attendance_type: AttendanceType = AttendanceType.PRESENT,
    now: Optional[datetime] = None,
) -> Attendance:
    """
    Create the attendance row for (round, user).

    Raises DuplicateAttendanceError when an active row exists and
    ValidationError when ``now`` is outside the round's [start, end] window.
    The caller commits.
    """
    if await find_attendance(db, round_.id, user_id) is not None:
        raise DuplicateAttendanceError()

    now = now or utc_now()
    if not round_.is_open_at(now):
        raise ValidationError(
            "Attendance can only be recorded while the round is in progress",
            code="ATTENDANCE_WINDOW_CLOSED",
        )

    attendance = Attendance(
        round_id=round_.id,
        user_id=user_id,
        attendance_type=attendance_type,
        attended_at=now,
    )
    db.add(attendance)
    await db.flush()
    logger.info(
        "Attendance recorded",
        extra={"extra_fields": {"round_id": str(round_.id), "user_id": str(user_id)}},
    )
    return attendance


async def next_round_number(db: AsyncSession, community_id: uuid.UUID) -> int:
    result = await db.execute(
        select(func.max(Round.round_number)).where(Round.community_id == community_id)
    )
    return (result.scalar_one_or_none() or 0) + 1
