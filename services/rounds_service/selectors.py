"""Reusable loader options and filter builders for rounds and attendance."""

import uuid
from datetime import datetime
from typing import Any, Optional

from services.rounds_service.models import Attendance, AttendanceType, Round
from sqlalchemy import or_, select
from sqlalchemy.orm import selectinload

def attendance_detail_options() -> tuple:
    return (
        selectinload(Attendance.user),
        selectinload(Attendance.round).selectinload(Round.community),
    )


def upcoming_rounds_criteria(now: datetime) -> Any:
    """Rounds that have not ended at ``now`` (open-ended rounds included)."""
    return or_(Round.end_time.is_(None), Round.end_time >= now)


def attendance_filters(
    *,
    user_id: Optional[uuid.UUID] = None,
    round_id: Optional[uuid.UUID] = None,
    attendance_type: Optional[AttendanceType] = None,
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
    community_id: Optional[uuid.UUID] = None,
) -> list[Any]:
    criteria: list[Any] = []
    if user_id:
        criteria.append(Attendance.user_id == user_id)
    if round_id:
        criteria.append(Attendance.round_id == round_id)
    if attendance_type:
        criteria.append(Attendance.attendance_type == attendance_type)
    if date_from:
        criteria.append(Attendance.attended_at >= date_from)
    if date_to:
        criteria.append(Attendance.attended_at <= date_to)
    if community_id:
        criteria.append(
            Attendance.round_id.in_(
                select(Round.id).where(Round.community_id == community_id)
            )
        )
    return criteria
