"""Reusable loader options and filter builders for study goals."""

import uuid
from typing import Any, Optional

from services.goals_service.models import StudyGoal
from sqlalchemy.orm import selectinload


def goal_list_options() -> tuple:
    return (selectinload(StudyGoal.owner),)


def goal_detail_options() -> tuple:
    return (
        selectinload(StudyGoal.owner),
        selectinload(StudyGoal.community),
        selectinload(StudyGoal.round),
    )


def goal_filters(
    *,
    community_id: Optional[uuid.UUID] = None,
    round_id: Optional[uuid.UUID] = None,
    owner_id: Optional[uuid.UUID] = None,
    is_team: Optional[bool] = None,
    is_complete: Optional[bool] = None,
) -> list[Any]:
    criteria: list[Any] = []
    if community_id:
        criteria.append(StudyGoal.community_id == community_id)
    if round_id:
        criteria.append(StudyGoal.round_id == round_id)
    if owner_id:
        criteria.append(StudyGoal.owner_id == owner_id)
    if is_team is not None:
        criteria.append(StudyGoal.is_team.is_(is_team))
    if is_complete is not None:
        criteria.append(StudyGoal.is_complete.is_(is_complete))
    return criteria
