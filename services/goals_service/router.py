"""Study goal routes. Goals belong to their owner; community goals need membership."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from libs.auth.dependencies import get_current_user
from libs.auth.models import AuthUser
from libs.auth.permissions import require_community_role
from libs.common.datetime_utils import ensure_utc
from libs.common.errors import ForbiddenError, ValidationError
from libs.common.logging import get_logger
from libs.common.responses import ApiResponse, ListResponse
from libs.db.pagination import PageParams, PaginationInfo
from libs.db.repository import SoftDeleteRepository
from libs.db.session import get_async_db
from services.goals_service.models import StudyGoal
from services.goals_service.schemas import GoalCreate, GoalResponse, GoalUpdate
from services.goals_service.selectors import (
    goal_detail_options,
    goal_filters,
    goal_list_options,
)
from services.rounds_service.models import Round
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)

router = APIRouter(prefix="/goals", tags=["goals"])


def _repo(db: AsyncSession) -> SoftDeleteRepository[StudyGoal]:
    return SoftDeleteRepository(db, StudyGoal, "Goal")


async def _get_own_goal(
    db: AsyncSession, goal_id: uuid.UUID, user_id: uuid.UUID
) -> StudyGoal:
    goal = await _repo(db).get_active_or_404(goal_id, *goal_list_options())
    if goal.owner_id != user_id:
        raise ForbiddenError("Only the owner can change this goal")
    return goal


@router.get("", response_model=ListResponse[GoalResponse])
async def list_goals(
    community_id: Optional[uuid.UUID] = Query(None),
    round_id: Optional[uuid.UUID] = Query(None),
    owner_id: Optional[uuid.UUID] = Query(None),
    is_team: Optional[bool] = Query(None),
    is_complete: Optional[bool] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_async_db),
):
    params = PageParams(page=page, limit=limit)
    criteria = goal_filters(
        community_id=community_id,
        round_id=round_id,
        owner_id=owner_id,
        is_team=is_team,
        is_complete=is_complete,
    )
    repo = _repo(db)
    total = await repo.count_active(*criteria)
    goals = await repo.list_active(
        *criteria,
        options=goal_list_options(),
        order_by=(StudyGoal.created_at.desc(), StudyGoal.id.desc()),
        limit=params.limit,
        offset=params.offset,
    )
    return ListResponse(
        data=[GoalResponse.model_validate(g) for g in goals],
        count=len(goals),
        pagination=PaginationInfo.build(params, total),
    )


@router.post("", response_model=ApiResponse[GoalResponse], status_code=201)
async def create_goal(
    payload: GoalCreate,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    community_id = payload.community_id
    if payload.round_id:
        round_ = await SoftDeleteRepository(db, Round, "Round").get_active_or_404(
            payload.round_id
        )
        if community_id and community_id != round_.community_id:
            raise ValidationError("round_id does not belong to community_id")
        community_id = round_.community_id

    if community_id:
        await require_community_role(db, current_user.user_id, community_id)

    goal = StudyGoal(
        **payload.model_dump(exclude={"community_id"}),
        community_id=community_id,
        owner_id=current_user.user_id,
    )
    db.add(goal)
    await db.commit()

    logger.info(
        "Goal created",
        extra={"extra_fields": {"goal_id": str(goal.id), "owner_id": str(goal.owner_id)}},
    )
    goal = await _repo(db).reload(goal.id, *goal_list_options())
    return ApiResponse(data=GoalResponse.model_validate(goal))


@router.get("/{goal_id}", response_model=ApiResponse[GoalResponse])
async def get_goal(
    goal_id: uuid.UUID,
    db: AsyncSession = Depends(get_async_db),
):
    goal = await _repo(db).get_active_or_404(goal_id, *goal_detail_options())
    return ApiResponse(data=GoalResponse.model_validate(goal))


@router.patch("/{goal_id}", response_model=ApiResponse[GoalResponse])
async def update_goal(
    goal_id: uuid.UUID,
    payload: GoalUpdate,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    goal = await _get_own_goal(db, goal_id, current_user.user_id)

    update_data = payload.model_dump(exclude_unset=True)
    start = ensure_utc(update_data.get("start_date", goal.start_date))
    end = ensure_utc(update_data.get("end_date", goal.end_date))
    if start is not None and end is not None and start > end:
        raise ValidationError("start_date must not be after end_date")

    for field, value in update_data.items():
        setattr(goal, field, value)
    await db.commit()
    return ApiResponse(data=GoalResponse.model_validate(goal))


@router.patch("/{goal_id}/toggle", response_model=ApiResponse[GoalResponse])
async def toggle_goal(
    goal_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Flip the goal's completion flag."""
    goal = await _get_own_goal(db, goal_id, current_user.user_id)
    goal.is_complete = not goal.is_complete
    await db.commit()
    return ApiResponse(data=GoalResponse.model_validate(goal))


@router.delete("/{goal_id}", response_model=ApiResponse[dict])
async def delete_goal(
    goal_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    goal = await _get_own_goal(db, goal_id, current_user.user_id)
    await db.delete(goal)
    await db.commit()
    return ApiResponse(data={"id": str(goal_id)}, message="Goal deleted")
