"""Reaction routes: short notes left on a member's card."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from libs.auth.dependencies import get_current_user
from libs.auth.models import AuthUser
from libs.common.errors import ForbiddenError
from libs.common.responses import ApiResponse, ListResponse
from libs.db.repository import SoftDeleteRepository
from libs.db.session import get_async_db
from services.clubs_service.models import CommunityMember, Reaction
from services.clubs_service.schemas import ReactionCreate, ReactionResponse, ReactionUpdate
from services.clubs_service.selectors import reaction_filters, reaction_options
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/reactions", tags=["reactions"])


def _repo(db: AsyncSession) -> SoftDeleteRepository[Reaction]:
    return SoftDeleteRepository(db, Reaction, "Reaction")


async def _list(db: AsyncSession, **filters) -> ListResponse[ReactionResponse]:
    reactions = await _repo(db).list_active(
        *reaction_filters(**filters),
        options=reaction_options(),
        order_by=(Reaction.created_at.desc(), Reaction.id.desc()),
    )
    data = [ReactionResponse.model_validate(r) for r in reactions]
    return ListResponse(data=data, count=len(data))


async def _get_own_reaction(
    db: AsyncSession, reaction_id: uuid.UUID, user_id: uuid.UUID
) -> Reaction:
    reaction = await _repo(db).get_active_or_404(reaction_id, *reaction_options())
    if reaction.user_id != user_id:
        raise ForbiddenError("Only the author can change this reaction")
    return reaction


@router.get("", response_model=ListResponse[ReactionResponse])
async def list_reactions(
    member_id: uuid.UUID = Query(...),
    user_id: Optional[uuid.UUID] = Query(None),
    db: AsyncSession = Depends(get_async_db),
):
    return await _list(db, member_id=member_id, user_id=user_id)


@router.get("/member/{member_id}", response_model=ListResponse[ReactionResponse])
async def list_member_reactions(
    member_id: uuid.UUID,
    db: AsyncSession = Depends(get_async_db),
):
    """Reactions left on a member's card."""
    return await _list(db, member_id=member_id)


@router.get("/user/{user_id}", response_model=ListResponse[ReactionResponse])
async def list_user_reactions(
    user_id: uuid.UUID,
    db: AsyncSession = Depends(get_async_db),
):
    """Reactions written by a user."""
    return await _list(db, user_id=user_id)


@router.post("", response_model=ApiResponse[ReactionResponse], status_code=201)
async def create_reaction(
    payload: ReactionCreate,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    await SoftDeleteRepository(db, CommunityMember, "Member").get_active_or_404(
        payload.member_id
    )
    reaction = Reaction(
        user_id=current_user.user_id,
        member_id=payload.member_id,
        text=payload.text,
    )
    db.add(reaction)
    await db.commit()

    reaction = await _repo(db).reload(reaction.id, *reaction_options())
    return ApiResponse(data=ReactionResponse.model_validate(reaction))


@router.get("/{reaction_id}", response_model=ApiResponse[ReactionResponse])
async def get_reaction(
    reaction_id: uuid.UUID,
    db: AsyncSession = Depends(get_async_db),
):
    reaction = await _repo(db).get_active_or_404(reaction_id, *reaction_options())
    return ApiResponse(data=ReactionResponse.model_validate(reaction))


@router.patch("/{reaction_id}", response_model=ApiResponse[ReactionResponse])
async def update_reaction(
    reaction_id: uuid.UUID,
    payload: ReactionUpdate,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    reaction = await _get_own_reaction(db, reaction_id, current_user.user_id)
    reaction.text = payload.text
    await db.commit()
    return ApiResponse(data=ReactionResponse.model_validate(reaction))


@router.delete("/{reaction_id}", response_model=ApiResponse[dict])
async def delete_reaction(
    reaction_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    reaction = await _get_own_reaction(db, reaction_id, current_user.user_id)
    await db.delete(reaction)
    await db.commit()
    return ApiResponse(data={"id": str(reaction_id)}, message="Reaction deleted")
