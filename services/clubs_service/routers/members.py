"""Membership routes."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from libs.auth.dependencies import get_current_user
from libs.auth.models import AuthUser
from libs.auth.permissions import (
    ensure_can_leave,
    get_active_membership,
    require_community_role,
)
from libs.common.errors import AlreadyMemberError, LastAdminError
from libs.common.logging import get_logger
from libs.common.responses import ApiResponse, ListResponse
from libs.common.view_cache import invalidate_path
from libs.db.pagination import PageParams, PaginationInfo
from libs.db.repository import SoftDeleteRepository
from libs.db.session import get_async_db
from services.clubs_service.models import Community, CommunityMember, MemberRole
from services.clubs_service.schemas import MemberCreate, MemberResponse, MemberUpdate
from services.clubs_service.selectors import member_detail_options, member_filters
from services.identity_service.models import User
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

logger = get_logger(__name__)

router = APIRouter(prefix="/members", tags=["members"])


def _repo(db: AsyncSession) -> SoftDeleteRepository[CommunityMember]:
    return SoftDeleteRepository(db, CommunityMember, "Member")


@router.get("", response_model=ListResponse[MemberResponse])
async def list_members(
    community_id: Optional[uuid.UUID] = Query(None),
    user_id: Optional[uuid.UUID] = Query(None),
    role: Optional[MemberRole] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_async_db),
):
    """List active memberships, newest first."""
    params = PageParams(page=page, limit=limit)
    criteria = member_filters(community_id=community_id, user_id=user_id, role=role)
    repo = _repo(db)
    total = await repo.count_active(*criteria)
    members = await repo.list_active(
        *criteria,
        options=(selectinload(CommunityMember.user),),
        order_by=(CommunityMember.joined_at.desc(), CommunityMember.id.desc()),
        limit=params.limit,
        offset=params.offset,
    )
    return ListResponse(
        data=[MemberResponse.model_validate(m) for m in members],
        count=len(members),
        pagination=PaginationInfo.build(params, total),
    )


@router.post("", response_model=ApiResponse[MemberResponse], status_code=201)
async def add_member(
    payload: MemberCreate,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Add a user to a community (admins only)."""
    await SoftDeleteRepository(db, Community, "Community").get_active_or_404(
        payload.community_id
    )
    await require_community_role(
        db, current_user.user_id, payload.community_id, MemberRole.ADMIN
    )
    await SoftDeleteRepository(db, User, "User").get_active_or_404(payload.user_id)
    if await get_active_membership(db, payload.user_id, payload.community_id):
        raise AlreadyMemberError("User is already a member of this community")

    member = CommunityMember(**payload.model_dump())
    db.add(member)
    await db.commit()

    member = await _repo(db).reload(member.id, *member_detail_options())
    await invalidate_path(f"/api/communities/{payload.community_id}")
    return ApiResponse(data=MemberResponse.model_validate(member))


@router.get("/{member_id}", response_model=ApiResponse[MemberResponse])
async def get_member(
    member_id: uuid.UUID,
    db: AsyncSession = Depends(get_async_db),
):
    member = await _repo(db).get_active_or_404(member_id, *member_detail_options())
    return ApiResponse(data=MemberResponse.model_validate(member))


@router.patch("/{member_id}", response_model=ApiResponse[MemberResponse])
async def update_member_role(
    member_id: uuid.UUID,
    payload: MemberUpdate,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Change a member's role (admins only). Demoting the last admin is refused."""
    repo = _repo(db)
    member = await repo.get_active_or_404(member_id, *member_detail_options())
    await require_community_role(
        db, current_user.user_id, member.community_id, MemberRole.ADMIN
    )

    if member.is_admin and not payload.role.is_admin_capable:
        try:
            await ensure_can_leave(db, member)
        except LastAdminError:
            raise LastAdminError("The last admin cannot be demoted") from None

    member.role = payload.role
    await db.commit()

    member = await repo.reload(member_id, *member_detail_options())
    await invalidate_path(f"/api/communities/{member.community_id}")
    return ApiResponse(data=MemberResponse.model_validate(member))


@router.delete("/{member_id}", response_model=ApiResponse[dict])
async def remove_member(
    member_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """
    Remove a membership. Members may remove themselves (same rules as leaving);
    removing anyone else requires admin.
    """
    member = await _repo(db).get_active_or_404(member_id)
    if member.user_id == current_user.user_id:
        await ensure_can_leave(db, member)
    else:
        await require_community_role(
            db, current_user.user_id, member.community_id, MemberRole.ADMIN
        )
        if member.is_admin:
            await ensure_can_leave(db, member)

    community_id = member.community_id
    await db.delete(member)
    await db.commit()

    logger.info(
        "Member removed",
        extra={"extra_fields": {
            "member_id": str(member_id),
            "community_id": str(community_id),
            "removed_by": str(current_user.user_id),
        }},
    )
    await invalidate_path(f"/api/communities/{community_id}")
    return ApiResponse(data={"id": str(member_id)}, message="Member removed")

