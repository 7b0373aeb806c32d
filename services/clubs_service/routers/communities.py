"""Community routes: listing, detail, lifecycle, membership and cover image."""

import uuid
from datetime import datetime
from typing import Literal, Optional

from fastapi import APIRouter, Depends, File, Query, Request, UploadFile
from libs.auth.dependencies import get_current_user, get_optional_user
from libs.auth.models import AuthUser
from libs.auth.permissions import (
    ensure_can_leave,
    get_active_membership,
    require_community_role,
)
from libs.common.errors import AlreadyMemberError, ConflictError, NotFoundError
from libs.common.logging import get_logger
from libs.common.rate_limit import UPLOAD_RATE, limiter
from libs.common.responses import ApiResponse, CursorResponse, ListResponse, cursor_response
from libs.common.storage import StorageService, get_storage_service
from libs.common.view_cache import cache_view, get_cached_view, invalidate_path
from libs.db.pagination import CursorParams, PageParams, PaginationInfo, paginate_cursor
from libs.db.repository import SoftDeleteRepository
from libs.db.session import get_async_db
from services.clubs_service.models import Community, CommunityMember, MemberRole
from services.clubs_service.schemas import (
    CommunityCardResponse,
    CommunityCreate,
    CommunityDetailResponse,
    CommunityResponse,
    CommunityUpdate,
    ImageUploadResponse,
    MyCommunityResponse,
)
from services.clubs_service.selectors import (
    community_card_options,
    community_filters,
    upcoming_rounds_option,
)
from services.notifications_service.models import Notification
from services.notifications_service.selectors import notification_detail_options
from services.notifications_service.schemas import NotificationResponse
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

logger = get_logger(__name__)

router = APIRouter(prefix="/communities", tags=["communities"])
user_communities_router = APIRouter(prefix="/user", tags=["user"])

RECOMMENDED_PATH = "/api/communities/recommended"


def community_path(community_id: uuid.UUID) -> str:
    return f"/api/communities/{community_id}"


async def invalidate_community_views(community_id: uuid.UUID) -> None:
    await invalidate_path(community_path(community_id))
    await invalidate_path(RECOMMENDED_PATH)


async def _ensure_unique_name(
    db: AsyncSession, name: str, exclude_id: Optional[uuid.UUID] = None
) -> None:
    query = select(func.count()).select_from(Community).where(Community.name == name)
    if exclude_id is not None:
        query = query.where(Community.id != exclude_id)
    if (await db.execute(query)).scalar_one() > 0:
        raise ConflictError(
            "A community with this name already exists", code="DUPLICATE_NAME"
        )


# ============================================================================
# LISTING
# ============================================================================


@router.get("", response_model=ListResponse[CommunityResponse])
async def list_communities(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    is_public: Optional[bool] = Query(None),
    search: Optional[str] = Query(None, max_length=200),
    created_after: Optional[datetime] = Query(None),
    created_before: Optional[datetime] = Query(None),
    db: AsyncSession = Depends(get_async_db),
):
    """List communities, newest first, with offset pagination."""
    params = PageParams(page=page, limit=limit)
    criteria = community_filters(
        is_public=is_public,
        search=search,
        created_after=created_after,
        created_before=created_before,
    )
    repo = SoftDeleteRepository(db, Community, "Community")
    total = await repo.count_active(*criteria)
    communities = await repo.list_active(
        *criteria,
        order_by=(Community.created_at.desc(), Community.id.desc()),
        limit=params.limit,
        offset=params.offset,
    )
    return ListResponse(
        data=[CommunityResponse.model_validate(c) for c in communities],
        count=len(communities),
        pagination=PaginationInfo.build(params, total),
    )


@router.get("/cursor", response_model=CursorResponse[CommunityResponse])
async def list_communities_cursor(
    cursor: Optional[str] = Query(None),
    limit: int = Query(10),
    direction: Literal["forward", "backward"] = Query("forward"),
    is_public: Optional[bool] = Query(None),
    region: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_async_db),
):
    """Keyset-paginated community list ordered by creation time."""
    params = CursorParams(cursor=cursor, limit=limit, direction=direction)
    stmt = select(Community).where(
        *community_filters(is_public=is_public, region=region)
    )
    page = await paginate_cursor(db, stmt, Community, params)
    return cursor_response(page, CommunityResponse)


@router.get("/recommended", response_model=ListResponse[CommunityCardResponse])
async def recommended_communities(
    limit: int = Query(10, ge=1, le=50),
    is_public: bool = Query(True),
    db: AsyncSession = Depends(get_async_db),
):
    """Newest communities with their upcoming rounds."""
    cache_key = f"{RECOMMENDED_PATH}?limit={limit}&is_public={is_public}"
    if is_public:
        cached = await get_cached_view(cache_key)
        if cached is not None:
            return cached

    communities = await SoftDeleteRepository(db, Community, "Community").list_active(
        *community_filters(is_public=is_public),
        options=community_card_options(),
        order_by=(Community.created_at.desc(), Community.id.desc()),
        limit=limit,
    )
    payload = ListResponse(
        data=[CommunityCardResponse.model_validate(c) for c in communities],
        count=len(communities),
    )
    if is_public:
        await cache_view(cache_key, payload.model_dump(mode="json"))
    return payload


# ============================================================================
# LIFECYCLE
# ============================================================================


@router.post("", response_model=ApiResponse[CommunityResponse], status_code=201)
async def create_community(
    payload: CommunityCreate,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Create a community; the creator becomes its first admin."""
    await _ensure_unique_name(db, payload.name)

    community = Community(**payload.model_dump())
    db.add(community)
    await db.flush()
    db.add(
        CommunityMember(
            community_id=community.id,
            user_id=current_user.user_id,
            role=MemberRole.ADMIN,
        )
    )
    await db.commit()
    await db.refresh(community)

    logger.info(
        "Community created",
        extra={"extra_fields": {
            "community_id": str(community.id),
            "user_id": str(current_user.user_id),
        }},
    )
    await invalidate_path(RECOMMENDED_PATH)
    return ApiResponse(data=CommunityResponse.model_validate(community))


@router.get("/{community_id}", response_model=ApiResponse[CommunityDetailResponse])
async def get_community(
    community_id: uuid.UUID,
    current_user: Optional[AuthUser] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Community detail with member count, upcoming rounds and the pinned notice."""
    path = community_path(community_id)
    cached = await get_cached_view(path)
    if cached is not None:
        detail = CommunityDetailResponse.model_validate(cached)
    else:
        community = await SoftDeleteRepository(
            db, Community, "Community"
        ).get_active_or_404(community_id, *community_card_options())

        member_count = (
            await db.execute(
                select(func.count())
                .select_from(CommunityMember)
                .where(CommunityMember.community_id == community_id)
            )
        ).scalar_one()
        pinned = (
            await db.execute(
                select(Notification)
                .where(
                    Notification.community_id == community_id,
                    Notification.is_pinned.is_(True),
                )
                .options(*notification_detail_options())
                .order_by(Notification.updated_at.desc())
                .limit(1)
            )
        ).scalar_one_or_none()

        detail = CommunityDetailResponse.model_validate(community).model_copy(
            update={
                "member_count": member_count,
                "pinned_notification": (
                    NotificationResponse.model_validate(pinned) if pinned else None
                ),
            }
        )
        await cache_view(path, detail.model_dump(mode="json"))

    if current_user is not None:
        membership = await get_active_membership(db, current_user.user_id, community_id)
        if membership is not None:
            detail = detail.model_copy(update={"my_role": membership.role})
    return ApiResponse(data=detail)


@router.patch("/{community_id}", response_model=ApiResponse[CommunityResponse])
async def update_community(
    community_id: uuid.UUID,
    payload: CommunityUpdate,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Update a community (admins only)."""
    community = await SoftDeleteRepository(db, Community, "Community").get_active_or_404(
        community_id
    )
    await require_community_role(db, current_user.user_id, community_id, MemberRole.ADMIN)

    update_data = payload.model_dump(exclude_unset=True)
    if "name" in update_data and update_data["name"] != community.name:
        await _ensure_unique_name(db, update_data["name"], exclude_id=community.id)
    for field, value in update_data.items():
        setattr(community, field, value)

    await db.commit()
    await db.refresh(community)
    await invalidate_community_views(community_id)
    return ApiResponse(data=CommunityResponse.model_validate(community))


@router.delete("/{community_id}", response_model=ApiResponse[dict])
async def delete_community(
    community_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Soft-delete a community (admins only)."""
    repo = SoftDeleteRepository(db, Community, "Community")
    await repo.get_active_or_404(community_id)
    await require_community_role(db, current_user.user_id, community_id, MemberRole.ADMIN)

    await repo.soft_delete(community_id)
    await db.commit()

    logger.info(
        "Community deleted",
        extra={"extra_fields": {
            "community_id": str(community_id),
            "user_id": str(current_user.user_id),
        }},
    )
    await invalidate_community_views(community_id)
    return ApiResponse(data={"id": str(community_id)}, message="Community deleted")


# ============================================================================
# MEMBERSHIP
# ============================================================================


@router.post("/{community_id}/join", response_model=ApiResponse[dict], status_code=201)
async def join_community(
    community_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    await SoftDeleteRepository(db, Community, "Community").get_active_or_404(community_id)
    if await get_active_membership(db, current_user.user_id, community_id):
        raise AlreadyMemberError()

    membership = CommunityMember(
        community_id=community_id,
        user_id=current_user.user_id,
        role=MemberRole.MEMBER,
    )
    db.add(membership)
    await db.commit()

    await invalidate_community_views(community_id)
    return ApiResponse(
        data={"membership_id": str(membership.id), "role": membership.role.value},
        message="Joined community",
    )


@router.post("/{community_id}/leave", response_model=ApiResponse[dict])
async def leave_community(
    community_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """
    Leave a community. The last admin is blocked (409 LAST_ADMIN) and keeps
    their membership.
    """
    membership = await get_active_membership(db, current_user.user_id, community_id)
    if membership is None:
        raise NotFoundError("You are not a member of this community")

    await ensure_can_leave(db, membership)
    await db.delete(membership)
    await db.commit()

    await invalidate_community_views(community_id)
    return ApiResponse(data={"membership_id": str(membership.id)}, message="Left community")


# ============================================================================
# COVER IMAGE
# ============================================================================


@router.post("/{community_id}/image", response_model=ApiResponse[ImageUploadResponse])
@limiter.limit(UPLOAD_RATE)
async def upload_community_image(
    request: Request,
    community_id: uuid.UUID,
    file: UploadFile = File(...),
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
    storage: StorageService = Depends(get_storage_service),
):
    """Upload a cover image and store its public URL on the community (admins only)."""
    community = await SoftDeleteRepository(db, Community, "Community").get_active_or_404(
        community_id
    )
    await require_community_role(db, current_user.user_id, community_id, MemberRole.ADMIN)

    data = await file.read()
    stored = await storage.upload_image(
        data, file.filename or "image", file.content_type, folder="communities"
    )
    community.image_url = stored["url"]
    await db.commit()

    await invalidate_community_views(community_id)
    return ApiResponse(data=ImageUploadResponse(**stored))


# ============================================================================
# CALLER'S COMMUNITIES
# ============================================================================


@user_communities_router.get(
    "/communities", response_model=ListResponse[MyCommunityResponse]
)
async def my_communities(
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Communities the caller belongs to, with role and upcoming rounds."""
    query = (
        select(CommunityMember)
        .join(CommunityMember.community)
        .where(CommunityMember.user_id == current_user.user_id)
        .options(
            selectinload(CommunityMember.community).selectinload(Community.rounds),
            upcoming_rounds_option(),
        )
        .order_by(CommunityMember.joined_at.desc())
    )
    memberships = (await db.execute(query)).scalars().all()
    data = [
        MyCommunityResponse(
            membership_id=m.id,
            role=m.role,
            joined_at=m.joined_at,
            community=CommunityCardResponse.model_validate(m.community),
        )
        for m in memberships
    ]
    return ListResponse(data=data, count=len(data))
