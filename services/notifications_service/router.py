"""Community notice board routes."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from libs.auth.dependencies import get_current_user
from libs.auth.models import AuthUser
from libs.auth.permissions import require_community_role, require_owner_or_role
from libs.common.logging import get_logger
from libs.common.responses import ApiResponse, ListResponse
from libs.common.view_cache import invalidate_path
from libs.db.repository import SoftDeleteRepository
from libs.db.session import get_async_db
from services.clubs_service.models import Community, MemberRole
from services.notifications_service.models import Notification
from services.notifications_service.schemas import (
    NotificationCreate,
    NotificationResponse,
    NotificationUpdate,
)
from services.notifications_service.selectors import (
    notification_detail_options,
    notification_filters,
    notification_order,
)
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)

router = APIRouter(prefix="/notifications", tags=["notifications"])


def _repo(db: AsyncSession) -> SoftDeleteRepository[Notification]:
    return SoftDeleteRepository(db, Notification, "Notification")


async def pin_exclusively(db: AsyncSession, notification: Notification) -> None:
    """
    Pin ``notification`` and unpin every other notification of its community.

    Both writes join the caller's transaction; the caller commits.
    """
    await db.execute(
        update(Notification)
        .where(
            Notification.community_id == notification.community_id,
            Notification.id != notification.id,
            Notification.is_pinned.is_(True),
        )
        .values(is_pinned=False)
        .execution_options(synchronize_session="fetch")
    )
    notification.is_pinned = True


async def _get_editable(
    db: AsyncSession, notification_id: uuid.UUID, user_id: uuid.UUID
) -> Notification:
    notification = await _repo(db).get_active_or_404(
        notification_id, *notification_detail_options()
    )
    await require_owner_or_role(
        db,
        user_id,
        notification.author_id,
        notification.community_id,
        MemberRole.ADMIN,
    )
    return notification


async def _invalidate(community_id: uuid.UUID) -> None:
    await invalidate_path(f"/api/communities/{community_id}")


@router.get("", response_model=ListResponse[NotificationResponse])
async def list_notifications(
    community_id: uuid.UUID = Query(...),
    is_pinned: Optional[bool] = Query(None),
    db: AsyncSession = Depends(get_async_db),
):
    """Notifications of a community, pinned first then newest first."""
    notifications = await _repo(db).list_active(
        *notification_filters(community_id=community_id, is_pinned=is_pinned),
        options=notification_detail_options(),
        order_by=notification_order(),
    )
    data = [NotificationResponse.model_validate(n) for n in notifications]
    return ListResponse(data=data, count=len(data))


@router.post("", response_model=ApiResponse[NotificationResponse], status_code=201)
async def create_notification(
    payload: NotificationCreate,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    await SoftDeleteRepository(db, Community, "Community").get_active_or_404(
        payload.community_id
    )
    await require_community_role(db, current_user.user_id, payload.community_id)

    notification = Notification(
        community_id=payload.community_id,
        author_id=current_user.user_id,
        title=payload.title,
        content=payload.content,
        is_pinned=False,
    )
    db.add(notification)
    await db.flush()
    if payload.is_pinned:
        await pin_exclusively(db, notification)
    await db.commit()

    await _invalidate(payload.community_id)
    notification = await _repo(db).reload(notification.id, *notification_detail_options())
    return ApiResponse(data=NotificationResponse.model_validate(notification))


@router.get("/{notification_id}", response_model=ApiResponse[NotificationResponse])
async def get_notification(
    notification_id: uuid.UUID,
    db: AsyncSession = Depends(get_async_db),
):
    notification = await _repo(db).get_active_or_404(
        notification_id, *notification_detail_options()
    )
    return ApiResponse(data=NotificationResponse.model_validate(notification))


@router.patch("/{notification_id}", response_model=ApiResponse[NotificationResponse])
async def update_notification(
    notification_id: uuid.UUID,
    payload: NotificationUpdate,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    notification = await _get_editable(db, notification_id, current_user.user_id)

    update_data = payload.model_dump(exclude_unset=True)
    pin = update_data.pop("is_pinned", None)
    for field, value in update_data.items():
        setattr(notification, field, value)
    if pin is True:
        await pin_exclusively(db, notification)
    elif pin is False:
        notification.is_pinned = False
    await db.commit()

    await _invalidate(notification.community_id)
    return ApiResponse(data=NotificationResponse.model_validate(notification))


@router.post("/{notification_id}/pin", response_model=ApiResponse[NotificationResponse])
async def pin_notification(
    notification_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    notification = await _get_editable(db, notification_id, current_user.user_id)
    await pin_exclusively(db, notification)
    await db.commit()

    logger.info(
        "Notification pinned",
        extra={"extra_fields": {
            "notification_id": str(notification_id),
            "community_id": str(notification.community_id),
        }},
    )
    await _invalidate(notification.community_id)
    return ApiResponse(data=NotificationResponse.model_validate(notification))


@router.post("/{notification_id}/unpin", response_model=ApiResponse[NotificationResponse])
async def unpin_notification(
    notification_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    notification = await _get_editable(db, notification_id, current_user.user_id)
    notification.is_pinned = False
    await db.commit()

    await _invalidate(notification.community_id)
    return ApiResponse(data=NotificationResponse.model_validate(notification))


@router.delete("/{notification_id}", response_model=ApiResponse[dict])
async def delete_notification(
    notification_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    notification = await _get_editable(db, notification_id, current_user.user_id)
    community_id = notification.community_id
    await db.delete(notification)
    await db.commit()

    await _invalidate(community_id)
    return ApiResponse(data={"id": str(notification_id)}, message="Notification deleted")
