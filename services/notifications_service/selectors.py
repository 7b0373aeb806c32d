"""Loader options and ordering for notification queries."""

import uuid
from typing import Any, Optional

from services.notifications_service.models import Notification
from sqlalchemy.orm import selectinload


def notification_detail_options() -> tuple:
    return (selectinload(Notification.author),)

def notification_order() -> tuple:
    """Pinned first, then newest first."""
    return (
        Notification.is_pinned.desc(),
        Notification.created_at.desc(),
        Notification.id.desc(),
    )


def notification_filters(
    *,
    community_id: Optional[uuid.UUID] = None,
    is_pinned: Optional[bool] = None,
) -> list[Any]:
    criteria: list[Any] = []
    if community_id:
        criteria.append(Notification.community_id == community_id)
    if is_pinned is not None:
        criteria.append(Notification.is_pinned.is_(is_pinned))
    return criteria
