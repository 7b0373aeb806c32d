"""Community capability checks.

Every mutating operation that needs a community role goes through
``require_community_role``. Roles are ranked: ``member`` admits any active
membership, ``admin`` admits ``admin`` and ``owner``.

Usage:
    membership = await require_community_role(
        db, current_user.user_id, community_id, MemberRole.ADMIN
    )
"""

import uuid
from typing import Optional, Union

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from libs.common.errors import ForbiddenError, LastAdminError
from libs.common.logging import get_logger
from services.clubs_service.models import (
    ADMIN_CAPABLE_ROLES,
    CommunityMember,
    MemberRole,
)

logger = get_logger(__name__)

RoleLike = Union[MemberRole, str]


def role_satisfies(role: MemberRole, required: RoleLike) -> bool:
    required = MemberRole(required)
    if required == MemberRole.MEMBER:
        return True
    if required == MemberRole.ADMIN:
        return role in ADMIN_CAPABLE_ROLES
    return role == MemberRole.OWNER


async def get_active_membership(
    db: AsyncSession, user_id: uuid.UUID, community_id: uuid.UUID
) -> Optional[CommunityMember]:
    result = await db.execute(
        select(CommunityMember).where(
            CommunityMember.user_id == user_id,
            CommunityMember.community_id == community_id,
        )
    )
    return result.scalars().first()


async def has_community_role(
    db: AsyncSession,
    user_id: uuid.UUID,
    community_id: uuid.UUID,
    required_role: RoleLike = MemberRole.MEMBER,
) -> bool:
    membership = await get_active_membership(db, user_id, community_id)
    return membership is not None and role_satisfies(membership.role, required_role)


async def require_community_role(
    db: AsyncSession,
    user_id: uuid.UUID,
    community_id: uuid.UUID,
    required_role: RoleLike = MemberRole.MEMBER,
) -> CommunityMember:
    """Return the caller's membership, or raise ForbiddenError."""
    membership = await get_active_membership(db, user_id, community_id)
    if membership is None or not role_satisfies(membership.role, required_role):
        logger.info(
            "Community permission denied",
            extra={"extra_fields": {
                "user_id": str(user_id),
                "community_id": str(community_id),
                "required_role": MemberRole(required_role).value,
            }},
        )
        if MemberRole(required_role) == MemberRole.MEMBER:
            raise ForbiddenError("Only community members can perform this action")
        raise ForbiddenError("Only community admins can perform this action")
    return membership


async def require_owner_or_role(
    db: AsyncSession,
    user_id: uuid.UUID,
    resource_owner_id: uuid.UUID,
    community_id: Optional[uuid.UUID],
    required_role: RoleLike = MemberRole.ADMIN,
) -> None:
    """The resource's author may always act; anyone else needs ``required_role``."""
    if user_id == resource_owner_id:
        return
    if community_id is None:
        raise ForbiddenError()
    await require_community_role(db, user_id, community_id, required_role)


async def count_admins(db: AsyncSession, community_id: uuid.UUID) -> int:
    result = await db.execute(
        select(func.count())
        .select_from(CommunityMember)
        .where(
            CommunityMember.community_id == community_id,
            CommunityMember.role.in_(ADMIN_CAPABLE_ROLES),
        )
    )
    return result.scalar_one()


async def ensure_can_leave(db: AsyncSession, membership: CommunityMember) -> None:
    """
    Block the last admin-capable member from leaving.

    Raises LastAdminError; the membership is left untouched.
    """
    if not membership.is_admin:
        return
    if await count_admins(db, membership.community_id) <= 1:
        raise LastAdminError()
