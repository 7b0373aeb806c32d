"""Tests for community role checks and the last-admin rule."""

import uuid

import pytest

from libs.auth.permissions import (
    count_admins,
    ensure_can_leave,
    has_community_role,
    require_community_role,
    require_owner_or_role,
    role_satisfies,
)
from libs.common.errors import ForbiddenError, LastAdminError
from services.clubs_service.models import MemberRole
from tests.factories import CommunityFactory, MemberFactory, UserFactory


class TestRoleRanking:
    @pytest.mark.parametrize(
        "role, required, expected",
        [
            (MemberRole.MEMBER, MemberRole.MEMBER, True),
            (MemberRole.MEMBER, MemberRole.ADMIN, False),
            (MemberRole.ADMIN, MemberRole.ADMIN, True),
            (MemberRole.OWNER, MemberRole.ADMIN, True),
            (MemberRole.ADMIN, MemberRole.OWNER, False),
            (MemberRole.OWNER, "owner", True),
        ],
    )
    def test_role_satisfies(self, role, required, expected):
        assert role_satisfies(role, required) is expected


async def _community_with(db_session, *roles):
    community = CommunityFactory.create()
    users = [UserFactory.create() for _ in roles]
    members = [
        MemberFactory.create(community_id=community.id, user_id=user.id, role=role)
        for user, role in zip(users, roles)
    ]
    db_session.add_all([community, *users, *members])
    await db_session.commit()
    return community, members


@pytest.mark.asyncio
class TestRequireCommunityRole:
    async def test_member_passes_member_check(self, db_session):
        community, (member,) = await _community_with(db_session, MemberRole.MEMBER)

        found = await require_community_role(db_session, member.user_id, community.id)

        assert found.id == member.id

    async def test_member_fails_admin_check(self, db_session):
        community, (member,) = await _community_with(db_session, MemberRole.MEMBER)

        with pytest.raises(ForbiddenError):
            await require_community_role(
                db_session, member.user_id, community.id, MemberRole.ADMIN
            )

    async def test_outsider_is_forbidden(self, db_session):
        community, _ = await _community_with(db_session, MemberRole.ADMIN)

        with pytest.raises(ForbiddenError):
            await require_community_role(db_session, uuid.uuid4(), community.id)
        assert not await has_community_role(db_session, uuid.uuid4(), community.id)

    async def test_former_member_is_forbidden(self, db_session):
        community, (member,) = await _community_with(db_session, MemberRole.ADMIN)
        await db_session.delete(member)
        await db_session.commit()

        with pytest.raises(ForbiddenError):
            await require_community_role(db_session, member.user_id, community.id)

    async def test_owner_or_admin(self, db_session):
        community, (admin, member) = await _community_with(
            db_session, MemberRole.ADMIN, MemberRole.MEMBER
        )
        author_id = uuid.uuid4()

        # Authors always pass, admins pass, plain members do not
        await require_owner_or_role(db_session, author_id, author_id, community.id)
        await require_owner_or_role(db_session, admin.user_id, author_id, community.id)
        with pytest.raises(ForbiddenError):
            await require_owner_or_role(
                db_session, member.user_id, author_id, community.id
            )


@pytest.mark.asyncio
class TestLastAdminRule:
    async def test_sole_admin_cannot_leave(self, db_session):
        community, (admin, _member) = await _community_with(
            db_session, MemberRole.ADMIN, MemberRole.MEMBER
        )

        with pytest.raises(LastAdminError) as exc_info:
            await ensure_can_leave(db_session, admin)
        assert exc_info.value.status_code == 409

    async def test_admin_with_co_admin_can_leave(self, db_session):
        community, (admin, _owner) = await _community_with(
            db_session, MemberRole.ADMIN, MemberRole.OWNER
        )

        assert await count_admins(db_session, community.id) == 2
        await ensure_can_leave(db_session, admin)

    async def test_plain_member_can_always_leave(self, db_session):
        _community, (member,) = await _community_with(db_session, MemberRole.MEMBER)

        await ensure_can_leave(db_session, member)
