"""Integration tests for the community notice board."""

from datetime import timedelta

import pytest
from sqlalchemy import func, select

from libs.common.datetime_utils import utc_now
from services.clubs_service.models import MemberRole
from services.gateway_service.app.main import app
from services.notifications_service.models import Notification
from tests.conftest import override_auth
from tests.factories import NotificationFactory, UserFactory, seed_community


async def _pinned_count(db_session, community_id):
    result = await db_session.execute(
        select(func.count())
        .select_from(Notification)
        .where(Notification.community_id == community_id, Notification.is_pinned.is_(True))
    )
    return result.scalar_one()


@pytest.mark.asyncio
@pytest.mark.integration
async def test_community_id_is_required(client):
    response = await client.get("/api/notifications")

    assert response.status_code == 400


@pytest.mark.asyncio
@pytest.mark.integration
async def test_pinned_first_then_newest(client, db_session):
    community, (admin,), _ = await seed_community(db_session, MemberRole.ADMIN)
    now = utc_now()
    old_pinned = NotificationFactory.create(
        community_id=community.id,
        author_id=admin.id,
        title="pinned",
        is_pinned=True,
        created_at=now - timedelta(days=3),
    )
    older = NotificationFactory.create(
        community_id=community.id,
        author_id=admin.id,
        title="older",
        created_at=now - timedelta(days=2),
    )
    newer = NotificationFactory.create(
        community_id=community.id, author_id=admin.id, title="newer", created_at=now
    )
    db_session.add_all([old_pinned, older, newer])
    await db_session.commit()

    response = await client.get(
        "/api/notifications", params={"community_id": str(community.id)}
    )

    assert [n["title"] for n in response.json()["data"]] == ["pinned", "newer", "older"]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_create_pinned_unpins_previous(client, db_session):
    community, (admin,), _ = await seed_community(db_session, MemberRole.ADMIN)
    previous = NotificationFactory.create(
        community_id=community.id, author_id=admin.id, is_pinned=True
    )
    db_session.add(previous)
    await db_session.commit()

    with override_auth(app, admin):
        response = await client.post(
            "/api/notifications",
            json={
                "community_id": str(community.id),
                "title": "Exam week",
                "content": "No meeting on Thursday.",
                "is_pinned": True,
            },
        )

    assert response.status_code == 201, response.text
    assert response.json()["data"]["is_pinned"] is True
    await db_session.refresh(previous)
    assert previous.is_pinned is False
    assert await _pinned_count(db_session, community.id) == 1


@pytest.mark.asyncio
@pytest.mark.integration
async def test_pin_keeps_single_pinned(client, db_session):
    community, (admin,), _ = await seed_community(db_session, MemberRole.ADMIN)
    first = NotificationFactory.create(community_id=community.id, author_id=admin.id)
    second = NotificationFactory.create(community_id=community.id, author_id=admin.id)
    db_session.add_all([first, second])
    await db_session.commit()

    with override_auth(app, admin):
        await client.post(f"/api/notifications/{first.id}/pin")
        response = await client.post(f"/api/notifications/{second.id}/pin")

    assert response.status_code == 200
    assert await _pinned_count(db_session, community.id) == 1
    pinned = await client.get(
        "/api/notifications",
        params={"community_id": str(community.id), "is_pinned": True},
    )
    assert [n["id"] for n in pinned.json()["data"]] == [str(second.id)]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_pin_does_not_touch_other_communities(client, db_session):
    community, (admin,), _ = await seed_community(db_session, MemberRole.ADMIN)
    other, (other_admin,), _ = await seed_community(db_session, MemberRole.ADMIN)
    elsewhere = NotificationFactory.create(
        community_id=other.id, author_id=other_admin.id, is_pinned=True
    )
    target = NotificationFactory.create(community_id=community.id, author_id=admin.id)
    db_session.add_all([elsewhere, target])
    await db_session.commit()

    with override_auth(app, admin):
        await client.post(f"/api/notifications/{target.id}/pin")

    assert await _pinned_count(db_session, other.id) == 1


@pytest.mark.asyncio
@pytest.mark.integration
async def test_non_member_cannot_post(client, db_session):
    community, _, _ = await seed_community(db_session, MemberRole.ADMIN)
    outsider = UserFactory.create()
    db_session.add(outsider)
    await db_session.commit()

    with override_auth(app, outsider):
        response = await client.post(
            "/api/notifications",
            json={"community_id": str(community.id), "title": "Spam", "content": "Buy now"},
        )

    assert response.status_code == 403


@pytest.mark.asyncio
@pytest.mark.integration
async def test_admin_edits_and_other_member_cannot_delete(client, db_session):
    community, (admin, author, other), _ = await seed_community(
        db_session, MemberRole.ADMIN, MemberRole.MEMBER, MemberRole.MEMBER
    )
    notice = NotificationFactory.create(community_id=community.id, author_id=author.id)
    db_session.add(notice)
    await db_session.commit()

    with override_auth(app, admin):
        edited = await client.patch(
            f"/api/notifications/{notice.id}", json={"title": "Updated venue"}
        )
    with override_auth(app, other):
        denied = await client.delete(f"/api/notifications/{notice.id}")
    with override_auth(app, author):
        unpinned = await client.post(f"/api/notifications/{notice.id}/unpin")
        deleted = await client.delete(f"/api/notifications/{notice.id}")

    assert edited.status_code == 200
    assert edited.json()["data"]["title"] == "Updated venue"
    assert denied.status_code == 403
    assert unpinned.json()["data"]["is_pinned"] is False
    assert deleted.status_code == 200
