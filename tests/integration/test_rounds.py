"""Integration tests for round scheduling and the attend endpoint."""

from datetime import timedelta

import pytest
from sqlalchemy import func, select

from libs.common.datetime_utils import utc_now
from services.clubs_service.models import MemberRole
from services.gateway_service.app.main import app
from services.rounds_service.models import Attendance
from tests.conftest import override_auth
from tests.factories import RoundFactory, UserFactory, seed_community


@pytest.mark.asyncio
@pytest.mark.integration
async def test_admin_creates_numbered_rounds(client, db_session):
    community, (admin,), _ = await seed_community(db_session, MemberRole.ADMIN)
    start = utc_now() + timedelta(days=1)

    with override_auth(app, admin):
        first = await client.post(
            "/api/rounds",
            json={
                "community_id": str(community.id),
                "start_time": start.isoformat(),
                "end_time": (start + timedelta(hours=2)).isoformat(),
            },
        )
        second = await client.post("/api/rounds", json={"community_id": str(community.id)})

    assert first.status_code == 201, first.text
    assert first.json()["data"]["round_number"] == 1
    assert second.json()["data"]["round_number"] == 2


@pytest.mark.asyncio
@pytest.mark.integration
async def test_member_cannot_create_round(client, db_session):
    community, (_admin, member), _ = await seed_community(
        db_session, MemberRole.ADMIN, MemberRole.MEMBER
    )

    with override_auth(app, member):
        response = await client.post("/api/rounds", json={"community_id": str(community.id)})

    assert response.status_code == 403


@pytest.mark.asyncio
@pytest.mark.integration
async def test_start_after_end_is_rejected(client, db_session):
    community, (admin,), _ = await seed_community(db_session, MemberRole.ADMIN)
    round_ = RoundFactory.create(community_id=community.id)
    db_session.add(round_)
    await db_session.commit()
    start = utc_now()

    with override_auth(app, admin):
        created = await client.post(
            "/api/rounds",
            json={
                "community_id": str(community.id),
                "start_time": start.isoformat(),
                "end_time": (start - timedelta(hours=1)).isoformat(),
            },
        )
        patched = await client.patch(
            f"/api/rounds/{round_.id}",
            json={"end_time": (round_.start_time - timedelta(minutes=5)).isoformat()},
        )

    assert created.status_code == 400
    assert patched.status_code == 400


@pytest.mark.asyncio
@pytest.mark.integration
async def test_window_accepts_mixed_offset_and_naive_times(client, db_session):
    community, (admin,), _ = await seed_community(db_session, MemberRole.ADMIN)

    with override_auth(app, admin):
        valid = await client.post(
            "/api/rounds",
            json={
                "community_id": str(community.id),
                "start_time": "2026-01-01T10:00:00Z",
                "end_time": "2026-01-01T12:00:00",
            },
        )
        inverted = await client.post(
            "/api/rounds",
            json={
                "community_id": str(community.id),
                "start_time": "2026-01-01T10:00:00",
                "end_time": "2026-01-01T12:00:00+03:00",
            },
        )

    assert valid.status_code == 201, valid.text
    assert valid.json()["data"]["end_time"].startswith("2026-01-01T12:00:00")
    assert inverted.status_code == 400


@pytest.mark.asyncio
@pytest.mark.integration
async def test_list_orders_by_round_number(client, db_session):
    community, _, _ = await seed_community(db_session, MemberRole.ADMIN)
    db_session.add_all(
        [RoundFactory.create(community_id=community.id, round_number=n) for n in (3, 1, 2)]
    )
    await db_session.commit()

    response = await client.get("/api/rounds", params={"community_id": str(community.id)})

    assert [r["round_number"] for r in response.json()["data"]] == [1, 2, 3]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_delete_round(client, db_session):
    community, (admin,), _ = await seed_community(db_session, MemberRole.ADMIN)
    round_ = RoundFactory.create(community_id=community.id)
    db_session.add(round_)
    await db_session.commit()

    with override_auth(app, admin):
        deleted = await client.delete(f"/api/rounds/{round_.id}")
    after = await client.get(f"/api/rounds/{round_.id}")

    assert deleted.status_code == 200
    assert after.status_code == 404


# ---------------------------------------------------------------------------
# Attend
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_attend_once_per_round(client, db_session):
    community, (_admin, member), _ = await seed_community(
        db_session, MemberRole.ADMIN, MemberRole.MEMBER
    )
    round_ = RoundFactory.create(community_id=community.id)
    db_session.add(round_)
    await db_session.commit()

    with override_auth(app, member):
        first = await client.post(f"/api/rounds/{round_.id}/attend")
        second = await client.post(f"/api/rounds/{round_.id}/attend")

    assert first.status_code == 201, first.text
    assert first.json()["data"]["user"]["id"] == str(member.id)
    assert second.status_code == 409
    assert second.json()["code"] == "DUPLICATE_ATTENDANCE"

    count = await db_session.execute(
        select(func.count()).select_from(Attendance).where(Attendance.round_id == round_.id)
    )
    assert count.scalar_one() == 1


@pytest.mark.asyncio
@pytest.mark.integration
async def test_attend_outside_window(client, db_session):
    community, (member,), _ = await seed_community(db_session, MemberRole.MEMBER)
    now = utc_now()
    ended = RoundFactory.create(
        community_id=community.id,
        start_time=now - timedelta(hours=3),
        end_time=now - timedelta(hours=1),
    )
    db_session.add(ended)
    await db_session.commit()

    with override_auth(app, member):
        response = await client.post(f"/api/rounds/{ended.id}/attend")

    assert response.status_code == 400
    assert response.json()["code"] == "ATTENDANCE_WINDOW_CLOSED"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_non_member_cannot_attend(client, db_session):
    community, _, _ = await seed_community(db_session, MemberRole.ADMIN)
    round_ = RoundFactory.create(community_id=community.id)
    outsider = UserFactory.create()
    db_session.add_all([round_, outsider])
    await db_session.commit()

    with override_auth(app, outsider):
        response = await client.post(f"/api/rounds/{round_.id}/attend")

    assert response.status_code == 403
