"""Integration tests for community search."""

import pytest

from tests.factories import CommunityFactory


async def _seed(db_session):
    db_session.add_all(
        [
            CommunityFactory.create(name="Seoul Algorithms", region="Seoul", sub_region="Gangnam"),
            CommunityFactory.create(name="Seoul Databases", region="Seoul", sub_region="Mapo"),
            CommunityFactory.create(name="Busan Algorithms", region="Busan", sub_region="Haeundae"),
        ]
    )
    await db_session.commit()


@pytest.mark.asyncio
@pytest.mark.integration
async def test_region_is_required(client):
    response = await client.get("/api/search", params={"q": "algorithms"})

    assert response.status_code == 400
    assert response.json()["code"] == "VALIDATION_ERROR"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_filters_by_region_and_sub_region(client, db_session):
    await _seed(db_session)

    region = await client.get("/api/search", params={"region": "Seoul"})
    sub_region = await client.get(
        "/api/search", params={"region": "Seoul", "sub_region": "Mapo"}
    )

    assert {c["name"] for c in region.json()["data"]} == {
        "Seoul Algorithms",
        "Seoul Databases",
    }
    assert [c["name"] for c in sub_region.json()["data"]] == ["Seoul Databases"]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_query_matches_any_token_in_name(client, db_session):
    await _seed(db_session)

    response = await client.get(
        "/api/search", params={"region": "Seoul", "q": "databases graphs"}
    )

    assert [c["name"] for c in response.json()["data"]] == ["Seoul Databases"]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_overlong_query_is_truncated_not_rejected(client, db_session):
    await _seed(db_session)

    response = await client.get(
        "/api/search", params={"region": "Seoul", "q": "algorithms " + "x" * 400}
    )

    assert response.status_code == 200
    assert [c["name"] for c in response.json()["data"]] == ["Seoul Algorithms"]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_search_pages_with_cursor(client, db_session):
    await _seed(db_session)

    first = await client.get("/api/search", params={"region": "Seoul", "limit": 1})
    second = await client.get(
        "/api/search",
        params={"region": "Seoul", "limit": 1, "cursor": first.json()["next_cursor"]},
    )

    assert first.json()["has_more"] is True
    assert second.json()["has_more"] is False
    assert first.json()["data"][0]["id"] != second.json()["data"][0]["id"]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_unknown_region_is_rejected(client, db_session):
    await _seed(db_session)

    unknown = await client.get("/api/search", params={"region": "Atlantis"})
    wrong_district = await client.get(
        "/api/search", params={"region": "Busan", "sub_region": "Mapo"}
    )
    blank_district = await client.get(
        "/api/search", params={"region": "Busan", "sub_region": " "}
    )

    assert unknown.status_code == 400
    assert unknown.json()["code"] == "UNKNOWN_REGION"
    assert wrong_district.status_code == 400
    assert [c["name"] for c in blank_district.json()["data"]] == ["Busan Algorithms"]
