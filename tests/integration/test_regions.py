"""Integration tests for the region catalogue."""

import pytest

from services.clubs_service.regions import is_known_region, load_regions


@pytest.mark.asyncio
@pytest.mark.integration
async def test_region_list_is_served(client):
    response = await client.get("/api/region")

    body = response.json()
    assert response.status_code == 200
    assert body["count"] == len(load_regions())
    seoul = next(r for r in body["data"] if r["region"] == "Seoul")
    assert "Gangnam" in seoul["sub_regions"]


@pytest.mark.parametrize(
    ("region", "sub_region", "expected"),
    [
        ("Seoul", None, True),
        ("Seoul", "Mapo", True),
        ("Busan", "Mapo", False),
        ("seoul", None, False),
        ("Atlantis", None, False),
    ],
)
def test_is_known_region(region, sub_region, expected):
    assert is_known_region(region, sub_region) is expected
