# tests/api/test_analytics_api.py
import pytest

from agencyos.core.config import settings

pytestmark = pytest.mark.asyncio

ANALYTICS = f"{settings.API_V1_STR}/analytics"


async def test_months_list(authenticated_client):
    response = await authenticated_client.get(f"{ANALYTICS}/months", params={"start": "2025-11-15", "end": "2026-02-01"})

    assert response.status_code == 200
    assert response.json() == ["2025-11-01", "2025-12-01", "2026-01-01", "2026-02-01"]


@pytest.mark.parametrize("path, params", [
    ("/months", {"start": "0001-01-01", "end": "9999-12-31"}),
    ("/period", {"start": "1990-01-01", "end": "2026-01-01"}),
    ("/monthly", {"start": "0001-01-01"}),
])
async def test_oversized_ranges_are_rejected(authenticated_client, path, params):
    response = await authenticated_client.get(f"{ANALYTICS}{path}", params=params)

    assert response.status_code == 400
    assert "120 months" in response.json()["detail"]


async def test_reversed_range_is_rejected(authenticated_client):
    response = await authenticated_client.get(f"{ANALYTICS}/months", params={"start": "2026-03-01", "end": "2026-02-01"})

    assert response.status_code == 400
