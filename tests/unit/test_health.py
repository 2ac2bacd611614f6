"""Tests for the cached /health endpoint."""

from unittest.mock import AsyncMock, patch

import pytest
from httpx import ASGITransport, AsyncClient

from src.console import main

pytestmark = pytest.mark.unit


class MockTime:
    def __init__(self):
        self.current_time = 1000.0

    def __call__(self):
        return self.current_time


@pytest.fixture(autouse=True)
def clear_health_cache():
    main._health_cache = None
    main._health_cache_time = 0
    yield
    main._health_cache = None
    main._health_cache_time = 0


def _report(status: str) -> dict:
    return {
        "status": status,
        "database": "healthy",
        "temporal": "healthy",
        "redis": "not_configured",
        "cached": False,
        "timestamp": 1000.0,
    }


async def _get(path: str = "/health"):
    async with AsyncClient(transport=ASGITransport(app=main.app), base_url="http://test") as client:
        return await client.get(path)


async def test_result_is_cached_within_ttl():
    check = AsyncMock(return_value=_report("healthy"))
    clock = MockTime()

    with patch.object(main, "_check_health", check), patch("src.console.main.time.time", clock):
        first = await _get()
        clock.current_time += 3
        second = await _get()

    assert first.status_code == 200
    assert first.json()["cached"] is False
    assert second.json()["cached"] is True
    assert second.json()["cache_age_seconds"] == 3.0
    check.assert_awaited_once()


async def test_cache_expires_after_ttl():
    check = AsyncMock(return_value=_report("healthy"))
    clock = MockTime()

    with patch.object(main, "_check_health", check), patch("src.console.main.time.time", clock):
        await _get()
        clock.current_time += main.HEALTH_CACHE_TTL + 1
        response = await _get()

    assert response.json()["cached"] is False
    assert check.await_count == 2


@pytest.mark.parametrize("status", ["degraded", "unhealthy"])
async def test_non_healthy_returns_503(status):
    with patch.object(main, "_check_health", AsyncMock(return_value=_report(status))):
        response = await _get()

    assert response.status_code == 503
    assert response.json()["status"] == status
