from __future__ import annotations

from fastapi.testclient import TestClient

from microcourses.api.dependencies import get_store_provider
from microcourses.core.errors import StoreUnavailableError
from microcourses.main import app


class _DownStore:
    async def ping(self) -> None:
        raise StoreUnavailableError()


def test_health_ok(client: TestClient) -> None:
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {
        "status": "ok",
        "checks": {"store": "ok", "redis": "not_configured"},
    }


def test_ready_ok(client: TestClient) -> None:
    assert client.get("/ready").status_code == 200


def test_store_down_degrades_health_and_fails_readiness(client: TestClient) -> None:
    app.dependency_overrides[get_store_provider] = lambda: _DownStore()

    health = client.get("/health")
    assert health.status_code == 200
    assert health.json()["status"] == "degraded"
    assert health.json()["checks"]["store"] == "unavailable"

    ready = client.get("/ready")
    assert ready.status_code == 503
    assert ready.headers["Retry-After"] == "1"
