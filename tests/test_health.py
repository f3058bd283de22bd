from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from app.api.routes import health as health_routes
from app.main import app


async def _ok_check() -> dict[str, str]:
    return {"status": "ok"}


def _patch_all_ok(monkeypatch) -> None:
    monkeypatch.setattr(health_routes, "_check_database", _ok_check)
    monkeypatch.setattr(health_routes, "_check_redis", _ok_check)
    monkeypatch.setattr(health_routes, "_check_celery_worker", _ok_check)


def test_live_does_not_touch_dependencies() -> None:
    response = TestClient(app).get("/live")

    assert response.status_code == 200
    assert response.json() == {"status": "live"}


def test_health_ok(monkeypatch) -> None:
    _patch_all_ok(monkeypatch)

    response = TestClient(app).get("/health")

    assert response.status_code == 200
    assert response.json() == {
        "status": "ok",
        "checks": {
            "database": {"status": "ok"},
            "redis": {"status": "ok"},
            "celery": {"status": "ok"},
        },
    }


def test_health_degrades_when_database_fails(monkeypatch) -> None:
    async def _failed_database() -> dict[str, str]:
        return {"status": "failed", "error": "database_unavailable"}

    _patch_all_ok(monkeypatch)
    monkeypatch.setattr(health_routes, "_check_database", _failed_database)

    response = TestClient(app).get("/health")

    assert response.status_code == 503
    payload = response.json()
    assert payload["status"] == "degraded"
    assert payload["checks"]["database"] == {"status": "failed", "error": "database_unavailable"}


def test_ready_ignores_celery(monkeypatch) -> None:
    async def _failed_celery() -> dict[str, str]:
        return {"status": "failed", "error": "celery_no_workers"}

    _patch_all_ok(monkeypatch)
    monkeypatch.setattr(health_routes, "_check_celery_worker", _failed_celery)

    response = TestClient(app).get("/ready")

    assert response.status_code == 200
    assert response.json() == {
        "status": "ready",
        "checks": {"database": {"status": "ok"}, "redis": {"status": "ok"}},
    }


def test_ready_not_ready_when_redis_fails(monkeypatch) -> None:
    async def _failed_redis() -> dict[str, str]:
        return {"status": "failed", "error": "redis_unavailable"}

    _patch_all_ok(monkeypatch)
    monkeypatch.setattr(health_routes, "_check_redis", _failed_redis)

    response = TestClient(app).get("/ready")

    assert response.status_code == 503
    assert response.json()["status"] == "not_ready"


@pytest.mark.asyncio
async def test_database_check_hides_connection_details(monkeypatch) -> None:
    class _BrokenSession:
        async def __aenter__(self):
            raise RuntimeError("postgresql://astro:secret@db/astro")

        async def __aexit__(self, exc_type, exc, tb) -> bool:
            return False

    monkeypatch.setattr(health_routes, "SessionLocal", lambda: _BrokenSession())

    assert await health_routes._check_database() == {
        "status": "failed",
        "error": "database_unavailable",
    }


@pytest.mark.asyncio
async def test_redis_check_reports_unexpected_ping(monkeypatch) -> None:
    class _OddRedis:
        async def ping(self) -> str:
            return "PONG?"

        async def aclose(self) -> None:
            return None

    monkeypatch.setattr(health_routes.Redis, "from_url", lambda url: _OddRedis())

    assert await health_routes._check_redis() == {
        "status": "failed",
        "error": "redis_unexpected_ping",
    }


def test_celery_check_reports_no_workers(monkeypatch) -> None:
    class _Inspector:
        def ping(self) -> dict[str, object]:
            return {}

    class _Control:
        def inspect(self, timeout: float) -> _Inspector:
            return _Inspector()

    monkeypatch.setattr(health_routes.celery_app, "control", _Control())

    assert health_routes._check_celery_worker_sync() == {
        "status": "failed",
        "error": "celery_no_workers",
    }


def test_celery_check_hides_broker_details(monkeypatch) -> None:
    class _BrokenControl:
        def inspect(self, timeout: float):
            raise RuntimeError("broker-url=redis://secret")

    monkeypatch.setattr(health_routes.celery_app, "control", _BrokenControl())

    assert health_routes._check_celery_worker_sync() == {
        "status": "failed",
        "error": "celery_unavailable",
    }
