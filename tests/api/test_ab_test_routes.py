from __future__ import annotations

from datetime import datetime, timezone

from fastapi.testclient import TestClient

from app.api.routes import ab_test as ab_test_routes
from app.economy.experiments.errors import InvalidEventTypeError
from app.economy.experiments.service import ExperimentService
from app.economy.experiments.types import AssignmentResult, ExperimentDefinition
from app.main import app

CREATED_AT = datetime(2026, 3, 1, 0, 0, tzinfo=timezone.utc)


def _definition(status: str = "active") -> ExperimentDefinition:
    return ExperimentDefinition(
        test_id="pricing-test-1",
        name="Pricing Page A/B Test",
        status=status,
        variants={
            "A": {"weight": 50, "page": "step-17"},
            "B": {"weight": 50, "page": "a-step-17"},
        },
        created_at=CREATED_AT,
        updated_at=CREATED_AT,
    )


def test_assignment_returns_variant_and_page(monkeypatch, fake_sessions) -> None:
    sessions = fake_sessions(ab_test_routes)
    calls = []

    async def _get_assignment(session, *, test_id, visitor_id, now_utc):
        calls.append((test_id, visitor_id))
        return AssignmentResult(
            test_id=test_id,
            variant="B",
            page="a-step-17",
            test=_definition(),
            cached=True,
        )

    monkeypatch.setattr(ExperimentService, "get_assignment", _get_assignment)

    client = TestClient(app)
    response = client.get("/api/ab-test", params={"visitorId": "visitor_9"})

    assert response.status_code == 200
    body = response.json()
    assert body["testId"] == "pricing-test-1"
    assert body["variant"] == "B"
    assert body["page"] == "a-step-17"
    assert body["cached"] is True
    assert body["test"]["createdAt"] == "2026-03-01T00:00:00+00:00"
    assert "message" not in body
    assert calls == [("pricing-test-1", "visitor_9")]
    assert sessions.opened == ["begin"]


def test_assignment_for_paused_test_carries_message(monkeypatch, fake_sessions) -> None:
    fake_sessions(ab_test_routes)

    async def _get_assignment(session, *, test_id, visitor_id, now_utc):
        return AssignmentResult(
            test_id=test_id,
            variant="A",
            page="step-17",
            test=_definition(status="paused"),
            message="Test is not active, defaulting to variant A",
        )

    monkeypatch.setattr(ExperimentService, "get_assignment", _get_assignment)

    client = TestClient(app)
    response = client.get("/api/ab-test", params={"testId": "pricing-test-1"})

    assert response.status_code == 200
    assert response.json()["message"] == "Test is not active, defaulting to variant A"


def test_update_rejects_unknown_status() -> None:
    client = TestClient(app)
    response = client.post("/api/ab-test", json={"status": "archived"})

    assert response.status_code == 422


def test_update_saves_weights(monkeypatch, fake_sessions) -> None:
    fake_sessions(ab_test_routes)
    calls = []

    async def _update_test(session, *, test_id, variants, status, name, now_utc):
        calls.append((test_id, variants, status, name))
        return _definition(status=status or "active")

    monkeypatch.setattr(ExperimentService, "update_test", _update_test)

    client = TestClient(app)
    response = client.post(
        "/api/ab-test",
        json={"variants": {"A": {"weight": 70}, "B": {"weight": 30}}, "status": "paused"},
    )

    assert response.status_code == 200
    assert response.json()["success"] is True
    assert response.json()["test"]["status"] == "paused"
    assert calls == [
        ("pricing-test-1", {"A": {"weight": 70}, "B": {"weight": 30}}, "paused", None)
    ]


def test_track_event_requires_identifiers(monkeypatch) -> None:
    async def _track_event(session, **kwargs):
        raise AssertionError("must not be called")

    monkeypatch.setattr(ExperimentService, "track_event", _track_event)

    client = TestClient(app)
    response = client.post("/api/ab-test/events", json={"testId": "pricing-test-1"})

    assert response.status_code == 400
    assert response.json()["detail"]["message"] == "testId, variant, and eventType are required"


def test_track_event_records_conversion(monkeypatch, fake_sessions) -> None:
    fake_sessions(ab_test_routes)
    calls = []

    async def _track_event(session, **kwargs):
        calls.append(kwargs)

    monkeypatch.setattr(ExperimentService, "track_event", _track_event)

    client = TestClient(app)
    response = client.post(
        "/api/ab-test/events",
        json={
            "testId": "pricing-test-1",
            "variant": "B",
            "eventType": "conversion",
            "visitorId": "visitor_9",
            "metadata": {"amount": 839},
        },
    )

    assert response.status_code == 200
    assert response.json() == {"success": True}
    assert calls[0]["event_type"] == "conversion"
    assert calls[0]["metadata"] == {"amount": 839}
    assert calls[0]["user_id"] is None


def test_track_event_invalid_type_is_400(monkeypatch, fake_sessions) -> None:
    fake_sessions(ab_test_routes)

    async def _track_event(session, **kwargs):
        raise InvalidEventTypeError("Invalid eventType")

    monkeypatch.setattr(ExperimentService, "track_event", _track_event)

    client = TestClient(app)
    response = client.post(
        "/api/ab-test/events",
        json={"testId": "pricing-test-1", "variant": "A", "eventType": "click"},
    )

    assert response.status_code == 400
    assert response.json()["detail"]["code"] == "E_INVALID_EVENT_TYPE"


def test_stats_uses_read_session(monkeypatch, fake_sessions) -> None:
    sessions = fake_sessions(ab_test_routes)

    async def _get_stats(session, *, test_id):
        assert session is sessions.session
        return {"testId": test_id, "variants": {"A": {"impressions": 3}}}

    monkeypatch.setattr(ExperimentService, "get_stats", _get_stats)

    client = TestClient(app)
    response = client.get("/api/ab-test/stats")

    assert response.status_code == 200
    assert response.json() == {"testId": "pricing-test-1", "variants": {"A": {"impressions": 3}}}
    assert sessions.opened == ["read"]
