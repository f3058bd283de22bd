from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from app.db.models.ab_test_assignments import ABTestAssignment
from app.db.models.ab_test_events import ABTestEvent
from app.db.models.ab_test_stats import ABTestStats
from app.db.models.ab_tests import ABTest
from app.economy.experiments import service as experiment_service
from app.economy.experiments.errors import (
    ExperimentExistsError,
    ExperimentNotFoundError,
    InvalidEventTypeError,
    InvalidVariantWeightsError,
)
from app.economy.experiments.service import ExperimentService

NOW_UTC = datetime(2026, 3, 18, 6, 30, tzinfo=timezone.utc)


class _ABStore:
    """In-memory stand-in for the A/B tables."""

    def __init__(self) -> None:
        self.tests: dict[str, ABTest] = {}
        self.assignments: dict[tuple[str, str], ABTestAssignment] = {}
        self.stats: dict[tuple[str, str], ABTestStats] = {}
        self.events: list[ABTestEvent] = []
        self.race_variant: str | None = None

    async def get_test(self, session, test_id):
        return self.tests.get(test_id)

    async def list_tests(self, session):
        return sorted(self.tests.values(), key=lambda test: test.created_at, reverse=True)

    async def create_test_if_absent(self, session, *, test_id, name, status, variants, now_utc):
        if test_id in self.tests:
            return False
        self.tests[test_id] = ABTest(
            id=test_id,
            name=name,
            status=status,
            variants=variants,
            created_at=now_utc,
            updated_at=now_utc,
        )
        return True

    async def delete_test(self, session, test_id):
        return 1 if self.tests.pop(test_id, None) is not None else 0

    async def get_assignment(self, session, *, test_id, visitor_id):
        return self.assignments.get((test_id, visitor_id))

    async def insert_assignment_if_absent(self, session, *, test_id, visitor_id, variant, now_utc):
        if self.race_variant is not None:
            variant, self.race_variant = self.race_variant, None
            self._assign(test_id, visitor_id, variant, now_utc)
            return False
        if (test_id, visitor_id) in self.assignments:
            return False
        self._assign(test_id, visitor_id, variant, now_utc)
        return True

    def _assign(self, test_id, visitor_id, variant, now_utc) -> None:
        self.assignments[(test_id, visitor_id)] = ABTestAssignment(
            id=f"{test_id}_{visitor_id}",
            test_id=test_id,
            visitor_id=visitor_id,
            variant=variant,
            assigned_at=now_utc,
        )

    async def add_event(self, session, *, event):
        event.id = len(self.events) + 1
        self.events.append(event)
        return event

    async def increment_stats(
        self,
        session,
        *,
        test_id,
        variant,
        impressions=0,
        conversions=0,
        bounces=0,
        checkouts_started=0,
        revenue=Decimal("0"),
        now_utc,
    ):
        row = self.stats.setdefault(
            (test_id, variant),
            ABTestStats(
                id=f"{test_id}_{variant}",
                test_id=test_id,
                variant=variant,
                impressions=0,
                conversions=0,
                bounces=0,
                checkouts_started=0,
                total_revenue=Decimal("0"),
                created_at=now_utc,
                updated_at=now_utc,
            ),
        )
        row.impressions += impressions
        row.conversions += conversions
        row.bounces += bounces
        row.checkouts_started += checkouts_started
        row.total_revenue += revenue
        row.updated_at = now_utc

    async def list_stats(self, session, *, test_id=None):
        return [row for key, row in sorted(self.stats.items()) if test_id in (None, key[0])]

    async def list_events(self, session, *, test_id, limit=None):
        events = sorted(
            (event for event in self.events if event.test_id == test_id),
            key=lambda event: (event.created_at, event.id),
            reverse=True,
        )
        return events[:limit] if limit is not None else events

    async def clear_analytics(self, session, *, test_id):
        stats = [key for key in self.stats if key[0] == test_id]
        events = [event for event in self.events if event.test_id == test_id]
        assignments = [key for key in self.assignments if key[0] == test_id]
        for key in stats:
            del self.stats[key]
        for key in assignments:
            del self.assignments[key]
        self.events = [event for event in self.events if event.test_id != test_id]
        return {"stats": len(stats), "events": len(events), "assignments": len(assignments)}


@pytest.fixture
def store(monkeypatch) -> _ABStore:
    ab_store = _ABStore()
    for name in (
        "get_test",
        "list_tests",
        "create_test_if_absent",
        "delete_test",
        "get_assignment",
        "insert_assignment_if_absent",
        "add_event",
        "increment_stats",
        "list_stats",
        "list_events",
        "clear_analytics",
    ):
        monkeypatch.setattr(experiment_service.ABTestsRepo, name, getattr(ab_store, name))
    return ab_store


@pytest.mark.asyncio
async def test_first_assignment_creates_default_test_and_sticks(store) -> None:
    first = await ExperimentService.get_assignment(
        object(),
        test_id="pricing-test-1",
        visitor_id="v_1",
        now_utc=NOW_UTC,
        draw=lambda: 0.7,
    )
    second = await ExperimentService.get_assignment(
        object(),
        test_id="pricing-test-1",
        visitor_id="v_1",
        now_utc=NOW_UTC,
        draw=lambda: 0.1,
    )

    assert store.tests["pricing-test-1"].name == "Pricing Page A/B Test"
    assert first.variant == "B"
    assert first.page == "a-step-17"
    assert first.cached is False
    assert second.variant == "B"
    assert second.cached is True
    assert store.assignments[("pricing-test-1", "v_1")].variant == "B"


@pytest.mark.asyncio
async def test_assignment_survives_weight_change(store) -> None:
    first = await ExperimentService.get_assignment(
        object(),
        test_id="pricing-test-1",
        visitor_id="v_1",
        now_utc=NOW_UTC,
        draw=lambda: 0.7,
    )
    await ExperimentService.update_test(
        object(),
        test_id="pricing-test-1",
        variants={
            "A": {"weight": 100, "page": "step-17"},
            "B": {"weight": 0, "page": "a-step-17"},
        },
        now_utc=NOW_UTC + timedelta(minutes=1),
    )
    returning = await ExperimentService.get_assignment(
        object(),
        test_id="pricing-test-1",
        visitor_id="v_1",
        now_utc=NOW_UTC + timedelta(minutes=2),
        draw=lambda: 0.7,
    )
    newcomer = await ExperimentService.get_assignment(
        object(),
        test_id="pricing-test-1",
        visitor_id="v_2",
        now_utc=NOW_UTC + timedelta(minutes=2),
        draw=lambda: 0.7,
    )

    assert first.variant == "B"
    assert returning.variant == "B"
    assert returning.page == "a-step-17"
    assert returning.cached is True
    assert newcomer.variant == "A"


@pytest.mark.asyncio
async def test_assignment_without_visitor_is_not_persisted(store) -> None:
    result = await ExperimentService.get_assignment(
        object(),
        test_id="pricing-test-1",
        visitor_id=None,
        now_utc=NOW_UTC,
        draw=lambda: 0.2,
    )

    assert result.variant == "A"
    assert result.page == "step-17"
    assert store.assignments == {}


@pytest.mark.asyncio
async def test_inactive_test_defaults_to_a(store) -> None:
    await store.create_test_if_absent(
        None,
        test_id="pricing-test-1",
        name="Paused",
        status="paused",
        variants={"A": {"weight": 0, "page": "x"}, "B": {"weight": 100, "page": "y"}},
        now_utc=NOW_UTC,
    )

    result = await ExperimentService.get_assignment(
        object(),
        test_id="pricing-test-1",
        visitor_id="v_1",
        now_utc=NOW_UTC,
        draw=lambda: 0.9,
    )

    assert result.variant == "A"
    assert result.page == "step-17"
    assert result.message == "Test is not active, defaulting to variant A"
    assert store.assignments == {}


@pytest.mark.asyncio
async def test_concurrent_assignment_keeps_the_stored_winner(store) -> None:
    store.race_variant = "A"

    result = await ExperimentService.get_assignment(
        object(),
        test_id="pricing-test-1",
        visitor_id="v_1",
        now_utc=NOW_UTC,
        draw=lambda: 0.9,
    )

    assert result.variant == "A"
    assert result.page == "step-17"


@pytest.mark.asyncio
async def test_update_test_validates_weights(store) -> None:
    with pytest.raises(InvalidVariantWeightsError):
        await ExperimentService.update_test(
            object(),
            test_id="pricing-test-1",
            variants={"A": {"weight": 70}, "B": {"weight": 40}},
            now_utc=NOW_UTC,
        )

    created = await ExperimentService.update_test(
        object(),
        test_id="pricing-test-1",
        variants={"A": {"weight": 30, "page": "step-17"}, "B": {"weight": 70, "page": "a-step-17"}},
        now_utc=NOW_UTC,
    )
    paused = await ExperimentService.update_test(
        object(),
        test_id="pricing-test-1",
        status="paused",
        now_utc=NOW_UTC + timedelta(minutes=1),
    )

    assert created.status == "active"
    assert paused.status == "paused"
    assert paused.variants["B"]["weight"] == 70
    assert paused.updated_at == NOW_UTC + timedelta(minutes=1)


@pytest.mark.asyncio
async def test_track_event_updates_counters(store) -> None:
    await ExperimentService.create_test(object(), test_id="pricing-test-1", name="Pricing", now_utc=NOW_UTC)

    for event_type, metadata in (
        ("impression", {"amount": 999}),
        ("impression", None),
        ("checkout_started", None),
        ("conversion", {"amount": 839}),
        ("bounce", None),
    ):
        await ExperimentService.track_event(
            object(),
            test_id="pricing-test-1",
            variant="A",
            event_type=event_type,
            visitor_id="v_1",
            metadata=metadata,
            now_utc=NOW_UTC,
        )

    stats = await ExperimentService.get_stats(object(), test_id="pricing-test-1")

    variant_a = stats["variants"]["A"]
    assert stats["testId"] == "pricing-test-1"
    assert variant_a["impressions"] == 2
    assert variant_a["conversions"] == 1
    assert variant_a["bounces"] == 1
    assert variant_a["checkoutsStarted"] == 1
    assert variant_a["totalRevenue"] == 839.0
    assert variant_a["conversionRate"] == "50.00"
    assert stats["variants"]["B"]["impressions"] == 0
    assert len(store.events) == 5


@pytest.mark.asyncio
async def test_track_event_rejects_bad_input(store) -> None:
    with pytest.raises(InvalidEventTypeError):
        await ExperimentService.track_event(
            object(),
            test_id="pricing-test-1",
            variant="A",
            event_type="click",
            now_utc=NOW_UTC,
        )
    with pytest.raises(ExperimentNotFoundError):
        await ExperimentService.track_event(
            object(),
            test_id="missing",
            variant="A",
            event_type="impression",
            now_utc=NOW_UTC,
        )


@pytest.mark.asyncio
async def test_admin_lifecycle(store) -> None:
    await ExperimentService.create_test(object(), test_id="pricing-test-1", name="Pricing", now_utc=NOW_UTC)
    with pytest.raises(ExperimentExistsError, match="already exists"):
        await ExperimentService.create_test(
            object(),
            test_id="pricing-test-1",
            name="Again",
            now_utc=NOW_UTC,
        )

    await ExperimentService.get_assignment(
        object(),
        test_id="pricing-test-1",
        visitor_id="v_1",
        now_utc=NOW_UTC,
        draw=lambda: 0.1,
    )
    await ExperimentService.track_event(
        object(),
        test_id="pricing-test-1",
        variant="A",
        event_type="impression",
        now_utc=NOW_UTC,
    )

    listed = await ExperimentService.list_tests_with_stats(object())
    assert listed[0]["id"] == "pricing-test-1"
    assert listed[0]["quickStats"] == {
        "totalImpressions": 1,
        "totalConversions": 0,
        "variantAConversionRate": "0.00",
        "variantBConversionRate": "0.00",
    }

    detail = await ExperimentService.get_test_detail(object(), test_id="pricing-test-1")
    assert detail["test"]["name"] == "Pricing"
    assert detail["stats"]["A"]["impressions"] == 1
    assert detail["dailyBreakdown"][0]["date"] == "2026-03-18"
    assert detail["recentEvents"][0]["eventType"] == "impression"

    removed = await ExperimentService.reset_analytics(
        object(),
        test_id="pricing-test-1",
        now_utc=NOW_UTC + timedelta(hours=1),
    )
    assert removed == {"stats": 1, "events": 1, "assignments": 1}
    assert store.tests["pricing-test-1"].last_reset_at == NOW_UTC + timedelta(hours=1)

    await ExperimentService.delete_test(object(), test_id="pricing-test-1")
    with pytest.raises(ExperimentNotFoundError):
        await ExperimentService.delete_test(object(), test_id="pricing-test-1")
    with pytest.raises(ExperimentNotFoundError):
        await ExperimentService.get_test_detail(object(), test_id="pricing-test-1")
