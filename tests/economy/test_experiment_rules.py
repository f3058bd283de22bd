from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from app.economy.experiments.assignment import (
    default_variants,
    page_for,
    pick_variant,
    total_weight,
    weights_sum_to_required_total,
)
from app.economy.experiments.stats import (
    EventRow,
    VariantCounters,
    compute_rates,
    daily_breakdown,
    event_revenue,
)


@pytest.mark.parametrize(
    ("draw", "expected"),
    [
        (0.0, "A"),
        (49.99, "A"),
        (50.0, "A"),
        (50.01, "B"),
        (99.99, "B"),
    ],
)
def test_pick_variant_walks_cumulative_weights(draw: float, expected: str) -> None:
    assert pick_variant(default_variants(), draw) == expected


def test_pick_variant_skips_zero_weight_variants() -> None:
    variants = {"A": {"weight": 0, "page": "step-17"}, "B": {"weight": 100, "page": "a-step-17"}}

    assert pick_variant(variants, 0.0) == "B"
    assert pick_variant({"A": {"weight": 0}, "B": {"weight": 0}}, 0.0) == "A"


def test_weights_accept_numeric_strings_and_ignore_garbage() -> None:
    assert weights_sum_to_required_total({"A": {"weight": "60"}, "B": {"weight": 40}})
    assert not weights_sum_to_required_total({"A": {"weight": "sixty"}, "B": {"weight": 40}})
    assert total_weight({"A": {}, "B": {"weight": None}}) == 0


def test_page_for_prefers_configured_page() -> None:
    assert page_for("B", {"B": {"weight": 50, "page": "b-checkout"}}) == "b-checkout"
    assert page_for("A", None) == "step-17"
    assert page_for("B", {"B": {"weight": 50}}) == "a-step-17"
    assert page_for("C", None) == "a-step-17"


def test_compute_rates_formats_two_decimals() -> None:
    rates = compute_rates(
        VariantCounters(
            impressions=200,
            conversions=10,
            bounces=50,
            checkouts_started=20,
            total_revenue=Decimal("8390"),
        )
    )

    assert rates == {
        "impressions": 200,
        "conversions": 10,
        "bounces": 50,
        "checkoutsStarted": 20,
        "totalRevenue": 8390.0,
        "conversionRate": "5.00",
        "bounceRate": "25.00",
        "checkoutRate": "10.00",
        "checkoutToConversionRate": "50.00",
        "avgRevenuePerUser": "839.00",
        "avgRevenuePerImpression": "41.95",
    }


def test_compute_rates_with_no_traffic() -> None:
    rates = compute_rates(VariantCounters())

    assert rates["conversionRate"] == "0.00"
    assert rates["avgRevenuePerUser"] == "0.00"
    assert rates["avgRevenuePerImpression"] == "0.00"


@pytest.mark.parametrize(
    ("metadata", "expected"),
    [
        ({"amount": "839"}, Decimal("839")),
        ({"amount": 582.5}, Decimal("582.5")),
        ({"amount": -5}, Decimal("0")),
        ({"amount": True}, Decimal("0")),
        ({"amount": "abc"}, Decimal("0")),
        ({"amount": float("nan")}, Decimal("0")),
        ({}, Decimal("0")),
        (None, Decimal("0")),
    ],
)
def test_event_revenue(metadata, expected: Decimal) -> None:
    assert event_revenue(metadata) == expected


def test_daily_breakdown_groups_by_utc_day() -> None:
    events = [
        EventRow("A", "impression", datetime(2026, 3, 17, 23, 0, tzinfo=timezone.utc), {}),
        EventRow("A", "conversion", datetime(2026, 3, 17, 23, 5, tzinfo=timezone.utc), {"amount": 839}),
        EventRow("B", "bounce", datetime(2026, 3, 18, 1, 0, tzinfo=timezone.utc), {}),
        EventRow("B", "checkout_started", datetime(2026, 3, 18, 1, 5, tzinfo=timezone.utc), {}),
        EventRow("Z", "impression", datetime(2026, 3, 18, 1, 0, tzinfo=timezone.utc), {}),
    ]

    days = daily_breakdown(events, variants=["A", "B"])

    assert [day["date"] for day in days] == ["2026-03-17", "2026-03-18"]
    assert days[0]["A"] == {"impressions": 1, "conversions": 1, "bounces": 0, "revenue": 839.0}
    assert days[0]["B"] == {"impressions": 0, "conversions": 0, "bounces": 0, "revenue": 0.0}
    assert days[1]["B"]["bounces"] == 1
    assert "Z" not in days[1]


def test_pick_variant_ignores_mapping_order() -> None:
    variants = {"B": {"weight": 30}, "A": {"weight": 70}}

    assert pick_variant(variants, 69.9) == "A"
    assert pick_variant(variants, 70.5) == "B"
