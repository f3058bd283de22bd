from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal

EVENT_TYPES = ("impression", "conversion", "bounce", "checkout_started")
RECENT_EVENTS_LIMIT = 50

_TWO_PLACES = Decimal("0.01")


@dataclass(slots=True)
class VariantCounters:
    impressions: int = 0
    conversions: int = 0
    bounces: int = 0
    checkouts_started: int = 0
    total_revenue: Decimal = Decimal("0")


def _ratio(numerator: Decimal | int, denominator: int, *, scale: int = 1) -> str:
    if denominator <= 0:
        return "0.00"
    value = Decimal(numerator) * scale / Decimal(denominator)
    return str(value.quantize(_TWO_PLACES, rounding=ROUND_HALF_UP))


def compute_rates(counters: VariantCounters) -> dict[str, object]:
    return {
        "impressions": counters.impressions,
        "conversions": counters.conversions,
        "bounces": counters.bounces,
        "checkoutsStarted": counters.checkouts_started,
        "totalRevenue": float(counters.total_revenue),
        "conversionRate": _ratio(counters.conversions, counters.impressions, scale=100),
        "bounceRate": _ratio(counters.bounces, counters.impressions, scale=100),
        "checkoutRate": _ratio(counters.checkouts_started, counters.impressions, scale=100),
        "checkoutToConversionRate": _ratio(
            counters.conversions, counters.checkouts_started, scale=100
        ),
        "avgRevenuePerUser": _ratio(counters.total_revenue, counters.conversions),
        "avgRevenuePerImpression": _ratio(counters.total_revenue, counters.impressions),
    }


def event_revenue(metadata: Mapping[str, object] | None) -> Decimal:
    raw = (metadata or {}).get("amount")
    if raw is None or isinstance(raw, bool):
        return Decimal("0")
    try:
        amount = Decimal(str(raw))
    except ArithmeticError:
        return Decimal("0")
    return amount if amount.is_finite() and amount > 0 else Decimal("0")


@dataclass(frozen=True, slots=True)
class EventRow:
    variant: str
    event_type: str
    created_at: datetime
    metadata: Mapping[str, object]


def daily_breakdown(
    events: Iterable[EventRow],
    *,
    variants: Iterable[str],
) -> list[dict[str, object]]:
    variant_names = list(variants)
    days: dict[str, dict[str, dict[str, float]]] = {}
    for event in events:
        if event.variant not in variant_names:
            continue
        day = event.created_at.astimezone(timezone.utc).date().isoformat()
        bucket = days.setdefault(
            day,
            {
                name: {"impressions": 0, "conversions": 0, "bounces": 0, "revenue": 0.0}
                for name in variant_names
            },
        )[event.variant]
        if event.event_type == "impression":
            bucket["impressions"] += 1
        elif event.event_type == "conversion":
            bucket["conversions"] += 1
            bucket["revenue"] += float(event_revenue(event.metadata))
        elif event.event_type == "bounce":
            bucket["bounces"] += 1
    return [{"date": day, **days[day]} for day in sorted(days)]
