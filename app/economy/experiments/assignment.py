from __future__ import annotations

from collections.abc import Mapping

DEFAULT_TEST_ID = "pricing-test-1"
DEFAULT_TEST_NAME = "Pricing Page A/B Test"
DEFAULT_VARIANT = "A"
DEFAULT_VARIANT_PAGES = {"A": "step-17", "B": "a-step-17"}
REQUIRED_WEIGHT_TOTAL = 100


def default_variants() -> dict[str, dict[str, object]]:
    return {
        "A": {"weight": 50, "page": "step-17"},
        "B": {"weight": 50, "page": "a-step-17"},
    }


def variant_weight(variant_cfg: Mapping[str, object] | None) -> float:
    raw = (variant_cfg or {}).get("weight") or 0
    try:
        return float(raw)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return 0.0


def total_weight(variants: Mapping[str, Mapping[str, object]]) -> float:
    return sum(variant_weight(variant_cfg) for variant_cfg in variants.values())


def weights_sum_to_required_total(variants: Mapping[str, Mapping[str, object]]) -> bool:
    return total_weight(variants) == REQUIRED_WEIGHT_TOTAL


def pick_variant(variants: Mapping[str, Mapping[str, object]], draw: float) -> str:
    """Weighted pick for `draw` in [0, total_weight).

    Walks variants in name order and returns the first one where the running
    remainder drops to zero or below. Variants without a positive weight never win.
    """
    remaining = draw
    for name in sorted(variants):
        weight = variant_weight(variants[name])
        if weight <= 0:
            continue
        remaining -= weight
        if remaining <= 0:
            return name
    return DEFAULT_VARIANT


def page_for(variant: str, variants: Mapping[str, Mapping[str, object]] | None) -> str:
    variant_cfg = (variants or {}).get(variant) or {}
    page = variant_cfg.get("page")
    if isinstance(page, str) and page:
        return page
    return DEFAULT_VARIANT_PAGES.get(variant, DEFAULT_VARIANT_PAGES["B"])
