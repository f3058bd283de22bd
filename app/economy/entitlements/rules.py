from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Literal

FeatureKey = Literal["palmReading", "birthChart", "compatibilityTest", "prediction2026"]

FEATURE_KEYS: tuple[str, ...] = (
    "palmReading",
    "birthChart",
    "compatibilityTest",
    "prediction2026",
)
PURCHASE_TYPES = ("bundle", "upsell", "coins", "report")
BUNDLE_COIN_BONUS = 15
DEV_TESTER_COINS = 999_999


@dataclass(frozen=True, slots=True)
class EntitlementGrant:
    features: tuple[str, ...] = ()
    coins: int = 0
    bonus_coins: int = 0
    purchased_bundle: str | None = None
    purchase_type: str | None = None

    @property
    def total_coins(self) -> int:
        return self.coins + self.bonus_coins


def empty_features() -> dict[str, bool]:
    return {key: False for key in FEATURE_KEYS}


def build_purchase_grant(
    *,
    purchase_type: str,
    item_id: str,
    features: Iterable[str],
    coins: int,
) -> EntitlementGrant:
    unlocked = tuple(dict.fromkeys(feature for feature in features if feature))
    if purchase_type == "bundle":
        return EntitlementGrant(
            features=unlocked,
            bonus_coins=BUNDLE_COIN_BONUS,
            purchased_bundle=item_id,
            purchase_type="one-time",
        )
    if purchase_type in {"upsell", "report"}:
        return EntitlementGrant(features=unlocked[:1], purchase_type=purchase_type)
    if purchase_type == "coins":
        return EntitlementGrant(coins=max(0, coins), purchase_type=purchase_type)
    raise ValueError(f"unsupported purchase type: {purchase_type}")


def merge_features(current: Mapping[str, bool] | None, unlock: Iterable[str]) -> dict[str, bool]:
    """Union of the current flags and `unlock`; a granted flag is never revoked."""
    merged = empty_features()
    for key, value in (current or {}).items():
        merged[key] = bool(value) or merged.get(key, False)
    for key in unlock:
        merged[key] = True
    return merged


def newly_unlocked(current: Mapping[str, bool] | None, unlock: Iterable[str]) -> tuple[str, ...]:
    existing = current or {}
    return tuple(key for key in dict.fromkeys(unlock) if not existing.get(key, False))
