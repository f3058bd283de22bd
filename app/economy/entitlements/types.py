from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class GrantApplication:
    user_id: str
    unlocked_features: dict[str, bool]
    newly_unlocked: tuple[str, ...]
    coins_credited: int
    coins_balance: int
    idempotent_replay: bool = False


@dataclass(slots=True)
class EntitlementsView:
    user_id: str
    unlocked_features: dict[str, bool]
    coins: int
    purchased_bundle: str | None
    purchase_type: str | None
    payment_status: str | None
    subscription_plan: str | None
    is_dev_tester: bool
    entitlements_version: int
