from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class PromoDiscount:
    code: str
    discount: int
    discount_type: str
    coins: int
    plan: str
    unlock_all: bool
    used_count: int
    redeemed_for_user: str | None = None
    idempotent_replay: bool = False
