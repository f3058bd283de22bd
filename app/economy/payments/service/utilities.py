from __future__ import annotations

from datetime import datetime


def _epoch_ms(now_utc: datetime) -> int:
    return int(now_utc.timestamp() * 1000)


def _user_suffix(user_id: str | None) -> str:
    return (user_id or "anon")[-6:]


def build_transaction_id(*, user_id: str | None, now_utc: datetime) -> str:
    return f"TXN_{_epoch_ms(now_utc)}_{_user_suffix(user_id)}"


def build_receipt(*, user_id: str | None, now_utc: datetime) -> str:
    return f"rcpt_{_epoch_ms(now_utc)}_{_user_suffix(user_id)}"


def build_payment_id(gateway_txn_id: str) -> str:
    return f"pay_{gateway_txn_id}"


def parse_coins(raw: str | int | None) -> int:
    if raw is None or raw == "":
        return 0
    try:
        return max(0, int(raw))
    except (TypeError, ValueError):
        return 0
