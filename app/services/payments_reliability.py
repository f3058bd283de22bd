from __future__ import annotations


def compute_reconciliation_diff(
    *,
    paid_payments_count: int,
    credited_payments_count: int,
) -> int:
    """Paid payments with an owner that have no ledger credit, or credits without a paid payment."""
    return abs(paid_payments_count - credited_payments_count)


def reconciliation_status(diff_count: int) -> str:
    return "OK" if diff_count == 0 else "DIFF"
