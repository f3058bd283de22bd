from app.workers.tasks.payments_reliability import (
    expire_stale_created_payments,
    persist_payment_record,
    purge_expired_admin_sessions,
    run_payments_reconciliation,
)

__all__ = [
    "expire_stale_created_payments",
    "persist_payment_record",
    "purge_expired_admin_sessions",
    "run_payments_reconciliation",
]
