from __future__ import annotations

import random
from datetime import datetime, timedelta, timezone

import structlog
from celery import Task

from app.core.config import get_settings
from app.db.repo.admin_repo import AdminRepo
from app.db.repo.ledger_repo import LedgerRepo
from app.db.repo.payments_repo import PaymentsRepo
from app.db.repo.reconciliation_runs_repo import ReconciliationRunsRepo
from app.db.session import SessionLocal
from app.economy.payments.service.records import store_created_payment
from app.economy.payments.types import PaymentRecord
from app.services.alerts import send_ops_alert
from app.services.payments_reliability import compute_reconciliation_diff, reconciliation_status
from app.workers.asyncio_runner import run_async_job
from app.workers.celery_app import celery_app

logger = structlog.get_logger(__name__)

PERSIST_MAX_RETRIES = 6
PERSIST_RETRY_BACKOFF_MAX_SECONDS = 300
RETRY_JITTER_RATIO = 0.25


def _retry_backoff_seconds(*, next_retry_attempt: int, backoff_max_seconds: int) -> int:
    safe_retry_attempt = max(1, int(next_retry_attempt))
    safe_backoff_max_seconds = max(1, int(backoff_max_seconds))

    base_delay = min(safe_backoff_max_seconds, 2 ** (safe_retry_attempt - 1))
    max_jitter = max(0, int(base_delay * RETRY_JITTER_RATIO))
    jitter = random.randint(0, max_jitter) if max_jitter > 0 else 0
    return min(safe_backoff_max_seconds, base_delay + jitter)


async def expire_stale_created_payments_async(*, stale_hours: int | None = None) -> dict[str, int]:
    now_utc = datetime.now(timezone.utc)
    hours = stale_hours if stale_hours is not None else get_settings().payments_stale_created_hours
    stale_cutoff = now_utc - timedelta(hours=max(1, int(hours)))

    async with SessionLocal.begin() as session:
        expired_payments = await PaymentsRepo.expire_stale_created(
            session,
            older_than_utc=stale_cutoff,
            now_utc=now_utc,
        )

    result = {"expired_payments": expired_payments}
    logger.info("stale_created_payments_expiry_finished", **result)
    return result


async def run_payments_reconciliation_async() -> dict[str, int | str]:
    started_at = datetime.now(timezone.utc)

    async with SessionLocal.begin() as session:
        paid_payments_count = await PaymentsRepo.count_paid_with_owner(session)
        credited_payments_count = await LedgerRepo.count_distinct_payment_credits(session)
        diff_count = compute_reconciliation_diff(
            paid_payments_count=paid_payments_count,
            credited_payments_count=credited_payments_count,
        )
        status = reconciliation_status(diff_count)

        await ReconciliationRunsRepo.create(
            session,
            started_at=started_at,
            finished_at=datetime.now(timezone.utc),
            status=status,
            paid_payments_count=paid_payments_count,
            credited_payments_count=credited_payments_count,
            diff_count=diff_count,
        )

    result: dict[str, int | str] = {
        "paid_payments_count": paid_payments_count,
        "credited_payments_count": credited_payments_count,
        "diff_count": diff_count,
        "status": status,
    }
    if diff_count > 0:
        await send_ops_alert(
            event="payments_reconciliation_diff_detected",
            payload=result,
        )
        logger.warning("payments_reconciliation_diff_detected", **result)
    else:
        logger.info("payments_reconciliation_finished", **result)
    return result


async def persist_payment_record_async(payload: dict[str, object]) -> str:
    record = PaymentRecord.from_payload(payload)
    async with SessionLocal.begin() as session:
        created = await store_created_payment(session, record=record)
    return "created" if created else "duplicate"


async def purge_expired_admin_sessions_async() -> dict[str, int]:
    now_utc = datetime.now(timezone.utc)
    async with SessionLocal.begin() as session:
        deleted = await AdminRepo.delete_expired_sessions(session, now_utc=now_utc)

    result = {"deleted_sessions": deleted}
    logger.info("admin_sessions_purge_finished", **result)
    return result


@celery_app.task(name="app.workers.tasks.payments_reliability.expire_stale_created_payments")
def expire_stale_created_payments(stale_hours: int | None = None) -> dict[str, int]:
    return run_async_job(expire_stale_created_payments_async(stale_hours=stale_hours))


@celery_app.task(name="app.workers.tasks.payments_reliability.run_payments_reconciliation")
def run_payments_reconciliation() -> dict[str, int | str]:
    return run_async_job(run_payments_reconciliation_async())


@celery_app.task(name="app.workers.tasks.payments_reliability.purge_expired_admin_sessions")
def purge_expired_admin_sessions() -> dict[str, int]:
    return run_async_job(purge_expired_admin_sessions_async())


@celery_app.task(
    name="app.workers.tasks.payments_reliability.persist_payment_record",
    bind=True,
    max_retries=PERSIST_MAX_RETRIES,
    acks_late=True,
    reject_on_worker_lost=True,
)
def persist_payment_record(self: Task, payload: dict[str, object]) -> str:
    payment_id = payload.get("id")
    try:
        outcome = run_async_job(persist_payment_record_async(payload))
    except Exception as exc:
        current_retries = max(0, int(getattr(self.request, "retries", 0)))
        if current_retries >= PERSIST_MAX_RETRIES:
            logger.exception(
                "payment_record_persist_failed_final",
                payment_id=payment_id,
                retries=current_retries,
                max_retries=PERSIST_MAX_RETRIES,
            )
            run_async_job(
                send_ops_alert(
                    event="payment_record_persist_exhausted",
                    payload={"payment_id": payment_id, "retries": current_retries},
                )
            )
            raise

        next_retry_attempt = current_retries + 1
        retry_in_seconds = _retry_backoff_seconds(
            next_retry_attempt=next_retry_attempt,
            backoff_max_seconds=PERSIST_RETRY_BACKOFF_MAX_SECONDS,
        )
        logger.warning(
            "payment_record_persist_retry_scheduled",
            payment_id=payment_id,
            retry_attempt=next_retry_attempt,
            retry_in_seconds=retry_in_seconds,
            max_retries=PERSIST_MAX_RETRIES,
        )
        raise self.retry(exc=exc, countdown=retry_in_seconds)

    logger.info("payment_record_persisted", payment_id=payment_id, outcome=outcome)
    return outcome


celery_app.conf.beat_schedule = celery_app.conf.beat_schedule or {}
celery_app.conf.beat_schedule.update(
    {
        "expire-stale-created-payments-every-15-minutes": {
            "task": "app.workers.tasks.payments_reliability.expire_stale_created_payments",
            "schedule": 900.0,
            "options": {"queue": "q_normal"},
        },
        "payments-reconciliation-hourly": {
            "task": "app.workers.tasks.payments_reliability.run_payments_reconciliation",
            "schedule": 3600.0,
            "options": {"queue": "q_normal"},
        },
        "purge-expired-admin-sessions-hourly": {
            "task": "app.workers.tasks.payments_reliability.purge_expired_admin_sessions",
            "schedule": 3600.0,
            "options": {"queue": "q_low"},
        },
    }
)
