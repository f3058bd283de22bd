from __future__ import annotations

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.repo.payments_repo import PaymentsRepo
from app.db.session import SessionLocal
from app.economy.payments.types import PaymentRecord
from app.workers.celery_app import celery_app

from .constants import PERSIST_PAYMENT_TASK

logger = structlog.get_logger(__name__)


async def store_created_payment(session: AsyncSession, *, record: PaymentRecord) -> bool:
    created = await PaymentsRepo.insert_if_absent(session, values=record.as_row())
    if created:
        logger.info(
            "payment_record_created",
            payment_id=record.payment_id,
            gateway=record.gateway,
            purchase_type=record.purchase_type,
            item_id=record.item_id,
            amount_minor=record.amount_minor,
        )
    return created


def enqueue_payment_record_retry(record: PaymentRecord) -> None:
    try:
        celery_app.send_task(PERSIST_PAYMENT_TASK, args=[record.to_payload()])
    except Exception:
        logger.exception("payment_record_retry_enqueue_failed", payment_id=record.payment_id)


async def persist_created_payment(record: PaymentRecord) -> None:
    """Best-effort insert run after the initiation response has been sent.

    A failed insert is handed to the retrying worker task instead of failing checkout.
    """
    try:
        async with SessionLocal.begin() as session:
            await store_created_payment(session, record=record)
    except Exception:
        logger.exception("payment_record_persist_failed", payment_id=record.payment_id)
        enqueue_payment_record_retry(record)
