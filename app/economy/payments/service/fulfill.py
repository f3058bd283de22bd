from __future__ import annotations

from datetime import datetime

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.payments import Payment
from app.db.repo.payments_repo import PaymentsRepo
from app.economy.entitlements.rules import build_purchase_grant
from app.economy.entitlements.service import EntitlementService
from app.economy.payments.errors import PaymentRecordMissingError, PaymentStateError
from app.economy.payments.types import CallbackEcho, FulfillmentResult
from app.economy.pricing.service import PricingService

from .constants import CURRENCY
from .utilities import build_payment_id

logger = structlog.get_logger(__name__)


async def _restore_missing_record(
    session: AsyncSession,
    *,
    gateway: str,
    gateway_txn_id: str,
    echo: CallbackEcho,
    now_utc: datetime,
) -> Payment:
    pricing = await PricingService.get_pricing()
    item = pricing.resolve(echo.purchase_type, echo.item_id)
    if item is None:
        raise PaymentRecordMissingError(f"No payment record for {gateway_txn_id}")

    await PaymentsRepo.insert_if_absent(
        session,
        values={
            "id": build_payment_id(gateway_txn_id),
            "gateway": gateway,
            "gateway_txn_id": gateway_txn_id,
            "purchase_type": item.kind,
            "item_id": item.item_id,
            "features": list(item.features),
            "coins": item.coins,
            "amount_minor": item.amount_minor,
            "currency": CURRENCY,
            "status": "created",
            "user_id": echo.user_id,
            "customer_email": echo.customer_email,
            "created_at": now_utc,
            "updated_at": now_utc,
        },
    )
    payment = await PaymentsRepo.get_by_gateway_txn_id_for_update(session, gateway_txn_id)
    if payment is None:
        raise PaymentRecordMissingError(f"No payment record for {gateway_txn_id}")

    logger.warning(
        "payment_record_restored_from_callback",
        payment_id=payment.id,
        gateway=gateway,
        purchase_type=item.kind,
        item_id=item.item_id,
    )
    return payment


async def fulfill(
    session: AsyncSession,
    *,
    gateway: str,
    gateway_txn_id: str,
    gateway_payment_id: str | None,
    echo: CallbackEcho | None,
    now_utc: datetime,
) -> FulfillmentResult:
    payment = await PaymentsRepo.get_by_gateway_txn_id_for_update(session, gateway_txn_id)
    if payment is None:
        if echo is None:
            raise PaymentRecordMissingError(f"No payment record for {gateway_txn_id}")
        payment = await _restore_missing_record(
            session,
            gateway=gateway,
            gateway_txn_id=gateway_txn_id,
            echo=echo,
            now_utc=now_utc,
        )

    if payment.status == "paid":
        logger.info("payment_fulfillment_replayed", payment_id=payment.id, gateway=gateway)
        return FulfillmentResult(
            success=True,
            payment_id=payment.id,
            status=payment.status,
            idempotent_replay=True,
            user_id=payment.user_id,
        )
    if payment.status != "created":
        raise PaymentStateError(f"Payment {payment.id} is {payment.status}")

    payment.status = "paid"
    payment.gateway_payment_id = gateway_payment_id
    payment.paid_at = now_utc
    payment.updated_at = now_utc

    if not payment.user_id:
        logger.warning("payment_paid_without_owner", payment_id=payment.id, gateway=gateway)
        return FulfillmentResult(success=True, payment_id=payment.id, status=payment.status)

    user = await EntitlementService.lock_user(session, user_id=payment.user_id, now_utc=now_utc)
    grant = build_purchase_grant(
        purchase_type=payment.purchase_type,
        item_id=payment.item_id,
        features=payment.features or (),
        coins=payment.coins or 0,
    )
    application = await EntitlementService.apply_grant(
        session,
        user=user,
        grant=grant,
        source="PAYMENT",
        idempotency_base=f"payment:{payment.id}",
        payment_id=payment.id,
        now_utc=now_utc,
    )
    user.payment_status = "paid"

    logger.info(
        "payment_fulfilled",
        payment_id=payment.id,
        gateway=gateway,
        user_id=user.id,
        purchase_type=payment.purchase_type,
        item_id=payment.item_id,
        coins_credited=application.coins_credited,
    )
    return FulfillmentResult(
        success=True,
        payment_id=payment.id,
        status=payment.status,
        user_id=user.id,
        unlocked_features=application.unlocked_features,
        coins_credited=application.coins_credited,
        coins_balance=application.coins_balance,
    )
