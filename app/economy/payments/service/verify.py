from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.errors import ConfigurationError, ValidationError
from app.db.repo.payments_repo import PaymentsRepo
from app.economy.payments.errors import InvalidSignatureError, PaymentClaimMismatchError
from app.economy.payments.types import CallbackEcho, FulfillmentResult
from app.services import payu, razorpay

from .constants import GATEWAY_PAYU, GATEWAY_RAZORPAY, PAYU_SUCCESS_STATUS
from .fulfill import fulfill
from .utilities import parse_coins

logger = structlog.get_logger(__name__)


@dataclass(slots=True)
class PayUCallback:
    txnid: str
    status: str
    hash: str | None = None
    mihpayid: str | None = None
    amount: str | None = None
    productinfo: str | None = None
    firstname: str | None = None
    email: str | None = None
    key: str | None = None
    udf1: str | None = None
    udf2: str | None = None
    udf3: str | None = None
    udf4: str | None = None
    udf5: str | None = None

    def hash_params(self) -> dict[str, str]:
        return {
            "status": self.status,
            "txnid": self.txnid,
            "amount": self.amount or "",
            "productinfo": self.productinfo or "",
            "firstname": self.firstname or "",
            "email": self.email or "",
            "key": self.key or "",
            "udf1": self.udf1 or "",
            "udf2": self.udf2 or "",
            "udf3": self.udf3 or "",
            "udf4": self.udf4 or "",
            "udf5": self.udf5 or "",
        }

    def echo(self) -> CallbackEcho:
        return CallbackEcho(
            user_id=self.udf1 or None,
            purchase_type=self.udf2 or "",
            item_id=self.udf3 or "",
            feature=self.udf4 or None,
            coins=parse_coins(self.udf5),
            customer_email=self.email or None,
        )



@dataclass(slots=True)
class RazorpayCallback:
    razorpay_order_id: str | None
    razorpay_payment_id: str | None
    razorpay_signature: str | None
    user_id: str | None = None
    item_id: str | None = None
    purchase_type: str | None = None
    feature: str | None = None
    coins: str | None = None


def _order_echo(order: dict[str, object]) -> CallbackEcho:
    notes = order.get("notes")
    if not isinstance(notes, dict):
        notes = {}
    return CallbackEcho(
        user_id=str(notes.get("userId") or "") or None,
        purchase_type=str(notes.get("type") or ""),
        item_id=str(notes.get("itemId") or ""),
        feature=str(notes.get("feature") or "") or None,
        coins=parse_coins(notes.get("coins")),  # type: ignore[arg-type]
        customer_email=None,
    )


async def verify_payu(
    session: AsyncSession,
    callback: PayUCallback,
    *,
    now_utc: datetime,
) -> FulfillmentResult:
    settings = get_settings()
    if not settings.payu_merchant_salt:
        raise ConfigurationError("PayU not configured")
    if not callback.txnid:
        raise ValidationError("Missing transaction id")

    hash_ok = payu.is_valid_response_hash(
        callback.hash_params(),
        salt=settings.payu_merchant_salt,
        received_hash=callback.hash,
    )
    payment = await PaymentsRepo.get_by_gateway_txn_id_for_update(session, callback.txnid)
    if not hash_ok:
        logger.warning(
            "payu_response_hash_mismatch",
            txn_id=callback.txnid,
            status=callback.status,
            has_record=payment is not None,
            enforced=settings.payu_enforce_response_hash,
        )
        # Without a stored record there is nothing server-side to anchor the callback to.
        if settings.payu_enforce_response_hash or payment is None:
            raise InvalidSignatureError("Invalid payment hash")

    if callback.status != PAYU_SUCCESS_STATUS:
        # Only a signed callback may move a payment out of "created".
        if hash_ok and payment is not None and payment.status == "created":
            payment.status = "failed"
            payment.gateway_payment_id = callback.mihpayid
            payment.updated_at = now_utc
        logger.info(
            "payu_payment_not_successful",
            txn_id=callback.txnid,
            status=callback.status,
            signed=hash_ok,
        )
        return FulfillmentResult(
            success=False,
            payment_id=payment.id if payment is not None else "",
            status="failed" if payment is None or hash_ok else payment.status,
        )

    return await fulfill(
        session,
        gateway=GATEWAY_PAYU,
        gateway_txn_id=callback.txnid,
        gateway_payment_id=callback.mihpayid,
        echo=callback.echo() if hash_ok else None,
        now_utc=now_utc,
    )


async def verify_razorpay(
    session: AsyncSession,
    callback: RazorpayCallback,
    *,
    now_utc: datetime,
) -> FulfillmentResult:
    if (
        not callback.razorpay_order_id
        or not callback.razorpay_payment_id
        or not callback.razorpay_signature
    ):
        raise ValidationError("Missing payment details")

    credentials = razorpay.get_razorpay_credentials()
    if not razorpay.is_valid_payment_signature(
        order_id=callback.razorpay_order_id,
        payment_id=callback.razorpay_payment_id,
        signature=callback.razorpay_signature,
        key_secret=credentials.key_secret,
    ):
        logger.warning("razorpay_signature_mismatch", order_id=callback.razorpay_order_id)
        raise InvalidSignatureError("Invalid payment signature")

    # The signature covers only the two ids; a lost record comes from the order notes.
    echo: CallbackEcho | None = None
    payment = await PaymentsRepo.get_by_gateway_txn_id_for_update(
        session,
        callback.razorpay_order_id,
    )
    if payment is None:
        order = await razorpay.fetch_order(
            credentials=credentials,
            order_id=callback.razorpay_order_id,
        )
        echo = _order_echo(order)
        claimed = (callback.purchase_type or echo.purchase_type, callback.item_id or echo.item_id)
        if claimed != (echo.purchase_type, echo.item_id):
            logger.warning(
                "razorpay_order_claim_mismatch",
                order_id=callback.razorpay_order_id,
                claimed_type=claimed[0],
                claimed_item=claimed[1],
                order_type=echo.purchase_type,
                order_item=echo.item_id,
            )
            raise PaymentClaimMismatchError("Payment does not match the order")

    return await fulfill(
        session,
        gateway=GATEWAY_RAZORPAY,
        gateway_txn_id=callback.razorpay_order_id,
        gateway_payment_id=callback.razorpay_payment_id,
        echo=echo,
        now_utc=now_utc,
    )
