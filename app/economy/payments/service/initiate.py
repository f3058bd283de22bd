from __future__ import annotations

from datetime import datetime

import structlog

from app.core.config import get_settings
from app.core.errors import ConfigurationError
from app.economy.payments.types import (
    PaymentInitRequest,
    PaymentRecord,
    PayUInitResult,
    RazorpayOrderResult,
)
from app.economy.pricing.catalog import PurchaseItem
from app.economy.pricing.service import PricingService
from app.services import payu, razorpay

from .constants import (
    CURRENCY,
    DEFAULT_EMAIL,
    DEFAULT_FIRST_NAME,
    GATEWAY_PAYU,
    GATEWAY_RAZORPAY,
)
from .utilities import build_payment_id, build_receipt, build_transaction_id

logger = structlog.get_logger(__name__)


def _build_record(
    *,
    gateway: str,
    gateway_txn_id: str,
    item: PurchaseItem,
    request: PaymentInitRequest,
    now_utc: datetime,
) -> PaymentRecord:
    return PaymentRecord(
        payment_id=build_payment_id(gateway_txn_id),
        gateway=gateway,
        gateway_txn_id=gateway_txn_id,
        purchase_type=item.kind,
        item_id=item.item_id,
        features=list(item.features),
        coins=item.coins,
        amount_minor=item.amount_minor,
        currency=CURRENCY,
        user_id=request.user_id or None,
        customer_email=request.email or None,
        created_at=now_utc,
    )


async def initiate_payu(
    request: PaymentInitRequest,
    *,
    now_utc: datetime,
) -> tuple[PayUInitResult, PaymentRecord]:
    settings = get_settings()
    if not settings.payu_merchant_key or not settings.payu_merchant_salt:
        raise ConfigurationError("PayU not configured")

    item = await PricingService.resolve_item(request.purchase_type, request.item_id)
    txn_id = build_transaction_id(user_id=request.user_id, now_utc=now_utc)
    udf = {
        "udf1": request.user_id or "",
        "udf2": item.kind,
        "udf3": item.item_id,
        "udf4": item.feature,
        "udf5": str(item.coins) if item.coins else "",
    }
    params = {
        "key": settings.payu_merchant_key,
        "txnid": txn_id,
        "amount": item.amount_text,
        "productinfo": item.title,
        "firstname": (request.first_name or "").strip() or DEFAULT_FIRST_NAME,
        "email": (request.email or "").strip() or DEFAULT_EMAIL,
        **udf,
    }
    request_hash = payu.build_request_hash(params, salt=settings.payu_merchant_salt)

    record = _build_record(
        gateway=GATEWAY_PAYU,
        gateway_txn_id=txn_id,
        item=item,
        request=request,
        now_utc=now_utc,
    )
    logger.info(
        "payu_payment_initiated",
        txn_id=txn_id,
        purchase_type=item.kind,
        item_id=item.item_id,
        amount=params["amount"],
        user_id=request.user_id,
    )
    return (
        PayUInitResult(
            txn_id=txn_id,
            amount=params["amount"],
            product_info=params["productinfo"],
            hash=request_hash,
            key=settings.payu_merchant_key,
            first_name=params["firstname"],
            email=params["email"],
            udf=udf,
        ),
        record,
    )


async def initiate_razorpay(
    request: PaymentInitRequest,
    *,
    now_utc: datetime,
) -> tuple[RazorpayOrderResult, PaymentRecord]:
    credentials = razorpay.get_razorpay_credentials()
    item = await PricingService.resolve_item(request.purchase_type, request.item_id)
    receipt = build_receipt(user_id=request.user_id, now_utc=now_utc)

    order = await razorpay.create_order(
        credentials=credentials,
        amount_minor=item.amount_minor,
        currency=CURRENCY,
        receipt=receipt,
        notes={
            "type": item.kind,
            "itemId": item.item_id,
            "userId": request.user_id or "",
            "feature": item.feature,
            "coins": str(item.coins),
        },
    )
    order_id = str(order["id"])

    record = _build_record(
        gateway=GATEWAY_RAZORPAY,
        gateway_txn_id=order_id,
        item=item,
        request=request,
        now_utc=now_utc,
    )
    logger.info(
        "razorpay_order_created",
        order_id=order_id,
        receipt=receipt,
        purchase_type=item.kind,
        item_id=item.item_id,
        amount_minor=item.amount_minor,
        user_id=request.user_id,
    )
    return (
        RazorpayOrderResult(
            order_id=order_id,
            amount=item.amount_minor,
            currency=CURRENCY,
            key_id=credentials.key_id,
            description=item.title,
        ),
        record,
    )
