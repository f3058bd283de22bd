from __future__ import annotations

from datetime import datetime, timezone

import structlog
from fastapi import APIRouter, BackgroundTasks
from fastapi.responses import JSONResponse

from app.core.errors import ValidationError
from app.db.session import SessionLocal
from app.economy.payments.service import PaymentService, PayUCallback, RazorpayCallback
from app.economy.payments.types import FulfillmentResult, PaymentInitRequest

from .payments_models import (
    PaymentInitiateRequest,
    PaymentVerifyResponse,
    PayUInitiateResponse,
    PayUVerifyRequest,
    RazorpayOrderResponse,
    RazorpayVerifyRequest,
)

router = APIRouter(prefix="/api/payments", tags=["payments"])
logger = structlog.get_logger(__name__)


def _as_init_request(payload: PaymentInitiateRequest) -> PaymentInitRequest:
    if not payload.item_id:
        raise ValidationError("itemId is required")
    return PaymentInitRequest(
        purchase_type=payload.purchase_type,
        item_id=payload.item_id,
        user_id=payload.user_id,
        email=payload.email,
        first_name=payload.first_name,
    )


def _as_verify_response(result: FulfillmentResult) -> PaymentVerifyResponse:
    return PaymentVerifyResponse(
        success=result.success,
        payment_id=result.payment_id,
        status=result.status,
        idempotent_replay=result.idempotent_replay,
        user_id=result.user_id,
        unlocked_features=result.unlocked_features,
        coins_credited=result.coins_credited,
        coins=result.coins_balance,
    )


@router.post("/payu/initiate", response_model=PayUInitiateResponse)
async def initiate_payu(
    payload: PaymentInitiateRequest,
    background_tasks: BackgroundTasks,
) -> PayUInitiateResponse:
    result, record = await PaymentService.initiate_payu(
        _as_init_request(payload),
        now_utc=datetime.now(timezone.utc),
    )
    # Runs after the response is sent; failures go to the retrying worker task.
    background_tasks.add_task(PaymentService.persist_created_payment, record)
    return PayUInitiateResponse(
        transaction_id=result.txn_id,
        payment_id=record.payment_id,
        amount=result.amount,
        product_info=result.product_info,
        first_name=result.first_name,
        email=result.email,
        hash=result.hash,
        key=result.key,
        **result.udf,
    )


@router.post("/payu/verify", response_model=PaymentVerifyResponse)
async def verify_payu(payload: PayUVerifyRequest) -> PaymentVerifyResponse | JSONResponse:
    callback = PayUCallback(**payload.model_dump())
    async with SessionLocal.begin() as session:
        result = await PaymentService.verify_payu(
            session,
            callback,
            now_utc=datetime.now(timezone.utc),
        )

    response = _as_verify_response(result)
    if not result.success:
        return JSONResponse(
            status_code=400,
            content={
                **response.model_dump(mode="json", by_alias=True),
                "error": "Payment was not successful",
            },
        )
    return response


@router.post("/razorpay/create-order", response_model=RazorpayOrderResponse)
async def create_razorpay_order(
    payload: PaymentInitiateRequest,
    background_tasks: BackgroundTasks,
) -> RazorpayOrderResponse:
    order, record = await PaymentService.initiate_razorpay(
        _as_init_request(payload),
        now_utc=datetime.now(timezone.utc),
    )
    background_tasks.add_task(PaymentService.persist_created_payment, record)
    return RazorpayOrderResponse(
        order_id=order.order_id,
        payment_id=record.payment_id,
        amount=order.amount,
        currency=order.currency,
        key_id=order.key_id,
        description=order.description,
    )


@router.post("/razorpay/verify", response_model=PaymentVerifyResponse)
async def verify_razorpay(payload: RazorpayVerifyRequest) -> PaymentVerifyResponse:
    callback = RazorpayCallback(
        razorpay_order_id=payload.razorpay_order_id,
        razorpay_payment_id=payload.razorpay_payment_id,
        razorpay_signature=payload.razorpay_signature,
        user_id=payload.user_id,
        item_id=payload.item_id,
        purchase_type=payload.purchase_type,
        feature=payload.feature,
        coins=str(payload.coins) if payload.coins is not None else None,
    )
    async with SessionLocal.begin() as session:
        result = await PaymentService.verify_razorpay(
            session,
            callback,
            now_utc=datetime.now(timezone.utc),
        )
    return _as_verify_response(result)
