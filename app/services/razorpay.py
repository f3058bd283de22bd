from __future__ import annotations

import hashlib
import hmac
import secrets
from dataclasses import dataclass
from typing import Any

import httpx
import structlog

from app.core.config import get_settings
from app.core.errors import ConfigurationError, UpstreamError

logger = structlog.get_logger(__name__)


@dataclass(frozen=True, slots=True)
class RazorpayCredentials:
    key_id: str
    key_secret: str


def get_razorpay_credentials() -> RazorpayCredentials:
    settings = get_settings()
    if not settings.razorpay_key_id or not settings.razorpay_key_secret:
        raise ConfigurationError("Razorpay not configured")
    return RazorpayCredentials(
        key_id=settings.razorpay_key_id,
        key_secret=settings.razorpay_key_secret,
    )


def compute_payment_signature(*, order_id: str, payment_id: str, key_secret: str) -> str:
    message = f"{order_id}|{payment_id}".encode("utf-8")
    return hmac.new(key_secret.encode("utf-8"), message, hashlib.sha256).hexdigest()


def is_valid_payment_signature(
    *,
    order_id: str,
    payment_id: str,
    signature: str,
    key_secret: str,
) -> bool:
    expected = compute_payment_signature(
        order_id=order_id,
        payment_id=payment_id,
        key_secret=key_secret,
    )
    return secrets.compare_digest(expected, signature)


async def create_order(
    *,
    credentials: RazorpayCredentials,
    amount_minor: int,
    currency: str,
    receipt: str,
    notes: dict[str, str],
) -> dict[str, Any]:
    settings = get_settings()
    url = f"{settings.razorpay_api_base_url.rstrip('/')}/orders"
    body = {
        "amount": amount_minor,
        "currency": currency,
        "receipt": receipt,
        "notes": notes,
    }
    try:
        async with httpx.AsyncClient(timeout=settings.razorpay_timeout_seconds) as client:
            response = await client.post(
                url,
                json=body,
                auth=(credentials.key_id, credentials.key_secret),
            )
    except httpx.HTTPError as exc:
        logger.warning("razorpay_order_request_failed", receipt=receipt, error=str(exc))
        raise UpstreamError("Failed to reach payment gateway") from exc

    if response.status_code >= 400:
        logger.warning(
            "razorpay_order_rejected",
            receipt=receipt,
            status_code=response.status_code,
            body=response.text[:500],
        )
        raise UpstreamError("Failed to create order", upstream_status=response.status_code)

    order = response.json()
    if not isinstance(order, dict) or not order.get("id"):
        raise UpstreamError("Payment gateway returned an invalid order")
    return order


async def fetch_order(*, credentials: RazorpayCredentials, order_id: str) -> dict[str, Any]:
    settings = get_settings()
    url = f"{settings.razorpay_api_base_url.rstrip('/')}/orders/{order_id}"
    try:
        async with httpx.AsyncClient(timeout=settings.razorpay_timeout_seconds) as client:
            response = await client.get(url, auth=(credentials.key_id, credentials.key_secret))
    except httpx.HTTPError as exc:
        logger.warning("razorpay_order_fetch_failed", order_id=order_id, error=str(exc))
        raise UpstreamError("Failed to reach payment gateway") from exc

    if response.status_code >= 400:
        logger.warning(
            "razorpay_order_fetch_rejected",
            order_id=order_id,
            status_code=response.status_code,
            body=response.text[:500],
        )
        raise UpstreamError("Failed to fetch order", upstream_status=response.status_code)

    order = response.json()
    if not isinstance(order, dict) or order.get("id") != order_id:
        raise UpstreamError("Payment gateway returned an invalid order")
    return order
