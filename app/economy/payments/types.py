from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime


@dataclass(slots=True)
class PaymentInitRequest:
    purchase_type: str
    item_id: str
    user_id: str | None = None
    email: str | None = None
    first_name: str | None = None


@dataclass(slots=True)
class PaymentRecord:
    """A `created` payment row waiting to be persisted."""

    payment_id: str
    gateway: str
    gateway_txn_id: str
    purchase_type: str
    item_id: str
    features: list[str]
    coins: int
    amount_minor: int
    currency: str
    user_id: str | None
    customer_email: str | None
    created_at: datetime

    def as_row(self) -> dict[str, object]:
        return {
            "id": self.payment_id,
            "gateway": self.gateway,
            "gateway_txn_id": self.gateway_txn_id,
            "purchase_type": self.purchase_type,
            "item_id": self.item_id,
            "features": list(self.features),
            "coins": self.coins,
            "amount_minor": self.amount_minor,
            "currency": self.currency,
            "status": "created",
            "user_id": self.user_id,
            "customer_email": self.customer_email,
            "created_at": self.created_at,
            "updated_at": self.created_at,
        }

    def to_payload(self) -> dict[str, object]:
        payload = self.as_row()
        payload["created_at"] = self.created_at.isoformat()
        payload.pop("updated_at")
        payload.pop("status")
        return payload

    @classmethod
    def from_payload(cls, payload: dict[str, object]) -> PaymentRecord:
        return cls(
            payment_id=str(payload["id"]),
            gateway=str(payload["gateway"]),
            gateway_txn_id=str(payload["gateway_txn_id"]),
            purchase_type=str(payload["purchase_type"]),
            item_id=str(payload["item_id"]),
            features=[str(feature) for feature in payload.get("features") or []],
            coins=int(payload.get("coins") or 0),
            amount_minor=int(payload["amount_minor"]),
            currency=str(payload.get("currency") or "INR"),
            user_id=_optional_str(payload.get("user_id")),
            customer_email=_optional_str(payload.get("customer_email")),
            created_at=datetime.fromisoformat(str(payload["created_at"])),
        )


@dataclass(slots=True)
class PayUInitResult:
    txn_id: str
    amount: str
    product_info: str
    hash: str
    key: str
    first_name: str
    email: str
    udf: dict[str, str] = field(default_factory=dict)


@dataclass(slots=True)
class RazorpayOrderResult:
    order_id: str
    amount: int
    currency: str
    key_id: str
    description: str


@dataclass(slots=True)
class CallbackEcho:
    """Purchase details a trusted source reports for a checkout that has no stored record."""

    user_id: str | None
    purchase_type: str
    item_id: str
    feature: str | None
    coins: int
    customer_email: str | None


@dataclass(slots=True)
class FulfillmentResult:
    success: bool
    payment_id: str
    status: str
    idempotent_replay: bool = False
    user_id: str | None = None
    unlocked_features: dict[str, bool] | None = None
    coins_credited: int = 0
    coins_balance: int | None = None


def _optional_str(value: object) -> str | None:
    return str(value) if value else None
