from __future__ import annotations

from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, Index, Integer, String, text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from app.db.models.base import Base


class Payment(Base):
    __tablename__ = "payments"
    __table_args__ = (
        CheckConstraint("gateway IN ('PAYU','RAZORPAY')", name="ck_payments_gateway"),
        CheckConstraint(
            "purchase_type IN ('bundle','upsell','coins','report')",
            name="ck_payments_purchase_type",
        ),
        CheckConstraint("status IN ('created','paid','failed')", name="ck_payments_status"),
        CheckConstraint("amount_minor > 0", name="ck_payments_amount_positive"),
        CheckConstraint("coins >= 0", name="ck_payments_coins_non_negative"),
        Index("idx_payments_status_created", "status", "created_at"),
        Index("idx_payments_user", "user_id"),
        Index("idx_payments_paid_at", "paid_at"),
    )

    id: Mapped[str] = mapped_column(String(96), primary_key=True)
    gateway: Mapped[str] = mapped_column(String(16), nullable=False)
    gateway_txn_id: Mapped[str] = mapped_column(String(96), unique=True, nullable=False)
    gateway_payment_id: Mapped[str | None] = mapped_column(String(96), nullable=True)
    purchase_type: Mapped[str] = mapped_column(String(16), nullable=False)
    item_id: Mapped[str] = mapped_column(String(64), nullable=False)
    features: Mapped[list[str]] = mapped_column(
        JSONB,
        nullable=False,
        server_default=text("'[]'::jsonb"),
    )
    coins: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text("0"))
    amount_minor: Mapped[int] = mapped_column(Integer, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, server_default=text("'INR'"))
    status: Mapped[str] = mapped_column(String(16), nullable=False)
    user_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    customer_email: Mapped[str | None] = mapped_column(String(320), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    paid_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
