from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    text,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from app.db.models.base import Base


class LedgerEntry(Base):
    __tablename__ = "ledger_entries"
    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_ledger_entries_amount_positive"),
        CheckConstraint("asset IN ('FEATURE','COINS')", name="ck_ledger_entries_asset"),
        CheckConstraint(
            "source IN ('PAYMENT','PAYMENT_BONUS','PROMO','DEV_TESTER','ACCOUNT_MERGE')",
            name="ck_ledger_entries_source",
        ),
        Index("idx_ledger_user_created", "user_id", "created_at"),
        Index("idx_ledger_payment", "payment_id"),
    )

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    user_id: Mapped[str] = mapped_column(String(64), ForeignKey("users.id"), nullable=False)
    payment_id: Mapped[str | None] = mapped_column(
        String(96),
        ForeignKey("payments.id"),
        nullable=True,
    )
    asset: Mapped[str] = mapped_column(String(16), nullable=False)
    # Feature key for FEATURE entries, empty for COINS.
    feature: Mapped[str | None] = mapped_column(String(32), nullable=True)
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    balance_after: Mapped[int | None] = mapped_column(Integer, nullable=True)
    source: Mapped[str] = mapped_column(String(16), nullable=False)
    idempotency_key: Mapped[str] = mapped_column(String(160), unique=True, nullable=False)
    metadata_: Mapped[dict[str, object]] = mapped_column(
        "metadata",
        JSONB,
        nullable=False,
        server_default=text("'{}'::jsonb"),
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
