from __future__ import annotations

from datetime import datetime

from sqlalchemy import BOOLEAN, CheckConstraint, DateTime, Index, Integer, String, Text, text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from app.db.models.base import Base


class User(Base):
    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint("coins >= 0", name="ck_users_coins_non_negative"),
        CheckConstraint(
            "payment_status IS NULL OR payment_status IN ('pending','paid')",
            name="ck_users_payment_status",
        ),
        Index("idx_users_created_at", "created_at"),
        Index("uq_users_email", "email", unique=True, postgresql_where=text("email IS NOT NULL")),
    )

    # Anonymous onboarding ids look like "anon_<...>", registered ids are uuid strings.
    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    email: Mapped[str | None] = mapped_column(String(320), nullable=True)
    name: Mapped[str | None] = mapped_column(Text, nullable=True)
    password_hash: Mapped[str | None] = mapped_column(String(128), nullable=True)
    unlocked_features: Mapped[dict[str, bool]] = mapped_column(
        JSONB,
        nullable=False,
        server_default=text("'{}'::jsonb"),
    )
    coins: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text("0"))
    purchased_bundle: Mapped[str | None] = mapped_column(String(64), nullable=True)
    purchase_type: Mapped[str | None] = mapped_column(String(32), nullable=True)
    payment_status: Mapped[str | None] = mapped_column(String(16), nullable=True)
    subscription_plan: Mapped[str | None] = mapped_column(String(32), nullable=True)
    is_dev_tester: Mapped[bool] = mapped_column(BOOLEAN, nullable=False, server_default=text("false"))
    entitlements_version: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text("0"))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=text("now()"),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=text("now()"),
    )
