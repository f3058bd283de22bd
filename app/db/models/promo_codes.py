from __future__ import annotations

from datetime import datetime

from sqlalchemy import BOOLEAN, CheckConstraint, DateTime, Integer, String, text
from sqlalchemy.orm import Mapped, mapped_column

from app.db.models.base import Base


class PromoCode(Base):
    __tablename__ = "promo_codes"
    __table_args__ = (
        CheckConstraint(
            "discount_type IS NULL OR discount_type IN ('percent','fixed')",
            name="ck_promo_codes_discount_type",
        ),
        CheckConstraint("max_uses IS NULL OR max_uses >= 0", name="ck_promo_codes_max_uses"),
        CheckConstraint("used_count >= 0", name="ck_promo_codes_used_count_non_negative"),
    )

    # The code itself is the primary key; lookups try exact, upper and lower forms.
    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    active: Mapped[bool] = mapped_column(BOOLEAN, nullable=False, server_default=text("true"))
    expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    max_uses: Mapped[int | None] = mapped_column(Integer, nullable=True)
    used_count: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text("0"))
    last_used_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    discount: Mapped[int | None] = mapped_column(Integer, nullable=True)
    discount_type: Mapped[str | None] = mapped_column(String(16), nullable=True)
    coins: Mapped[int | None] = mapped_column(Integer, nullable=True)
    plan: Mapped[str | None] = mapped_column(String(32), nullable=True)
    unlock_all: Mapped[bool | None] = mapped_column(BOOLEAN, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=text("now()"),
    )
