from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, ForeignKey, Integer, Numeric, String, UniqueConstraint, text
from sqlalchemy.orm import Mapped, mapped_column

from app.db.models.base import Base


class ABTestStats(Base):
    __tablename__ = "ab_test_stats"
    __table_args__ = (UniqueConstraint("test_id", "variant", name="uq_ab_test_stats_test_variant"),)

    id: Mapped[str] = mapped_column(String(96), primary_key=True)
    test_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("ab_tests.id", ondelete="CASCADE"),
        nullable=False,
    )
    variant: Mapped[str] = mapped_column(String(16), nullable=False)
    impressions: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text("0"))
    conversions: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text("0"))
    bounces: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text("0"))
    checkouts_started: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text("0"))
    total_revenue: Mapped[Decimal] = mapped_column(
        Numeric(14, 2),
        nullable=False,
        server_default=text("0"),
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
