from __future__ import annotations

from datetime import datetime

from sqlalchemy import BigInteger, CheckConstraint, DateTime, Integer, String, text
from sqlalchemy.orm import Mapped, mapped_column

from app.db.models.base import Base


class ReconciliationRun(Base):
    __tablename__ = "reconciliation_runs"
    __table_args__ = (CheckConstraint("status IN ('OK','DIFF')", name="ck_reconciliation_runs_status"),)

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    finished_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    status: Mapped[str] = mapped_column(String(8), nullable=False)
    paid_payments_count: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text("0"))
    credited_payments_count: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text("0"))
    diff_count: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text("0"))
