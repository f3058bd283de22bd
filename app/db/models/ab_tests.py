from __future__ import annotations

from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, String, Text, text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from app.db.models.base import Base


class ABTest(Base):
    __tablename__ = "ab_tests"
    __table_args__ = (
        CheckConstraint("status IN ('active','paused','completed')", name="ck_ab_tests_status"),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False)
    # {"A": {"weight": 50, "page": "step-17"}, ...}; JSONB drops key order, draws go by name.
    variants: Mapped[dict[str, dict[str, object]]] = mapped_column(JSONB, nullable=False)
    last_reset_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
