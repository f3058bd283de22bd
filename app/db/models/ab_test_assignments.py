from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.db.models.base import Base


class ABTestAssignment(Base):
    __tablename__ = "ab_test_assignments"
    __table_args__ = (
        UniqueConstraint("test_id", "visitor_id", name="uq_ab_test_assignments_test_visitor"),
        Index("idx_ab_test_assignments_test", "test_id"),
    )

    id: Mapped[str] = mapped_column(String(160), primary_key=True)
    test_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("ab_tests.id", ondelete="CASCADE"),
        nullable=False,
    )
    visitor_id: Mapped[str] = mapped_column(String(96), nullable=False)
    variant: Mapped[str] = mapped_column(String(16), nullable=False)
    assigned_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
