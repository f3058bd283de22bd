from __future__ import annotations

from datetime import datetime

from sqlalchemy import func, select, update
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.payments import Payment


class PaymentsRepo:
    @staticmethod
    async def get_by_id(session: AsyncSession, payment_id: str) -> Payment | None:
        return await session.get(Payment, payment_id)

    @staticmethod
    async def get_by_gateway_txn_id_for_update(
        session: AsyncSession,
        gateway_txn_id: str,
    ) -> Payment | None:
        stmt = select(Payment).where(Payment.gateway_txn_id == gateway_txn_id).with_for_update()
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def insert_if_absent(session: AsyncSession, *, values: dict[str, object]) -> bool:
        stmt = (
            insert(Payment)
            .values(**values)
            .on_conflict_do_nothing(index_elements=[Payment.id])
            .returning(Payment.id)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none() is not None

    @staticmethod
    async def list_all(session: AsyncSession) -> list[Payment]:
        stmt = select(Payment).order_by(Payment.created_at.desc())
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def expire_stale_created(session: AsyncSession, *, older_than_utc: datetime, now_utc: datetime) -> int:
        stmt = (
            update(Payment)
            .where(
                Payment.status == "created",
                Payment.created_at <= older_than_utc,
            )
            .values(status="failed", updated_at=now_utc)
        )
        result = await session.execute(stmt)
        return int(result.rowcount or 0)

    @staticmethod
    async def count_paid_with_owner(session: AsyncSession) -> int:
        stmt = select(func.count(Payment.id)).where(
            Payment.status == "paid",
            Payment.user_id.is_not(None),
        )
        result = await session.execute(stmt)
        return int(result.scalar_one() or 0)

    @staticmethod
    async def reassign_user(session: AsyncSession, *, from_user_id: str, to_user_id: str) -> int:
        stmt = update(Payment).where(Payment.user_id == from_user_id).values(user_id=to_user_id)
        result = await session.execute(stmt)
        return int(result.rowcount or 0)
