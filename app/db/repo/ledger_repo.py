from __future__ import annotations

from sqlalchemy import distinct, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.ledger_entries import LedgerEntry


class LedgerRepo:
    @staticmethod
    async def get_by_idempotency_key(
        session: AsyncSession, idempotency_key: str
    ) -> LedgerEntry | None:
        stmt = select(LedgerEntry).where(LedgerEntry.idempotency_key == idempotency_key)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def create(session: AsyncSession, *, entry: LedgerEntry) -> LedgerEntry:
        session.add(entry)
        await session.flush()
        return entry

    @staticmethod
    async def count_distinct_payment_credits(session: AsyncSession) -> int:
        stmt = select(func.count(distinct(LedgerEntry.payment_id))).where(
            LedgerEntry.payment_id.is_not(None),
            LedgerEntry.source == "PAYMENT",
        )
        result = await session.execute(stmt)
        return int(result.scalar_one() or 0)

    @staticmethod
    async def reassign_user(session: AsyncSession, *, from_user_id: str, to_user_id: str) -> int:
        stmt = (
            update(LedgerEntry)
            .where(LedgerEntry.user_id == from_user_id)
            .values(user_id=to_user_id)
        )
        result = await session.execute(stmt)
        return int(result.rowcount or 0)
