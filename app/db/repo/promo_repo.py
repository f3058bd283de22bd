from __future__ import annotations

from collections.abc import Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.promo_codes import PromoCode


class PromoRepo:
    @staticmethod
    async def get_by_id(session: AsyncSession, code: str) -> PromoCode | None:
        return await session.get(PromoCode, code)

    @staticmethod
    async def get_first_for_update(
        session: AsyncSession,
        candidates: Sequence[str],
    ) -> PromoCode | None:
        """Locks and returns the first existing code in candidate order."""
        for candidate in candidates:
            stmt = select(PromoCode).where(PromoCode.id == candidate).with_for_update()
            result = await session.execute(stmt)
            promo = result.scalar_one_or_none()
            if promo is not None:
                return promo
        return None

    @staticmethod
    async def create(session: AsyncSession, *, promo_code: PromoCode) -> PromoCode:
        session.add(promo_code)
        await session.flush()
        return promo_code
