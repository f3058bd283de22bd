from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import delete, select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.ab_test_assignments import ABTestAssignment
from app.db.models.ab_test_events import ABTestEvent
from app.db.models.ab_test_stats import ABTestStats
from app.db.models.ab_tests import ABTest


class ABTestsRepo:
    @staticmethod
    async def get_test(session: AsyncSession, test_id: str) -> ABTest | None:
        return await session.get(ABTest, test_id)

    @staticmethod
    async def list_tests(session: AsyncSession) -> list[ABTest]:
        stmt = select(ABTest).order_by(ABTest.created_at.desc())
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def create_test_if_absent(
        session: AsyncSession,
        *,
        test_id: str,
        name: str,
        status: str,
        variants: dict[str, dict[str, object]],
        now_utc: datetime,
    ) -> bool:
        stmt = (
            insert(ABTest)
            .values(
                id=test_id,
                name=name,
                status=status,
                variants=variants,
                created_at=now_utc,
                updated_at=now_utc,
            )
            .on_conflict_do_nothing(index_elements=[ABTest.id])
            .returning(ABTest.id)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none() is not None

    @staticmethod
    async def delete_test(session: AsyncSession, test_id: str) -> int:
        result = await session.execute(delete(ABTest).where(ABTest.id == test_id))
        return int(result.rowcount or 0)

    @staticmethod
    async def get_assignment(
        session: AsyncSession,
        *,
        test_id: str,
        visitor_id: str,
    ) -> ABTestAssignment | None:
        stmt = select(ABTestAssignment).where(
            ABTestAssignment.test_id == test_id,
            ABTestAssignment.visitor_id == visitor_id,
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def insert_assignment_if_absent(
        session: AsyncSession,
        *,
        test_id: str,
        visitor_id: str,
        variant: str,
        now_utc: datetime,
    ) -> bool:
        stmt = (
            insert(ABTestAssignment)
            .values(
                id=f"{test_id}_{visitor_id}",
                test_id=test_id,
                visitor_id=visitor_id,
                variant=variant,
                assigned_at=now_utc,
            )
            .on_conflict_do_nothing(
                index_elements=[ABTestAssignment.test_id, ABTestAssignment.visitor_id]
            )
            .returning(ABTestAssignment.id)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none() is not None

    @staticmethod
    async def add_event(session: AsyncSession, *, event: ABTestEvent) -> ABTestEvent:
        session.add(event)
        await session.flush()
        return event

    @staticmethod
    async def increment_stats(
        session: AsyncSession,
        *,
        test_id: str,
        variant: str,
        impressions: int = 0,
        conversions: int = 0,
        bounces: int = 0,
        checkouts_started: int = 0,
        revenue: Decimal = Decimal("0"),
        now_utc: datetime,
    ) -> None:
        stmt = insert(ABTestStats).values(
            id=f"{test_id}_{variant}",
            test_id=test_id,
            variant=variant,
            impressions=impressions,
            conversions=conversions,
            bounces=bounces,
            checkouts_started=checkouts_started,
            total_revenue=revenue,
            created_at=now_utc,
            updated_at=now_utc,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[ABTestStats.id],
            set_={
                "impressions": ABTestStats.impressions + impressions,
                "conversions": ABTestStats.conversions + conversions,
                "bounces": ABTestStats.bounces + bounces,
                "checkouts_started": ABTestStats.checkouts_started + checkouts_started,
                "total_revenue": ABTestStats.total_revenue + revenue,
                "updated_at": now_utc,
            },
        )
        await session.execute(stmt)

    @staticmethod
    async def list_stats(session: AsyncSession, *, test_id: str | None = None) -> list[ABTestStats]:
        stmt = select(ABTestStats).order_by(ABTestStats.test_id, ABTestStats.variant)
        if test_id is not None:
            stmt = stmt.where(ABTestStats.test_id == test_id)
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def list_events(
        session: AsyncSession,
        *,
        test_id: str,
        limit: int | None = None,
    ) -> list[ABTestEvent]:
        stmt = (
            select(ABTestEvent)
            .where(ABTestEvent.test_id == test_id)
            .order_by(ABTestEvent.created_at.desc(), ABTestEvent.id.desc())
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def clear_analytics(session: AsyncSession, *, test_id: str) -> dict[str, int]:
        removed: dict[str, int] = {}
        for label, model in (
            ("stats", ABTestStats),
            ("events", ABTestEvent),
            ("assignments", ABTestAssignment),
        ):
            result = await session.execute(delete(model).where(model.test_id == test_id))
            removed[label] = int(result.rowcount or 0)
        return removed
