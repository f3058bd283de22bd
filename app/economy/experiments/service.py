from __future__ import annotations

import random
from collections.abc import Callable, Mapping
from datetime import datetime

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.ab_test_events import ABTestEvent
from app.db.models.ab_tests import ABTest
from app.db.repo.ab_tests_repo import ABTestsRepo
from app.economy.experiments.assignment import (
    DEFAULT_TEST_NAME,
    DEFAULT_VARIANT,
    default_variants,
    page_for,
    pick_variant,
    total_weight,
    weights_sum_to_required_total,
)
from app.economy.experiments.errors import (
    ExperimentExistsError,
    ExperimentNotFoundError,
    InvalidEventTypeError,
    InvalidVariantWeightsError,
)
from app.economy.experiments.stats import (
    EVENT_TYPES,
    RECENT_EVENTS_LIMIT,
    EventRow,
    VariantCounters,
    compute_rates,
    daily_breakdown,
    event_revenue,
)
from app.economy.experiments.types import AssignmentResult, ExperimentDefinition

logger = structlog.get_logger(__name__)

Draw = Callable[[], float]


def _as_definition(test: ABTest) -> ExperimentDefinition:
    return ExperimentDefinition(
        test_id=test.id,
        name=test.name,
        status=test.status,
        variants=dict(test.variants or {}),
        last_reset_at=test.last_reset_at,
        created_at=test.created_at,
        updated_at=test.updated_at,
    )


def _check_weights(variants: Mapping[str, Mapping[str, object]]) -> None:
    if not variants or not weights_sum_to_required_total(variants):
        raise InvalidVariantWeightsError("Variant weights must sum to 100")


class ExperimentService:
    @staticmethod
    async def get_assignment(
        session: AsyncSession,
        *,
        test_id: str,
        visitor_id: str | None,
        now_utc: datetime,
        draw: Draw = random.random,
    ) -> AssignmentResult:
        test = await ABTestsRepo.get_test(session, test_id)
        if test is None:
            await ABTestsRepo.create_test_if_absent(
                session,
                test_id=test_id,
                name=DEFAULT_TEST_NAME,
                status="active",
                variants=default_variants(),
                now_utc=now_utc,
            )
            test = await ABTestsRepo.get_test(session, test_id)
            if test is None:
                raise ExperimentNotFoundError(f"A/B test not found: {test_id}")
            logger.info("ab_test_default_created", test_id=test_id)

        definition = _as_definition(test)
        if test.status != "active":
            return AssignmentResult(
                test_id=test_id,
                variant=DEFAULT_VARIANT,
                page=page_for(DEFAULT_VARIANT, None),
                test=definition,
                message="Test is not active, defaulting to variant A",
            )

        if visitor_id:
            existing = await ABTestsRepo.get_assignment(session, test_id=test_id, visitor_id=visitor_id)
            if existing is not None:
                return AssignmentResult(
                    test_id=test_id,
                    variant=existing.variant,
                    page=page_for(existing.variant, definition.variants),
                    test=definition,
                    cached=True,
                )

        variants = definition.variants or default_variants()
        variant = pick_variant(variants, draw() * total_weight(variants))

        if visitor_id:
            inserted = await ABTestsRepo.insert_assignment_if_absent(
                session,
                test_id=test_id,
                visitor_id=visitor_id,
                variant=variant,
                now_utc=now_utc,
            )
            if not inserted:
                # A concurrent request assigned this visitor first; its choice stands.
                winner = await ABTestsRepo.get_assignment(session, test_id=test_id, visitor_id=visitor_id)
                if winner is not None:
                    variant = winner.variant
            logger.info(
                "ab_test_variant_assigned",
                test_id=test_id,
                visitor_id=visitor_id,
                variant=variant,
                raced=not inserted,
            )

        return AssignmentResult(
            test_id=test_id,
            variant=variant,
            page=page_for(variant, variants),
            test=definition,
        )

    @staticmethod
    async def update_test(
        session: AsyncSession,
        *,
        test_id: str,
        now_utc: datetime,
        variants: dict[str, dict[str, object]] | None = None,
        status: str | None = None,
        name: str | None = None,
    ) -> ExperimentDefinition:
        if variants is not None:
            _check_weights(variants)

        test = await ABTestsRepo.get_test(session, test_id)
        if test is None:
            await ABTestsRepo.create_test_if_absent(
                session,
                test_id=test_id,
                name=name or DEFAULT_TEST_NAME,
                status=status or "active",
                variants=variants or default_variants(),
                now_utc=now_utc,
            )
            test = await ABTestsRepo.get_test(session, test_id)
            if test is None:
                raise ExperimentNotFoundError(f"A/B test not found: {test_id}")
        else:
            if variants is not None:
                test.variants = variants
            if status:
                test.status = status
            if name:
                test.name = name
            test.updated_at = now_utc

        logger.info("ab_test_updated", test_id=test_id, status=test.status)
        return _as_definition(test)

    @staticmethod
    async def track_event(
        session: AsyncSession,
        *,
        test_id: str,
        variant: str,
        event_type: str,
        now_utc: datetime,
        visitor_id: str | None = None,
        user_id: str | None = None,
        metadata: dict[str, object] | None = None,
    ) -> None:
        if event_type not in EVENT_TYPES:
            raise InvalidEventTypeError(
                f"Invalid eventType. Must be one of: {', '.join(EVENT_TYPES)}"
            )
        if await ABTestsRepo.get_test(session, test_id) is None:
            raise ExperimentNotFoundError(f"A/B test not found: {test_id}")

        await ABTestsRepo.add_event(
            session,
            event=ABTestEvent(
                test_id=test_id,
                variant=variant,
                event_type=event_type,
                visitor_id=visitor_id,
                user_id=user_id,
                metadata_=metadata or {},
                created_at=now_utc,
            ),
        )
        await ABTestsRepo.increment_stats(
            session,
            test_id=test_id,
            variant=variant,
            impressions=1 if event_type == "impression" else 0,
            conversions=1 if event_type == "conversion" else 0,
            bounces=1 if event_type == "bounce" else 0,
            checkouts_started=1 if event_type == "checkout_started" else 0,
            revenue=event_revenue(metadata if event_type == "conversion" else None),
            now_utc=now_utc,
        )

    @staticmethod
    async def _variant_counters(
        session: AsyncSession,
        *,
        test_id: str,
        variant_names: list[str],
    ) -> dict[str, VariantCounters]:
        counters = {name: VariantCounters() for name in variant_names}
        for row in await ABTestsRepo.list_stats(session, test_id=test_id):
            counters[row.variant] = VariantCounters(
                impressions=row.impressions or 0,
                conversions=row.conversions or 0,
                bounces=row.bounces or 0,
                checkouts_started=row.checkouts_started or 0,
                total_revenue=row.total_revenue or 0,
            )
        return counters

    @staticmethod
    async def get_stats(session: AsyncSession, *, test_id: str) -> dict[str, object]:
        test = await ABTestsRepo.get_test(session, test_id)
        variant_names = list((test.variants if test else None) or default_variants())
        counters = await ExperimentService._variant_counters(
            session,
            test_id=test_id,
            variant_names=variant_names,
        )
        return {
            "testId": test_id,
            "variants": {name: compute_rates(value) for name, value in counters.items()},
        }

    @staticmethod
    async def list_tests_with_stats(session: AsyncSession) -> list[dict[str, object]]:
        stats_by_test: dict[str, dict[str, VariantCounters]] = {}
        for row in await ABTestsRepo.list_stats(session):
            stats_by_test.setdefault(row.test_id, {})[row.variant] = VariantCounters(
                impressions=row.impressions or 0,
                conversions=row.conversions or 0,
            )

        tests: list[dict[str, object]] = []
        for test in await ABTestsRepo.list_tests(session):
            per_variant = stats_by_test.get(test.id, {})
            quick_stats: dict[str, object] = {
                "totalImpressions": sum(c.impressions for c in per_variant.values()),
                "totalConversions": sum(c.conversions for c in per_variant.values()),
            }
            for name in test.variants or {}:
                rates = compute_rates(per_variant.get(name, VariantCounters()))
                quick_stats[f"variant{name}ConversionRate"] = rates["conversionRate"]
            tests.append({**_as_definition(test).to_dict(), "quickStats": quick_stats})
        return tests

    @staticmethod
    async def get_test_detail(session: AsyncSession, *, test_id: str) -> dict[str, object]:
        test = await ABTestsRepo.get_test(session, test_id)
        if test is None:
            raise ExperimentNotFoundError(f"A/B test not found: {test_id}")

        definition = _as_definition(test)
        variant_names = list(definition.variants)
        counters = await ExperimentService._variant_counters(
            session,
            test_id=test_id,
            variant_names=variant_names,
        )
        events = await ABTestsRepo.list_events(session, test_id=test_id)
        rows = [
            EventRow(
                variant=event.variant,
                event_type=event.event_type,
                created_at=event.created_at,
                metadata=event.metadata_ or {},
            )
            for event in events
        ]
        return {
            "test": definition.to_dict(),
            "stats": {name: compute_rates(value) for name, value in counters.items()},
            "dailyBreakdown": daily_breakdown(rows, variants=variant_names),
            "recentEvents": [
                {
                    "id": event.id,
                    "variant": event.variant,
                    "eventType": event.event_type,
                    "visitorId": event.visitor_id,
                    "userId": event.user_id,
                    "metadata": event.metadata_ or {},
                    "createdAt": event.created_at.isoformat(),
                }
                for event in events[:RECENT_EVENTS_LIMIT]
            ],
        }

    @staticmethod
    async def create_test(
        session: AsyncSession,
        *,
        test_id: str,
        name: str,
        now_utc: datetime,
        variants: dict[str, dict[str, object]] | None = None,
    ) -> ExperimentDefinition:
        resolved_variants = variants or default_variants()
        _check_weights(resolved_variants)
        created = await ABTestsRepo.create_test_if_absent(
            session,
            test_id=test_id,
            name=name,
            status="active",
            variants=resolved_variants,
            now_utc=now_utc,
        )
        if not created:
            raise ExperimentExistsError("Test with this ID already exists")

        logger.info("ab_test_created", test_id=test_id)
        return ExperimentDefinition(
            test_id=test_id,
            name=name,
            status="active",
            variants=resolved_variants,
            created_at=now_utc,
            updated_at=now_utc,
        )

    @staticmethod
    async def delete_test(session: AsyncSession, *, test_id: str) -> None:
        if await ABTestsRepo.delete_test(session, test_id) == 0:
            raise ExperimentNotFoundError(f"A/B test not found: {test_id}")
        logger.info("ab_test_deleted", test_id=test_id)

    @staticmethod
    async def reset_analytics(
        session: AsyncSession,
        *,
        test_id: str,
        now_utc: datetime,
    ) -> dict[str, int]:
        test = await ABTestsRepo.get_test(session, test_id)
        if test is None:
            raise ExperimentNotFoundError(f"A/B test not found: {test_id}")

        removed = await ABTestsRepo.clear_analytics(session, test_id=test_id)
        test.last_reset_at = now_utc
        test.updated_at = now_utc
        logger.info("ab_test_analytics_reset", test_id=test_id, **removed)
        return removed
