from __future__ import annotations

from datetime import datetime

import structlog
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.repo.settings_repo import SettingsRepo
from app.db.session import SessionLocal
from app.economy.entitlements.rules import PURCHASE_TYPES
from app.economy.pricing.catalog import (
    DEFAULT_PRICING,
    PRICING_SETTINGS_KEY,
    PricingConfig,
    PurchaseItem,
)
from app.economy.pricing.errors import InvalidItemError, InvalidPurchaseTypeError, PricingError

logger = structlog.get_logger(__name__)


class PricingService:
    @staticmethod
    async def get_pricing() -> PricingConfig:
        """Current pricing, or the built-in defaults when nothing usable is stored."""
        try:
            async with SessionLocal() as session:
                raw = await SettingsRepo.get_value(session, PRICING_SETTINGS_KEY)
        except (SQLAlchemyError, OSError):
            logger.warning("pricing_read_failed_using_defaults", exc_info=True)
            return DEFAULT_PRICING

        if raw is None:
            return DEFAULT_PRICING

        try:
            return PricingConfig.model_validate(raw)
        except PydanticValidationError as exc:
            logger.warning(
                "pricing_stored_value_invalid_using_defaults",
                error_count=exc.error_count(),
            )
            return DEFAULT_PRICING

    @staticmethod
    async def resolve_item(purchase_type: str, item_id: str) -> PurchaseItem:
        if purchase_type not in PURCHASE_TYPES:
            raise InvalidPurchaseTypeError(f"Invalid purchase type: {purchase_type}")

        pricing = await PricingService.get_pricing()
        item = pricing.resolve(purchase_type, item_id)
        if item is None:
            raise InvalidItemError(f"Invalid {purchase_type}: {item_id}")
        return item

    @staticmethod
    async def update_pricing(
        session: AsyncSession,
        *,
        raw: dict[str, object] | None,
        now_utc: datetime,
    ) -> PricingConfig:
        if not raw:
            raise PricingError("Pricing data required")

        try:
            pricing = PricingConfig.model_validate(raw)
        except PydanticValidationError as exc:
            raise PricingError(f"Invalid pricing data: {exc.error_count()} errors") from exc

        await SettingsRepo.upsert_value(
            session,
            key=PRICING_SETTINGS_KEY,
            value=pricing.to_storage(),
            now_utc=now_utc,
        )
        logger.info(
            "pricing_updated",
            bundles=len(pricing.bundles),
            upsells=len(pricing.upsells),
            reports=len(pricing.reports),
            coin_packages=len(pricing.coin_packages),
        )
        return pricing
