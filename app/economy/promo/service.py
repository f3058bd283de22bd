from __future__ import annotations

from datetime import datetime

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.promo_codes import PromoCode
from app.db.repo.ledger_repo import LedgerRepo
from app.db.repo.promo_repo import PromoRepo
from app.economy.entitlements.rules import FEATURE_KEYS, EntitlementGrant
from app.economy.entitlements.service import EntitlementService
from app.economy.promo.errors import (
    PromoCodeRequiredError,
    PromoExpiredError,
    PromoInactiveError,
    PromoLimitReachedError,
    PromoNotFoundError,
)
from app.economy.promo.types import PromoDiscount

logger = structlog.get_logger(__name__)

DEFAULT_DISCOUNT = 100
DEFAULT_DISCOUNT_TYPE = "percent"
DEFAULT_COINS = 100
DEFAULT_PLAN = "yearly"


def lookup_candidates(raw_code: str) -> list[str]:
    code = raw_code.strip()
    return list(dict.fromkeys((code, code.upper(), code.lower())))


def check_promo_usable(promo: PromoCode, *, now_utc: datetime) -> None:
    if not promo.active:
        raise PromoInactiveError("This promo code is no longer active")
    if promo.expires_at is not None and promo.expires_at < now_utc:
        raise PromoExpiredError("This promo code has expired")
    # A max_uses of zero or null means unlimited.
    if promo.max_uses and (promo.used_count or 0) >= promo.max_uses:
        raise PromoLimitReachedError("This promo code has reached its usage limit")


def _as_discount(promo: PromoCode) -> PromoDiscount:
    return PromoDiscount(
        code=promo.id,
        discount=promo.discount or DEFAULT_DISCOUNT,
        discount_type=promo.discount_type or DEFAULT_DISCOUNT_TYPE,
        coins=promo.coins if promo.coins is not None else DEFAULT_COINS,
        plan=promo.plan or DEFAULT_PLAN,
        unlock_all=promo.unlock_all is not False,
        used_count=promo.used_count or 0,
    )


class PromoService:
    @staticmethod
    async def validate(
        session: AsyncSession,
        *,
        code: str | None,
        now_utc: datetime,
        user_id: str | None = None,
    ) -> PromoDiscount:
        """Checks the code and consumes one use.

        Checking and consuming happen together; a successful call always counts as a use.
        """
        if not code or not code.strip():
            raise PromoCodeRequiredError("Promo code is required")

        promo = await PromoRepo.get_first_for_update(session, lookup_candidates(code))
        if promo is None:
            logger.info("promo_validate_not_found", code=code.strip())
            raise PromoNotFoundError("Invalid promo code")

        try:
            check_promo_usable(promo, now_utc=now_utc)
        except (PromoInactiveError, PromoExpiredError, PromoLimitReachedError) as exc:
            logger.info("promo_validate_rejected", code=promo.id, reason=exc.code)
            raise

        promo.used_count = (promo.used_count or 0) + 1
        promo.last_used_at = now_utc
        result = _as_discount(promo)
        logger.info("promo_validated", code=promo.id, used_count=promo.used_count)

        if user_id and result.unlock_all:
            result.redeemed_for_user = user_id
            result.idempotent_replay = not await PromoService._redeem_for_user(
                session,
                promo=result,
                user_id=user_id,
                now_utc=now_utc,
            )
        return result

    @staticmethod
    async def _redeem_for_user(
        session: AsyncSession,
        *,
        promo: PromoDiscount,
        user_id: str,
        now_utc: datetime,
    ) -> bool:
        idempotency_base = f"promo:{promo.code}:{user_id}"
        marker = await LedgerRepo.get_by_idempotency_key(
            session,
            f"{idempotency_base}:feature:{FEATURE_KEYS[0]}",
        )
        if marker is not None:
            logger.info("promo_redeem_replayed", code=promo.code, user_id=user_id)
            return False

        user = await EntitlementService.lock_user(session, user_id=user_id, now_utc=now_utc)
        await EntitlementService.apply_grant(
            session,
            user=user,
            grant=EntitlementGrant(features=FEATURE_KEYS, coins=promo.coins),
            source="PROMO",
            idempotency_base=idempotency_base,
            now_utc=now_utc,
        )
        user.subscription_plan = promo.plan
        return True
