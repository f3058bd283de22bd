from __future__ import annotations

from datetime import datetime

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import NotFoundError
from app.db.models.ledger_entries import LedgerEntry
from app.db.models.users import User
from app.db.repo.ledger_repo import LedgerRepo
from app.db.repo.users_repo import UsersRepo
from app.economy.entitlements.rules import EntitlementGrant, merge_features, newly_unlocked
from app.economy.entitlements.types import EntitlementsView, GrantApplication

logger = structlog.get_logger(__name__)


class UserNotFoundError(NotFoundError):
    code = "E_USER_NOT_FOUND"


class EntitlementService:
    @staticmethod
    async def lock_user(session: AsyncSession, *, user_id: str, now_utc: datetime) -> User:
        await UsersRepo.ensure_exists(session, user_id=user_id, now_utc=now_utc)
        user = await UsersRepo.get_by_id_for_update(session, user_id)
        if user is None:
            raise UserNotFoundError(f"User not found: {user_id}")
        return user

    @staticmethod
    async def apply_grant(
        session: AsyncSession,
        *,
        user: User,
        grant: EntitlementGrant,
        source: str,
        idempotency_base: str,
        now_utc: datetime,
        payment_id: str | None = None,
    ) -> GrantApplication:
        """Applies `grant` to a row-locked user and records one ledger entry per credit."""
        current = dict(user.unlocked_features or {})
        unlocked_now = newly_unlocked(current, grant.features)
        balance = user.coins or 0

        entries: list[LedgerEntry] = [
            LedgerEntry(
                user_id=user.id,
                payment_id=payment_id,
                asset="FEATURE",
                feature=feature,
                amount=1,
                source=source,
                idempotency_key=f"{idempotency_base}:feature:{feature}",
                metadata_={"newly_unlocked": feature in unlocked_now},
                created_at=now_utc,
            )
            for feature in grant.features
        ]
        if grant.coins > 0:
            balance += grant.coins
            entries.append(
                LedgerEntry(
                    user_id=user.id,
                    payment_id=payment_id,
                    asset="COINS",
                    amount=grant.coins,
                    balance_after=balance,
                    source=source,
                    idempotency_key=f"{idempotency_base}:coins",
                    metadata_={},
                    created_at=now_utc,
                )
            )
        if grant.bonus_coins > 0:
            balance += grant.bonus_coins
            entries.append(
                LedgerEntry(
                    user_id=user.id,
                    payment_id=payment_id,
                    asset="COINS",
                    amount=grant.bonus_coins,
                    balance_after=balance,
                    source="PAYMENT_BONUS" if source == "PAYMENT" else source,
                    idempotency_key=f"{idempotency_base}:bonus",
                    metadata_={},
                    created_at=now_utc,
                )
            )

        for entry in entries:
            await LedgerRepo.create(session, entry=entry)

        user.unlocked_features = merge_features(current, grant.features)
        user.coins = balance
        if grant.purchased_bundle is not None:
            user.purchased_bundle = grant.purchased_bundle
        if grant.purchase_type is not None:
            user.purchase_type = grant.purchase_type
        user.entitlements_version = (user.entitlements_version or 0) + 1
        user.updated_at = now_utc

        logger.info(
            "entitlements_granted",
            user_id=user.id,
            source=source,
            newly_unlocked=list(unlocked_now),
            coins_credited=grant.total_coins,
            coins_balance=balance,
        )
        return GrantApplication(
            user_id=user.id,
            unlocked_features=dict(user.unlocked_features),
            newly_unlocked=unlocked_now,
            coins_credited=grant.total_coins,
            coins_balance=balance,
        )

    @staticmethod
    async def get_entitlements(session: AsyncSession, *, user_id: str) -> EntitlementsView:
        user = await UsersRepo.get_by_id(session, user_id)
        if user is None:
            raise UserNotFoundError(f"User not found: {user_id}")

        return EntitlementsView(
            user_id=user.id,
            unlocked_features=merge_features(user.unlocked_features, ()),
            coins=user.coins or 0,
            purchased_bundle=user.purchased_bundle,
            purchase_type=user.purchase_type,
            payment_status=user.payment_status,
            subscription_plan=user.subscription_plan,
            is_dev_tester=bool(user.is_dev_tester),
            entitlements_version=user.entitlements_version or 0,
        )
