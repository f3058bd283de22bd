from __future__ import annotations

import secrets
import uuid
from dataclasses import dataclass
from datetime import datetime

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.errors import AuthError, ConfigurationError, ConflictError, ValidationError
from app.db.models.users import User
from app.db.repo.ledger_repo import LedgerRepo
from app.db.repo.payments_repo import PaymentsRepo
from app.db.repo.users_repo import UsersRepo
from app.economy.entitlements.rules import (
    DEV_TESTER_COINS,
    FEATURE_KEYS,
    EntitlementGrant,
    merge_features,
)
from app.economy.entitlements.service import EntitlementService
from app.services.admin_auth import hash_password

logger = structlog.get_logger(__name__)

DEV_TESTER_PLAN = "yearly"


class EmailAlreadyRegisteredError(ConflictError):
    code = "E_EMAIL_IN_USE"


@dataclass(slots=True)
class RegisteredUser:
    user_id: str
    email: str
    name: str | None
    coins: int
    unlocked_features: dict[str, bool]
    purchase_type: str | None
    purchased_bundle: str | None
    merged_from: str | None


def normalize_email(raw: str | None) -> str:
    return raw.strip().lower() if isinstance(raw, str) else ""


async def activate_dev_tester(
    session: AsyncSession,
    *,
    user_id: str | None,
    password: str | None,
    now_utc: datetime,
) -> None:
    expected = get_settings().dev_tester_password
    if not expected:
        raise ConfigurationError("DEV_TESTER_PASSWORD is not configured")
    if not password or not secrets.compare_digest(password, expected):
        raise AuthError("Invalid password")
    if not user_id:
        raise ValidationError("userId is required")

    user = await EntitlementService.lock_user(session, user_id=user_id, now_utc=now_utc)
    version = user.entitlements_version or 0
    await EntitlementService.apply_grant(
        session,
        user=user,
        grant=EntitlementGrant(
            features=FEATURE_KEYS,
            coins=max(0, DEV_TESTER_COINS - (user.coins or 0)),
        ),
        source="DEV_TESTER",
        idempotency_base=f"dev_tester:{user_id}:v{version}",
        now_utc=now_utc,
    )
    user.is_dev_tester = True
    user.subscription_plan = DEV_TESTER_PLAN
    logger.info("dev_tester_activated", user_id=user_id)


async def register(
    session: AsyncSession,
    *,
    email: str | None,
    password: str | None,
    now_utc: datetime,
    name: str | None = None,
    anon_user_id: str | None = None,
) -> RegisteredUser:
    normalized_email = normalize_email(email)
    if not normalized_email or not password:
        raise ValidationError("Email and password are required")

    if await UsersRepo.get_by_email(session, normalized_email) is not None:
        raise EmailAlreadyRegisteredError("An account with this email already exists")

    user = User(
        id=str(uuid.uuid4()),
        email=normalized_email,
        name=name,
        password_hash=hash_password(password),
        unlocked_features=merge_features(None, ()),
        coins=0,
        is_dev_tester=False,
        entitlements_version=0,
        created_at=now_utc,
        updated_at=now_utc,
    )

    anon = None
    if anon_user_id and anon_user_id != user.id:
        anon = await UsersRepo.get_by_id_for_update(session, anon_user_id)
    if anon is not None:
        user.unlocked_features = merge_features(anon.unlocked_features, ())
        user.coins = anon.coins or 0
        user.purchased_bundle = anon.purchased_bundle
        user.purchase_type = anon.purchase_type
        user.payment_status = anon.payment_status
        user.subscription_plan = anon.subscription_plan
        user.is_dev_tester = bool(anon.is_dev_tester)
        user.entitlements_version = (anon.entitlements_version or 0) + 1

    await UsersRepo.create(session, user=user)

    if anon is not None:
        moved_payments = await PaymentsRepo.reassign_user(
            session,
            from_user_id=anon.id,
            to_user_id=user.id,
        )
        moved_entries = await LedgerRepo.reassign_user(
            session,
            from_user_id=anon.id,
            to_user_id=user.id,
        )
        await UsersRepo.delete_by_id(session, anon.id)
        logger.info(
            "anonymous_user_merged",
            anon_user_id=anon.id,
            user_id=user.id,
            payments_moved=moved_payments,
            ledger_entries_moved=moved_entries,
        )

    logger.info("user_registered", user_id=user.id, merged=anon is not None)
    return RegisteredUser(
        user_id=user.id,
        email=normalized_email,
        name=name,
        coins=user.coins,
        unlocked_features=dict(user.unlocked_features),
        purchase_type=user.purchase_type,
        purchased_bundle=user.purchased_bundle,
        merged_from=anon.id if anon is not None else None,
    )
