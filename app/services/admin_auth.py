from __future__ import annotations

import hashlib
import hmac
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta

import bcrypt
import structlog
from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.errors import AuthError, ConfigurationError, ValidationError
from app.db.repo.admin_repo import AdminRepo

logger = structlog.get_logger(__name__)

ADMIN_TOKEN_HEADER = "X-Admin-Token"
ADMIN_TOKEN_QUERY_PARAM = "token"
TOKEN_BYTES = 32


@dataclass(slots=True)
class AdminLogin:
    token: str
    admin_id: str
    expires_at: datetime


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def check_password(password: str, password_hash: str | None) -> bool:
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed stored hash.
        return False


def _session_secret() -> str:
    secret = get_settings().admin_session_secret.strip()
    if not secret:
        raise ConfigurationError("ADMIN_SESSION_SECRET is not configured")
    return secret


def build_token_hash(token: str, *, secret: str) -> str:
    return hmac.new(secret.encode("utf-8"), token.encode("utf-8"), hashlib.sha256).hexdigest()


def extract_admin_token(request: Request) -> str | None:
    token = request.query_params.get(ADMIN_TOKEN_QUERY_PARAM) or request.headers.get(
        ADMIN_TOKEN_HEADER
    )
    if token is None:
        return None
    token = token.strip()
    return token or None


async def login(
    session: AsyncSession,
    *,
    admin_id: str | None,
    password: str | None,
    now_utc: datetime,
) -> AdminLogin:
    if not admin_id or not password:
        raise ValidationError("Admin ID and password are required")

    secret = _session_secret()
    admin = await AdminRepo.get_admin(session, admin_id)
    if admin is None or not check_password(password, admin.password_hash):
        logger.warning("admin_login_rejected", admin_id=admin_id)
        raise AuthError("Invalid credentials")

    token = secrets.token_hex(TOKEN_BYTES)
    expires_at = now_utc + timedelta(hours=get_settings().admin_session_ttl_hours)
    await AdminRepo.create_session(
        session,
        token_hash=build_token_hash(token, secret=secret),
        admin_id=admin.id,
        created_at=now_utc,
        expires_at=expires_at,
    )
    logger.info("admin_login_succeeded", admin_id=admin.id, expires_at=expires_at.isoformat())
    return AdminLogin(token=token, admin_id=admin.id, expires_at=expires_at)


async def verify_session(session: AsyncSession, *, token: str | None, now_utc: datetime) -> str:
    """Returns the admin id bound to a live session token."""
    if not token:
        raise AuthError("Unauthorized - No token provided")

    token_hash = build_token_hash(token, secret=_session_secret())
    admin_session = await AdminRepo.get_session(session, token_hash)
    if admin_session is None:
        raise AuthError("Unauthorized - Invalid session")

    # Expired rows are left for the admin session cleanup task.
    if admin_session.expires_at < now_utc:
        logger.info("admin_session_expired", admin_id=admin_session.admin_id)
        raise AuthError("Session expired - Please login again")

    return admin_session.admin_id


async def logout(session: AsyncSession, *, token: str | None) -> bool:
    if not token:
        return False
    deleted = await AdminRepo.delete_session(
        session,
        build_token_hash(token, secret=_session_secret()),
    )
    return deleted > 0
