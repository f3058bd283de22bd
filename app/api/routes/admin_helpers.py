from __future__ import annotations

from datetime import datetime, timezone

from fastapi import Request

from app.db.session import SessionLocal
from app.services.admin_auth import extract_admin_token, verify_session


async def require_admin(request: Request) -> str:
    """Resolves the admin id for the `token` query parameter or `X-Admin-Token` header."""
    async with SessionLocal.begin() as session:
        return await verify_session(
            session,
            token=extract_admin_token(request),
            now_utc=datetime.now(timezone.utc),
        )
