from __future__ import annotations

from datetime import datetime

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.admins import Admin, AdminSession


class AdminRepo:
    @staticmethod
    async def get_admin(session: AsyncSession, admin_id: str) -> Admin | None:
        return await session.get(Admin, admin_id)

    @staticmethod
    async def create_admin(session: AsyncSession, *, admin: Admin) -> Admin:
        session.add(admin)
        await session.flush()
        return admin

    @staticmethod
    async def get_session(session: AsyncSession, token_hash: str) -> AdminSession | None:
        return await session.get(AdminSession, token_hash)

    @staticmethod
    async def create_session(
        session: AsyncSession,
        *,
        token_hash: str,
        admin_id: str,
        created_at: datetime,
        expires_at: datetime,
    ) -> AdminSession:
        admin_session = AdminSession(
            token_hash=token_hash,
            admin_id=admin_id,
            created_at=created_at,
            expires_at=expires_at,
        )
        session.add(admin_session)
        await session.flush()
        return admin_session

    @staticmethod
    async def delete_session(session: AsyncSession, token_hash: str) -> int:
        result = await session.execute(delete(AdminSession).where(AdminSession.token_hash == token_hash))
        return int(result.rowcount or 0)

    @staticmethod
    async def delete_expired_sessions(session: AsyncSession, *, now_utc: datetime) -> int:
        result = await session.execute(delete(AdminSession).where(AdminSession.expires_at <= now_utc))
        return int(result.rowcount or 0)
