from __future__ import annotations

from datetime import datetime

from sqlalchemy import delete, func, select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.users import User


class UsersRepo:
    @staticmethod
    async def get_by_id(session: AsyncSession, user_id: str) -> User | None:
        return await session.get(User, user_id)

    @staticmethod
    async def get_by_id_for_update(session: AsyncSession, user_id: str) -> User | None:
        stmt = select(User).where(User.id == user_id).with_for_update()
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def get_by_email(session: AsyncSession, email: str) -> User | None:
        stmt = select(User).where(func.lower(User.email) == email.strip().lower())
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def ensure_exists(session: AsyncSession, *, user_id: str, now_utc: datetime) -> None:
        stmt = (
            insert(User)
            .values(
                id=user_id,
                unlocked_features={},
                coins=0,
                is_dev_tester=False,
                entitlements_version=0,
                created_at=now_utc,
                updated_at=now_utc,
            )
            .on_conflict_do_nothing(index_elements=[User.id])
        )
        await session.execute(stmt)

    @staticmethod
    async def create(session: AsyncSession, *, user: User) -> User:
        session.add(user)
        await session.flush()
        return user

    @staticmethod
    async def delete_by_id(session: AsyncSession, user_id: str) -> int:
        result = await session.execute(delete(User).where(User.id == user_id))
        return int(result.rowcount or 0)

    @staticmethod
    async def list_identities(session: AsyncSession) -> list[tuple[str, str | None, str | None]]:
        stmt = select(User.id, User.email, User.name)
        result = await session.execute(stmt)
        return [(row.id, row.email, row.name) for row in result]
