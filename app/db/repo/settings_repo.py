from __future__ import annotations

from datetime import datetime

from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.app_settings import AppSetting


class SettingsRepo:
    @staticmethod
    async def get_value(session: AsyncSession, key: str) -> dict[str, object] | None:
        row = await session.get(AppSetting, key)
        return None if row is None else row.value

    @staticmethod
    async def upsert_value(
        session: AsyncSession,
        *,
        key: str,
        value: dict[str, object],
        now_utc: datetime,
    ) -> None:
        stmt = insert(AppSetting).values(key=key, value=value, updated_at=now_utc)
        stmt = stmt.on_conflict_do_update(
            index_elements=[AppSetting.key],
            set_={"value": value, "updated_at": now_utc},
        )
        await session.execute(stmt)
