from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter
from pydantic import BaseModel, ConfigDict, Field

from app.db.session import SessionLocal
from app.services import accounts

router = APIRouter(prefix="/api/dev", tags=["dev"])


class ActivateTesterRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    password: str | None = Field(default=None, max_length=256)
    user_id: str | None = Field(default=None, max_length=64, alias="userId")


@router.post("/activate-tester")
async def activate_tester(payload: ActivateTesterRequest) -> dict[str, bool]:
    async with SessionLocal.begin() as session:
        await accounts.activate_dev_tester(
            session,
            user_id=payload.user_id,
            password=payload.password,
            now_utc=datetime.now(timezone.utc),
        )
    return {"success": True}
