from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Query, Request
from pydantic import BaseModel, ConfigDict, Field

from app.db.session import SessionLocal
from app.services import admin_auth, revenue

router = APIRouter(prefix="/api/admin", tags=["admin"])


class AdminLoginRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    admin_id: str | None = Field(default=None, max_length=64, alias="adminId")
    password: str | None = Field(default=None, max_length=256)


@router.post("/login")
async def login(payload: AdminLoginRequest) -> dict[str, object]:
    async with SessionLocal.begin() as session:
        result = await admin_auth.login(
            session,
            admin_id=payload.admin_id,
            password=payload.password,
            now_utc=datetime.now(timezone.utc),
        )
    return {
        "success": True,
        "token": result.token,
        "expiry": result.expires_at.isoformat(),
        "adminName": result.admin_id,
    }


@router.post("/logout")
async def logout(request: Request) -> dict[str, object]:
    async with SessionLocal.begin() as session:
        revoked = await admin_auth.logout(session, token=admin_auth.extract_admin_token(request))
    return {"success": True, "revoked": revoked}


@router.get("/revenue")
async def get_revenue(
    request: Request,
    start_date: str | None = Query(default=None, alias="startDate", max_length=10),
    end_date: str | None = Query(default=None, alias="endDate", max_length=10),
    page: int = Query(default=1, ge=1),
    page_size: int = Query(
        default=revenue.DEFAULT_PAGE_SIZE,
        ge=1,
        le=revenue.MAX_PAGE_SIZE,
        alias="pageSize",
    ),
) -> dict[str, object]:
    date_range = revenue.parse_date_range(start_date, end_date)
    async with SessionLocal() as session:
        return await revenue.get_revenue(
            session,
            token=admin_auth.extract_admin_token(request),
            date_range=date_range,
            page=page,
            page_size=page_size,
            now_utc=datetime.now(timezone.utc),
        )
