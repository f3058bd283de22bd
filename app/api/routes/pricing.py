from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

import structlog
from fastapi import APIRouter, Depends
from pydantic import BaseModel

from app.db.session import SessionLocal
from app.economy.pricing.service import PricingService

from .admin_helpers import require_admin

router = APIRouter(tags=["pricing"])
logger = structlog.get_logger(__name__)


class PricingUpdateRequest(BaseModel):
    pricing: dict[str, Any] | None = None


@router.get("/api/pricing")
async def get_pricing() -> dict[str, object]:
    pricing = await PricingService.get_pricing()
    return {"success": True, "pricing": pricing.to_storage()}


@router.post("/api/admin/pricing")
async def update_pricing(
    payload: PricingUpdateRequest,
    admin_id: str = Depends(require_admin),
) -> dict[str, object]:
    async with SessionLocal.begin() as session:
        pricing = await PricingService.update_pricing(
            session,
            raw=payload.pricing,
            now_utc=datetime.now(timezone.utc),
        )
    logger.info("admin_pricing_saved", admin_id=admin_id)
    return {"success": True, "pricing": pricing.to_storage()}
