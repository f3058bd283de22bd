from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter
from pydantic import BaseModel, ConfigDict, Field

from app.db.session import SessionLocal
from app.economy.promo.service import PromoService

router = APIRouter(tags=["promo"])


class PromoValidateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    code: str | None = Field(default=None, max_length=64)
    user_id: str | None = Field(default=None, max_length=64, alias="userId")


class PromoValidateResponse(BaseModel):
    success: bool = True
    code: str
    discount: int
    discount_type: str = Field(serialization_alias="discountType")
    coins: int
    plan: str
    unlock_all: bool = Field(serialization_alias="unlockAll")
    redeemed_for_user: str | None = Field(default=None, serialization_alias="redeemedForUser")
    already_redeemed: bool = Field(default=False, serialization_alias="alreadyRedeemed")


@router.post("/api/promo/validate", response_model=PromoValidateResponse)
async def validate_promo(payload: PromoValidateRequest) -> PromoValidateResponse:
    async with SessionLocal.begin() as session:
        result = await PromoService.validate(
            session,
            code=payload.code,
            user_id=payload.user_id,
            now_utc=datetime.now(timezone.utc),
        )

    return PromoValidateResponse(
        code=result.code,
        discount=result.discount,
        discount_type=result.discount_type,
        coins=result.coins,
        plan=result.plan,
        unlock_all=result.unlock_all,
        redeemed_for_user=result.redeemed_for_user,
        already_redeemed=result.idempotent_replay,
    )
