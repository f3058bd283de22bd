from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter
from pydantic import BaseModel, ConfigDict, Field

from app.db.session import SessionLocal
from app.economy.entitlements.service import EntitlementService
from app.services import accounts

router = APIRouter(prefix="/api/users", tags=["users"])


class RegisterRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    email: str | None = Field(default=None, max_length=320)
    password: str | None = Field(default=None, max_length=256)
    name: str | None = Field(default=None, max_length=128)
    anon_id: str | None = Field(default=None, max_length=64, alias="anonId")


@router.post("/register")
async def register(payload: RegisterRequest) -> dict[str, object]:
    async with SessionLocal.begin() as session:
        user = await accounts.register(
            session,
            email=payload.email,
            password=payload.password,
            name=payload.name,
            anon_user_id=payload.anon_id,
            now_utc=datetime.now(timezone.utc),
        )
    return {
        "success": True,
        "user": {
            "id": user.user_id,
            "email": user.email,
            "name": user.name,
            "coins": user.coins,
            "purchaseType": user.purchase_type,
            "bundlePurchased": user.purchased_bundle,
            "unlockedFeatures": user.unlocked_features,
            "mergedFrom": user.merged_from,
        },
    }


@router.get("/{user_id}/entitlements")
async def get_entitlements(user_id: str) -> dict[str, object]:
    async with SessionLocal() as session:
        view = await EntitlementService.get_entitlements(session, user_id=user_id)
    return {
        "userId": view.user_id,
        "unlockedFeatures": view.unlocked_features,
        "coins": view.coins,
        "purchasedBundle": view.purchased_bundle,
        "purchaseType": view.purchase_type,
        "paymentStatus": view.payment_status,
        "subscriptionPlan": view.subscription_plan,
        "isDevTester": view.is_dev_tester,
        "entitlementsVersion": view.entitlements_version,
    }
