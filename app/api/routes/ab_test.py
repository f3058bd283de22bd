from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Query
from pydantic import BaseModel, ConfigDict, Field

from app.core.errors import ValidationError
from app.db.session import SessionLocal
from app.economy.experiments.assignment import DEFAULT_TEST_ID
from app.economy.experiments.service import ExperimentService

router = APIRouter(prefix="/api/ab-test", tags=["ab-test"])


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class ABTestUpdateRequest(_CamelModel):
    test_id: str = Field(default=DEFAULT_TEST_ID, min_length=1, max_length=64, alias="testId")
    variants: dict[str, dict[str, Any]] | None = None
    status: str | None = Field(default=None, pattern="^(active|paused|completed)$")
    name: str | None = Field(default=None, max_length=128)


class ABTestEventRequest(_CamelModel):
    test_id: str | None = Field(default=None, max_length=64, alias="testId")
    variant: str | None = Field(default=None, max_length=16)
    event_type: str | None = Field(default=None, max_length=32, alias="eventType")
    visitor_id: str | None = Field(default=None, max_length=96, alias="visitorId")
    user_id: str | None = Field(default=None, max_length=64, alias="userId")
    metadata: dict[str, Any] | None = None


@router.get("")
async def get_assignment(
    test_id: str = Query(default=DEFAULT_TEST_ID, alias="testId", max_length=64),
    visitor_id: str | None = Query(default=None, alias="visitorId", max_length=96),
) -> dict[str, object]:
    async with SessionLocal.begin() as session:
        result = await ExperimentService.get_assignment(
            session,
            test_id=test_id,
            visitor_id=visitor_id,
            now_utc=datetime.now(timezone.utc),
        )

    body: dict[str, object] = {
        "testId": result.test_id,
        "variant": result.variant,
        "page": result.page,
        "cached": result.cached,
        "test": result.test.to_dict() if result.test is not None else None,
    }
    if result.message:
        body["message"] = result.message
    return body


@router.post("")
async def update_test(payload: ABTestUpdateRequest) -> dict[str, object]:
    async with SessionLocal.begin() as session:
        test = await ExperimentService.update_test(
            session,
            test_id=payload.test_id,
            variants=payload.variants,
            status=payload.status,
            name=payload.name,
            now_utc=datetime.now(timezone.utc),
        )
    return {"success": True, "test": test.to_dict()}


@router.post("/events")
async def track_event(payload: ABTestEventRequest) -> dict[str, object]:
    if not payload.test_id or not payload.variant or not payload.event_type:
        raise ValidationError("testId, variant, and eventType are required")

    async with SessionLocal.begin() as session:
        await ExperimentService.track_event(
            session,
            test_id=payload.test_id,
            variant=payload.variant,
            event_type=payload.event_type,
            visitor_id=payload.visitor_id,
            user_id=payload.user_id,
            metadata=payload.metadata,
            now_utc=datetime.now(timezone.utc),
        )
    return {"success": True}


@router.get("/stats")
async def get_stats(
    test_id: str = Query(default=DEFAULT_TEST_ID, alias="testId", max_length=64),
) -> dict[str, object]:
    async with SessionLocal() as session:
        return await ExperimentService.get_stats(session, test_id=test_id)
