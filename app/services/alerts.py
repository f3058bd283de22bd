from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

import httpx
import structlog

from app.core.config import get_settings

logger = structlog.get_logger(__name__)
SEVERITY_COLOR = {
    "critical": "#B42318",
    "error": "#F04438",
    "warning": "#F79009",
    "info": "#1570EF",
}


@dataclass(frozen=True)
class AlertRoute:
    channels: tuple[str, ...]
    severity: str


@dataclass(frozen=True)
class AlertTarget:
    channel: str
    url: str


DEFAULT_ALERT_ROUTE = AlertRoute(channels=("generic",), severity="warning")
EVENT_ALERT_ROUTES = {
    "payments_reconciliation_diff_detected": AlertRoute(
        channels=("slack", "generic"),
        severity="critical",
    ),
    "payment_record_persist_exhausted": AlertRoute(
        channels=("slack", "generic"),
        severity="error",
    ),
}


def _resolve_targets(*, route: AlertRoute) -> list[AlertTarget]:
    settings = get_settings()
    generic_webhook_url = settings.ops_alert_webhook_url.strip()
    channel_to_url = {
        "generic": generic_webhook_url,
        "slack": settings.ops_alert_slack_webhook_url.strip(),
    }

    targets = [
        AlertTarget(channel=channel, url=channel_to_url[channel])
        for channel in route.channels
        if channel_to_url.get(channel)
    ]
    if not targets and generic_webhook_url:
        targets.append(AlertTarget(channel="generic", url=generic_webhook_url))
    return targets


def _build_generic_payload(
    *,
    event: str,
    payload: dict[str, object],
    sent_at: datetime,
    route: AlertRoute,
) -> dict[str, object]:
    return {
        "event": event,
        "payload": payload,
        "sent_at": sent_at.isoformat(),
        "severity": route.severity,
    }


def _build_slack_payload(
    *,
    event: str,
    payload: dict[str, object],
    sent_at: datetime,
    route: AlertRoute,
    app_env: str,
) -> dict[str, object]:
    payload_text = json.dumps(payload, sort_keys=True, separators=(",", ":"), default=str)
    return {
        "text": f"[{route.severity.upper()}] {event}",
        "attachments": [
            {
                "color": SEVERITY_COLOR.get(route.severity, SEVERITY_COLOR["warning"]),
                "fields": [
                    {"title": "Environment", "value": app_env, "short": True},
                    {"title": "Sent At", "value": sent_at.isoformat(), "short": True},
                    {"title": "Event", "value": event, "short": False},
                    {"title": "Payload", "value": payload_text, "short": False},
                ],
            }
        ],
    }


async def _post_json(
    *,
    client: httpx.AsyncClient,
    url: str,
    body: dict[str, Any],
    event: str,
    channel: str,
) -> bool:
    try:
        response = await client.post(url, json=body)
        response.raise_for_status()
        return True
    except httpx.HTTPError:
        logger.exception(
            "ops_alert_delivery_failed",
            alert_event=event,
            provider=channel,
        )
        return False


async def send_ops_alert(*, event: str, payload: dict[str, object]) -> bool:
    route = EVENT_ALERT_ROUTES.get(event, DEFAULT_ALERT_ROUTE)
    targets = _resolve_targets(route=route)
    if not targets:
        logger.warning("ops_alert_not_configured", alert_event=event)
        return False

    sent_at = datetime.now(timezone.utc)
    app_env = get_settings().app_env or "dev"

    delivered_to: list[str] = []
    failed_to: list[str] = []
    async with httpx.AsyncClient(timeout=5.0) as client:
        for target in targets:
            if target.channel == "slack":
                body = _build_slack_payload(
                    event=event,
                    payload=payload,
                    sent_at=sent_at,
                    route=route,
                    app_env=app_env,
                )
            else:
                body = _build_generic_payload(
                    event=event,
                    payload=payload,
                    sent_at=sent_at,
                    route=route,
                )
            delivered = await _post_json(
                client=client,
                url=target.url,
                body=body,
                event=event,
                channel=target.channel,
            )
            (delivered_to if delivered else failed_to).append(target.channel)

    if not delivered_to:
        logger.error(
            "ops_alert_delivery_exhausted",
            alert_event=event,
            severity=route.severity,
            failed_to=failed_to,
        )
        return False

    logger.info(
        "ops_alert_delivered",
        alert_event=event,
        severity=route.severity,
        delivered_to=delivered_to,
        failed_to=failed_to,
    )
    return True
