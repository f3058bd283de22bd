import asyncio
from datetime import datetime, timezone

import pytest

from app.workers.celery_app import celery_app
from app.workers.tasks import payments_reliability

PAYLOAD = {
    "id": "pay_TXN_1",
    "gateway": "PAYU",
    "gateway_txn_id": "TXN_1",
    "purchase_type": "bundle",
    "item_id": "palm-birth",
    "features": ["palmReading", "birthChart"],
    "coins": 0,
    "amount_minor": 83900,
    "currency": "INR",
    "user_id": "anon_user42",
    "customer_email": None,
    "created_at": "2026-03-18T06:25:00+00:00",
}


class _FakeSessionLocal:
    def __init__(self) -> None:
        self.session = object()

    def begin(self):
        return self

    async def __aenter__(self):
        return self.session

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        return False


def test_expire_stale_created_payments_task_wrapper(monkeypatch) -> None:
    async def fake_async(*, stale_hours: int | None) -> dict[str, int]:
        return {"expired_payments": stale_hours}

    monkeypatch.setattr(payments_reliability, "expire_stale_created_payments_async", fake_async)

    result = payments_reliability.expire_stale_created_payments(stale_hours=48)
    assert result == {"expired_payments": 48}


def test_run_payments_reconciliation_task_wrapper(monkeypatch) -> None:
    async def fake_async() -> dict[str, int | str]:
        return {
            "paid_payments_count": 3,
            "credited_payments_count": 3,
            "diff_count": 0,
            "status": "OK",
        }

    monkeypatch.setattr(payments_reliability, "run_payments_reconciliation_async", fake_async)

    result = payments_reliability.run_payments_reconciliation()
    assert result["status"] == "OK"


def test_purge_expired_admin_sessions_task_wrapper(monkeypatch) -> None:
    async def fake_async() -> dict[str, int]:
        return {"deleted_sessions": 4}

    monkeypatch.setattr(payments_reliability, "purge_expired_admin_sessions_async", fake_async)

    assert payments_reliability.purge_expired_admin_sessions() == {"deleted_sessions": 4}


def test_expire_stale_created_payments_uses_cutoff(monkeypatch) -> None:
    captured: dict[str, datetime] = {}

    async def fake_expire(session, *, older_than_utc: datetime, now_utc: datetime) -> int:
        captured["older_than_utc"] = older_than_utc
        captured["now_utc"] = now_utc
        return 2

    monkeypatch.setattr(payments_reliability, "SessionLocal", _FakeSessionLocal())
    monkeypatch.setattr(payments_reliability.PaymentsRepo, "expire_stale_created", fake_expire)

    result = asyncio.run(payments_reliability.expire_stale_created_payments_async(stale_hours=24))

    assert result == {"expired_payments": 2}
    assert (captured["now_utc"] - captured["older_than_utc"]).total_seconds() == 24 * 3600


def test_reconciliation_alerts_on_diff(monkeypatch) -> None:
    runs: list[dict[str, object]] = []
    alerts: list[tuple[str, dict[str, object]]] = []

    async def fake_count_paid(session) -> int:
        return 5

    async def fake_count_credited(session) -> int:
        return 3

    async def fake_create_run(session, **kwargs) -> None:
        runs.append(kwargs)

    async def fake_alert(*, event: str, payload: dict[str, object]) -> bool:
        alerts.append((event, payload))
        return True

    monkeypatch.setattr(payments_reliability, "SessionLocal", _FakeSessionLocal())
    monkeypatch.setattr(payments_reliability.PaymentsRepo, "count_paid_with_owner", fake_count_paid)
    monkeypatch.setattr(
        payments_reliability.LedgerRepo,
        "count_distinct_payment_credits",
        fake_count_credited,
    )
    monkeypatch.setattr(payments_reliability.ReconciliationRunsRepo, "create", fake_create_run)
    monkeypatch.setattr(payments_reliability, "send_ops_alert", fake_alert)

    result = asyncio.run(payments_reliability.run_payments_reconciliation_async())

    assert result == {
        "paid_payments_count": 5,
        "credited_payments_count": 3,
        "diff_count": 2,
        "status": "DIFF",
    }
    assert runs[0]["status"] == "DIFF"
    assert runs[0]["diff_count"] == 2
    assert [event for event, _ in alerts] == ["payments_reconciliation_diff_detected"]


def test_reconciliation_without_diff_does_not_alert(monkeypatch) -> None:
    async def fake_count(session) -> int:
        return 4

    async def fake_create_run(session, **kwargs) -> None:
        return None

    async def fake_alert(*, event: str, payload: dict[str, object]) -> bool:
        raise AssertionError("no alert expected")

    monkeypatch.setattr(payments_reliability, "SessionLocal", _FakeSessionLocal())
    monkeypatch.setattr(payments_reliability.PaymentsRepo, "count_paid_with_owner", fake_count)
    monkeypatch.setattr(payments_reliability.LedgerRepo, "count_distinct_payment_credits", fake_count)
    monkeypatch.setattr(payments_reliability.ReconciliationRunsRepo, "create", fake_create_run)
    monkeypatch.setattr(payments_reliability, "send_ops_alert", fake_alert)

    result = asyncio.run(payments_reliability.run_payments_reconciliation_async())
    assert result["status"] == "OK"


def test_persist_payment_record_async_reports_duplicate(monkeypatch) -> None:
    stored = []

    async def fake_store(session, *, record) -> bool:
        stored.append(record)
        return False

    monkeypatch.setattr(payments_reliability, "SessionLocal", _FakeSessionLocal())
    monkeypatch.setattr(payments_reliability, "store_created_payment", fake_store)

    outcome = asyncio.run(payments_reliability.persist_payment_record_async(PAYLOAD))

    assert outcome == "duplicate"
    assert stored[0].payment_id == "pay_TXN_1"
    assert stored[0].created_at == datetime(2026, 3, 18, 6, 25, tzinfo=timezone.utc)


def test_persist_payment_record_returns_outcome(monkeypatch) -> None:
    async def fake_async(payload: dict[str, object]) -> str:
        return "created"

    monkeypatch.setattr(payments_reliability, "persist_payment_record_async", fake_async)

    assert payments_reliability.persist_payment_record(PAYLOAD) == "created"


def test_persist_payment_record_schedules_retry(monkeypatch) -> None:
    task = payments_reliability.persist_payment_record._get_current_object()
    retries: list[dict[str, object]] = []

    async def fake_async(payload: dict[str, object]) -> str:
        raise ConnectionError("db down")

    def fake_retry(*, exc: Exception, countdown: int) -> Exception:
        retries.append({"exc": exc, "countdown": countdown})
        return RuntimeError("retry scheduled")

    monkeypatch.setattr(payments_reliability, "persist_payment_record_async", fake_async)
    monkeypatch.setattr(payments_reliability.random, "randint", lambda _a, _b: 0)
    monkeypatch.setattr(task, "retry", fake_retry)

    with pytest.raises(RuntimeError, match="retry scheduled"):
        task(PAYLOAD)

    assert retries[0]["countdown"] == 1
    assert isinstance(retries[0]["exc"], ConnectionError)


def test_persist_payment_record_alerts_when_retries_exhausted(monkeypatch) -> None:
    task = payments_reliability.persist_payment_record._get_current_object()
    alerts: list[tuple[str, dict[str, object]]] = []

    async def fake_async(payload: dict[str, object]) -> str:
        raise ConnectionError("db down")

    async def fake_alert(*, event: str, payload: dict[str, object]) -> bool:
        alerts.append((event, payload))
        return True

    monkeypatch.setattr(payments_reliability, "persist_payment_record_async", fake_async)
    monkeypatch.setattr(payments_reliability, "send_ops_alert", fake_alert)

    task.push_request(retries=payments_reliability.PERSIST_MAX_RETRIES)
    try:
        with pytest.raises(ConnectionError):
            task.run(PAYLOAD)
    finally:
        task.pop_request()

    assert alerts == [
        (
            "payment_record_persist_exhausted",
            {"payment_id": "pay_TXN_1", "retries": payments_reliability.PERSIST_MAX_RETRIES},
        )
    ]


def test_retry_backoff_seconds_honors_max(monkeypatch) -> None:
    monkeypatch.setattr(payments_reliability.random, "randint", lambda _a, _b: 0)
    backoff = payments_reliability._retry_backoff_seconds(
        next_retry_attempt=12,
        backoff_max_seconds=300,
    )
    assert backoff == 300


def test_persist_task_retry_config_is_enabled() -> None:
    task = payments_reliability.persist_payment_record._get_current_object()

    assert task.max_retries == payments_reliability.PERSIST_MAX_RETRIES
    assert task.reject_on_worker_lost is True
    assert task.acks_late is True


def test_beat_schedule_registers_reliability_jobs() -> None:
    schedule = celery_app.conf.beat_schedule

    assert schedule["expire-stale-created-payments-every-15-minutes"]["task"] == (
        "app.workers.tasks.payments_reliability.expire_stale_created_payments"
    )
    assert schedule["payments-reconciliation-hourly"]["schedule"] == 3600.0
    assert schedule["purge-expired-admin-sessions-hourly"]["options"] == {"queue": "q_low"}
