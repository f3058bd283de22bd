import pytest

from app.workers import asyncio_runner


@pytest.fixture
def disposals(monkeypatch) -> list[str]:
    calls: list[str] = []

    async def fake_dispose_engine() -> None:
        calls.append("dispose")

    monkeypatch.setattr(asyncio_runner, "dispose_engine", fake_dispose_engine)
    return calls


def test_run_async_job_resets_pool_around_job(disposals) -> None:
    async def expire_job() -> dict[str, int]:
        disposals.append("job")
        return {"expired_payments": 2}

    assert asyncio_runner.run_async_job(expire_job()) == {"expired_payments": 2}
    assert disposals == ["dispose", "job", "dispose"]


def test_run_async_job_disposes_pool_when_job_fails(disposals) -> None:
    async def failing_job() -> None:
        raise RuntimeError("db down")

    with pytest.raises(RuntimeError, match="db down"):
        asyncio_runner.run_async_job(failing_job())

    assert disposals == ["dispose", "dispose"]
