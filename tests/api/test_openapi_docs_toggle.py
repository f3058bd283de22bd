from __future__ import annotations

from types import SimpleNamespace

from fastapi.testclient import TestClient

from app import main as app_main


def _client(monkeypatch, *, enable_openapi_docs: bool) -> TestClient:
    settings = SimpleNamespace(
        log_level="INFO",
        app_env="test",
        enable_openapi_docs=enable_openapi_docs,
    )
    monkeypatch.setattr(app_main, "get_settings", lambda: settings)
    return TestClient(app_main.create_app())


def test_openapi_schema_lists_checkout_routes(monkeypatch) -> None:
    client = _client(monkeypatch, enable_openapi_docs=True)

    schema = client.get("/openapi.json")

    assert schema.status_code == 200
    assert schema.json()["info"]["title"] == "Astro Checkout API"
    paths = schema.json()["paths"]
    for path in (
        "/api/pricing",
        "/api/payments/payu/initiate",
        "/api/payments/razorpay/verify",
        "/api/promo/validate",
        "/api/ab-test",
    ):
        assert path in paths
    assert client.get("/docs").status_code == 200


def test_docs_hidden_when_disabled(monkeypatch) -> None:
    client = _client(monkeypatch, enable_openapi_docs=False)

    assert client.get("/docs").status_code == 404
    assert client.get("/redoc").status_code == 404
    assert client.get("/openapi.json").status_code == 404
