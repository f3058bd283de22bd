from __future__ import annotations

from types import SimpleNamespace

import pytest


class _SessionContext:
    def __init__(self, factory: "_FakeSessionLocal", *, transactional: bool) -> None:
        self._factory = factory
        self._transactional = transactional

    async def __aenter__(self) -> object:
        self._factory.opened.append("begin" if self._transactional else "read")
        return self._factory.session

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        return False


class _FakeSessionLocal:
    def __init__(self) -> None:
        self.session = SimpleNamespace(name="fake-session")
        self.opened: list[str] = []

    def __call__(self) -> _SessionContext:
        return _SessionContext(self, transactional=False)

    def begin(self) -> _SessionContext:
        return _SessionContext(self, transactional=True)


@pytest.fixture
def fake_sessions(monkeypatch):
    """Returns a patcher replacing `SessionLocal` in the given route modules."""
    factory = _FakeSessionLocal()

    def _patch(*modules) -> _FakeSessionLocal:
        for module in modules:
            monkeypatch.setattr(module, "SessionLocal", factory)
        return factory

    return _patch


@pytest.fixture
def admin_authorized(monkeypatch, fake_sessions):
    """Lets every admin-guarded route through as `admin`."""
    from app.api.routes import admin_helpers

    fake_sessions(admin_helpers)
    seen_tokens: list[str | None] = []

    async def _verify_session(session, *, token, now_utc):
        seen_tokens.append(token)
        return "admin"

    monkeypatch.setattr(admin_helpers, "verify_session", _verify_session)
    return seen_tokens
