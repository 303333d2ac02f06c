"""
Shared test fixtures.

Provides a FastAPI TestClient wired to:
  • a fake mail transport (no SMTP connections)
  • a rate limiter whose windows run on a manual clock
  • explicit settings (5 requests per 60s window)

The `client` fixture runs the app lifespan exactly as in production.
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient
from limits.storage import memory as limits_memory

import otp_relay.rate_limit
from otp_relay.config import Settings
from otp_relay.main import create_app
from otp_relay.rate_limit import SendRateLimiter
from tests.mocks.services import FakeClock, FakeTransport


@pytest.fixture()
def settings() -> Settings:
    return Settings(
        environment="test",
        rate_limit_window_ms=60_000,
        rate_limit_max_requests=5,
        smtp_host="smtp.example.com",
        smtp_username="relay@example.com",
        smtp_password="secret",
        smtp_timeout=0.2,
        brand_name="Acme",
        support_email="support@example.com",
    )


@pytest.fixture()
def clock(monkeypatch) -> FakeClock:
    fake = FakeClock()
    monkeypatch.setattr(limits_memory, "time", fake)
    monkeypatch.setattr(otp_relay.rate_limit, "time", fake)
    return fake


@pytest.fixture()
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture()
def limiter(settings: Settings, clock: FakeClock) -> SendRateLimiter:
    return SendRateLimiter.from_settings(settings)


@pytest.fixture()
def app(settings, transport, limiter):
    return create_app(settings, transport=transport, limiter=limiter)


@pytest.fixture()
def client(app) -> TestClient:
    with TestClient(app, raise_server_exceptions=False) as tc:
        yield tc
