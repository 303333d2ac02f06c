"""Tests for the uvicorn options built by the entry point."""

from main import server_options
from otp_relay.config import Settings, settings_from_env


def test_defaults():
    options = server_options(Settings())
    assert options["port"] == 3000
    assert options["proxy_headers"] is False
    assert options["timeout_graceful_shutdown"] == 10
    assert options["log_config"] is None


def test_trusted_proxy_is_handled_by_uvicorn():
    settings = settings_from_env({"TRUST_PROXY": "true", "FORWARDED_ALLOW_IPS": "10.0.0.1"})
    options = server_options(settings)
    assert options["proxy_headers"] is True
    assert options["forwarded_allow_ips"] == "10.0.0.1"


def test_grace_period_is_whole_seconds():
    options = server_options(settings_from_env({"SHUTDOWN_GRACE_SECONDS": "3"}))
    assert options["timeout_graceful_shutdown"] == 3
    assert isinstance(options["timeout_graceful_shutdown"], int)
