"""
Application configuration from environment variables.

All settings have sensible defaults for local development.
A .env file in the project root is loaded automatically (if present).

Settings are read exactly once, by `load_settings()`, and the resulting
immutable `Settings` object is handed to every component that needs it.
Nothing else in the package touches `os.environ`.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

from otp_relay.errors import ConfigError

PROJECT_ROOT = Path(__file__).resolve().parent.parent

# ── Rate-limit presets ────────────────────────────────────────────────────

# (window in ms, max requests per window)
_PRODUCTION_RATE_LIMIT = (15 * 60 * 1000, 10)
_DEVELOPMENT_RATE_LIMIT = (60 * 1000, 5)


@dataclass(frozen=True)
class Settings:
    # ── Environment ───────────────────────────────────────────────────
    environment: str = "development"
    version: str = "1.0.0"

    # ── HTTP server ───────────────────────────────────────────────────
    host: str = "0.0.0.0"
    port: int = 3000
    trust_proxy: bool = False
    forwarded_allow_ips: str = "127.0.0.1"
    allowed_origins: tuple[str, ...] = ()
    shutdown_grace_seconds: int = 10
    max_body_bytes: int = 10 * 1024 * 1024

    # ── Logging ───────────────────────────────────────────────────────
    log_level: str = "INFO"
    log_format: str = "text"
    log_file: str | None = None

    # ── Rate limiting ─────────────────────────────────────────────────
    rate_limit_window_ms: int = _DEVELOPMENT_RATE_LIMIT[0]
    rate_limit_max_requests: int = _DEVELOPMENT_RATE_LIMIT[1]

    # ── SMTP ──────────────────────────────────────────────────────────
    smtp_host: str = ""
    smtp_port: int = 465
    smtp_username: str = ""
    smtp_password: str = field(default="", repr=False)
    smtp_from_email: str = ""
    smtp_from_name: str = ""
    smtp_use_tls: bool = True
    smtp_start_tls: bool = False
    smtp_timeout: float = 10.0
    smtp_verify: bool = True
    smtp_enabled_override: str = "auto"

    # ── Message content ───────────────────────────────────────────────
    brand_name: str = "OTP Relay"
    support_email: str | None = None
    otp_expiry_minutes: int = 5

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def sender_address(self) -> str:
        return self.smtp_from_email or self.smtp_username

    @property
    def sender_name(self) -> str:
        return self.smtp_from_name or f"{self.brand_name} Security"

    def smtp_enabled(self) -> bool:
        """True when SMTP should actually send emails.

        Controlled by SMTP_ENABLED env var:
          • "auto" (default) — send if credentials are configured
          • "true"  — always send (will fail if credentials are missing)
          • "false" — never send, log to console instead
        """
        override = self.smtp_enabled_override.lower()
        if override == "false":
            return False
        if override == "true":
            return True
        return bool(self.smtp_host and self.smtp_username and self.smtp_password)

    def smtp_summary(self) -> dict:
        """SMTP settings that are safe to log."""
        return {
            "host": self.smtp_host or "(not set)",
            "port": self.smtp_port,
            "user": self.smtp_username or None,
            "tls": self.smtp_use_tls,
            "start_tls": self.smtp_start_tls,
            "mode": "smtp" if self.smtp_enabled() else "console",
        }


# ── Parsing helpers ───────────────────────────────────────────────────────


def _get_bool(env: Mapping[str, str], name: str, default: bool) -> bool:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    value = raw.strip().lower()
    if value in ("1", "true", "yes", "on"):
        return True
    if value in ("0", "false", "no", "off"):
        return False
    raise ConfigError(f"{name} must be a boolean, got {raw!r}")


def _get_int(env: Mapping[str, str], name: str, default: int, minimum: int = 0) -> int:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from None
    if value < minimum:
        raise ConfigError(f"{name} must be >= {minimum}, got {value}")
    return value


def _get_float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from None
    if value <= 0:
        raise ConfigError(f"{name} must be positive, got {value}")
    return value


def _get_list(env: Mapping[str, str], name: str) -> tuple[str, ...]:
    raw = env.get(name, "")
    return tuple(item.strip() for item in raw.split(",") if item.strip())


def settings_from_env(env: Mapping[str, str]) -> Settings:
    """Build `Settings` from a mapping of environment variables."""
    environment = env.get("ENVIRONMENT", "development").strip().lower() or "development"
    production = environment == "production"
    window_default, max_default = (
        _PRODUCTION_RATE_LIMIT if production else _DEVELOPMENT_RATE_LIMIT
    )

    log_format = env.get("LOG_FORMAT", "json" if production else "text").strip().lower()
    if log_format not in ("json", "text"):
        raise ConfigError(f"LOG_FORMAT must be 'json' or 'text', got {log_format!r}")

    smtp_enabled = env.get("SMTP_ENABLED", "auto").strip().lower()
    if smtp_enabled not in ("auto", "true", "false"):
        raise ConfigError(f"SMTP_ENABLED must be auto/true/false, got {smtp_enabled!r}")

    return Settings(
        environment=environment,
        version=env.get("APP_VERSION", "1.0.0"),
        host=env.get("API_HOST", "0.0.0.0"),
        port=_get_int(env, "API_PORT", 3000, minimum=1),
        trust_proxy=_get_bool(env, "TRUST_PROXY", False),
        forwarded_allow_ips=env.get("FORWARDED_ALLOW_IPS", "127.0.0.1").strip() or "127.0.0.1",
        allowed_origins=_get_list(env, "ALLOWED_ORIGINS"),
        shutdown_grace_seconds=_get_int(env, "SHUTDOWN_GRACE_SECONDS", 10, minimum=1),
        max_body_bytes=_get_int(env, "MAX_BODY_BYTES", 10 * 1024 * 1024, minimum=1),
        log_level=env.get("LOG_LEVEL", "INFO").upper(),
        log_format=log_format,
        log_file=env.get("LOG_FILE") or None,
        rate_limit_window_ms=_get_int(env, "RATE_LIMIT_WINDOW_MS", window_default, minimum=1),
        rate_limit_max_requests=_get_int(env, "RATE_LIMIT_MAX_REQUESTS", max_default, minimum=1),
        smtp_host=env.get("SMTP_HOST", ""),
        smtp_port=_get_int(env, "SMTP_PORT", 465, minimum=1),
        smtp_username=env.get("SMTP_USERNAME", ""),
        smtp_password=env.get("SMTP_PASSWORD", ""),
        smtp_from_email=env.get("SMTP_FROM_EMAIL", ""),
        smtp_from_name=env.get("SMTP_FROM_NAME", ""),
        smtp_use_tls=_get_bool(env, "SMTP_USE_TLS", True),
        smtp_start_tls=_get_bool(env, "SMTP_START_TLS", False),
        smtp_timeout=_get_float(env, "SMTP_TIMEOUT", 10.0),
        smtp_verify=_get_bool(env, "SMTP_VERIFY", True),
        smtp_enabled_override=smtp_enabled,
        brand_name=env.get("BRAND_NAME", "OTP Relay"),
        support_email=env.get("SUPPORT_EMAIL") or None,
        otp_expiry_minutes=_get_int(env, "OTP_EXPIRY_MINUTES", 5, minimum=1),
    )


def load_settings() -> Settings:
    """Load .env (if present) and build settings from the process environment."""
    load_dotenv(PROJECT_ROOT / ".env")
    return settings_from_env(os.environ)
