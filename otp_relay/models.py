"""Domain types and Pydantic response models for the OTP relay API."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


def utc_timestamp(moment: datetime | None = None) -> str:
    """ISO-8601 UTC timestamp with millisecond precision, e.g. 2026-01-01T00:00:00.000Z."""
    moment = moment or datetime.now(timezone.utc)
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace(
        "+00:00", "Z"
    )


# ── Domain ────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class OtpRequest:
    """A validated delivery request. The passcode is kept out of repr()."""

    email: str
    passcode: str = field(repr=False)


@dataclass(frozen=True)
class RequestContext:
    correlation_id: str
    received_at: datetime
    started: float


class ErrorKind(str, Enum):
    VALIDATION = "validation_failed"
    RATE_LIMITED = "rate_limited"
    DISPATCH_FAILED = "dispatch_failed"
    NOT_FOUND = "not_found"
    PAYLOAD_TOO_LARGE = "payload_too_large"
    INTERNAL = "internal_error"

    @property
    def status_code(self) -> int:
        return _STATUS_CODES[self]


_STATUS_CODES = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.RATE_LIMITED: 429,
    ErrorKind.DISPATCH_FAILED: 502,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.PAYLOAD_TOO_LARGE: 413,
    ErrorKind.INTERNAL: 500,
}


@dataclass(frozen=True)
class Success:
    message: str
    correlation_id: str
    timestamp: str = field(default_factory=utc_timestamp)

    status_code = 200


@dataclass(frozen=True)
class Failure:
    kind: ErrorKind
    error: str
    correlation_id: str
    timestamp: str = field(default_factory=utc_timestamp)
    details: tuple[str, ...] = ()
    retry_after: int | None = None

    @property
    def status_code(self) -> int:
        return self.kind.status_code


Envelope = Union[Success, Failure]


# ── HTTP bodies ───────────────────────────────────────────────────────────


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class HealthResponse(_CamelModel):
    """Liveness probe body."""
    status: str = Field("OK", description="Always 'OK' while the process serves requests")
    timestamp: str = Field(..., description="Server time (UTC)")
    uptime: float = Field(..., description="Seconds since the app started")
    environment: str = Field(..., description="Runtime environment name")
    version: str = Field(..., description="Service version")
    correlation_id: str = Field(..., alias="correlationId", description="Request id")


class SendOtpResponse(_CamelModel):
    """Body returned when the relay accepted the message."""
    success: bool = Field(True)
    message: str = Field(..., description="Human-readable result")
    timestamp: str = Field(..., description="Server time (UTC)")
    request_id: str = Field(..., alias="requestId", description="Request id")


class ErrorResponse(_CamelModel):
    """Uniform failure body."""
    success: bool = Field(False)
    error: str = Field(..., description="Safe, human-readable error")
    details: Optional[List[str]] = Field(None, description="Per-field validation messages")
    retry_after: Optional[int] = Field(None, alias="retryAfter", description="Seconds to wait")
    request_id: str = Field(..., alias="requestId", description="Request id")
    timestamp: str = Field(..., description="Server time (UTC)")
