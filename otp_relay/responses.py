from __future__ import annotations

from fastapi.responses import JSONResponse

from otp_relay.models import (
    Envelope,
    ErrorKind,
    ErrorResponse,
    Failure,
    SendOtpResponse,
)

REQUEST_ID_HEADER = "X-Request-ID"


def envelope_response(envelope: Envelope, headers: dict[str, str] | None = None) -> JSONResponse:
    """Single place where an envelope becomes an HTTP response."""
    if isinstance(envelope, Failure):
        body = ErrorResponse(
            error=envelope.error,
            details=list(envelope.details) or None,
            retry_after=envelope.retry_after,
            request_id=envelope.correlation_id,
            timestamp=envelope.timestamp,
        )
    else:
        body = SendOtpResponse(
            message=envelope.message,
            timestamp=envelope.timestamp,
            request_id=envelope.correlation_id,
        )

    all_headers = {REQUEST_ID_HEADER: envelope.correlation_id}
    all_headers.update(headers or {})
    return JSONResponse(
        status_code=envelope.status_code,
        content=body.model_dump(by_alias=True, exclude_none=True),
        headers=all_headers,
    )


def failure_response(kind: ErrorKind, error: str, correlation_id: str) -> JSONResponse:
    return envelope_response(Failure(kind=kind, error=error, correlation_id=correlation_id))
