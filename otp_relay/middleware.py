"""
HTTP middleware for request ids, access logging and security headers.

Responsibilities:
- Assign a correlation id to every request and echo it back.
- One access-log record per request, with timing.
- Static security headers on every response.
"""

from __future__ import annotations

import logging
import re
import time
import uuid
from datetime import datetime, timezone

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from otp_relay.models import RequestContext
from otp_relay.responses import REQUEST_ID_HEADER

logger = logging.getLogger("otp_relay.access")

# Incoming ids are honoured only if they look like ids.
_VALID_REQUEST_ID = re.compile(r"[A-Za-z0-9._-]{1,128}")

SECURITY_HEADERS = {
    "Content-Security-Policy": (
        "default-src 'self'; style-src 'self' 'unsafe-inline'; script-src 'self'; "
        "img-src 'self' data: https:; connect-src 'self'; font-src 'self'; "
        "object-src 'none'; media-src 'self'; frame-src 'none'; base-uri 'self'; "
        "form-action 'self'"
    ),
    "Strict-Transport-Security": "max-age=31536000; includeSubDomains; preload",
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "SAMEORIGIN",
    "Referrer-Policy": "no-referrer",
    "Cross-Origin-Opener-Policy": "same-origin",
}


def new_request_context(incoming_id: str | None) -> RequestContext:
    if incoming_id and _VALID_REQUEST_ID.fullmatch(incoming_id):
        correlation_id = incoming_id
    else:
        correlation_id = str(uuid.uuid4())
    return RequestContext(
        correlation_id=correlation_id,
        received_at=datetime.now(timezone.utc),
        started=time.perf_counter(),
    )


def get_request_context(request: Request) -> RequestContext:
    """Context set by `RequestContextMiddleware`, or a fresh one."""
    ctx = getattr(request.state, "context", None)
    if ctx is None:
        ctx = new_request_context(request.headers.get(REQUEST_ID_HEADER))
        request.state.context = ctx
    return ctx


class RequestContextMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        ctx = get_request_context(request)
        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = ctx.correlation_id

        elapsed_ms = round((time.perf_counter() - ctx.started) * 1000, 1)
        logger.info(
            '%s %s %d %.1fms',
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
            extra={
                "component": "http",
                "request_id": ctx.correlation_id,
                "method": request.method,
                "path": request.url.path,
                "status": response.status_code,
                "elapsed_ms": elapsed_ms,
                "client": request.client.host if request.client else None,
                "user_agent": request.headers.get("user-agent"),
            },
        )
        return response


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        response = await call_next(request)
        for name, value in SECURITY_HEADERS.items():
            response.headers.setdefault(name, value)
        return response
