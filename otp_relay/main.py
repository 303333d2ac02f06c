"""FastAPI application for the OTP relay."""

from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from otp_relay.config import Settings, load_settings
from otp_relay.logging_config import configure_logging
from otp_relay.middleware import (
    RequestContextMiddleware,
    SecurityHeadersMiddleware,
    get_request_context,
)
from otp_relay.models import ErrorKind, ErrorResponse, utc_timestamp
from otp_relay.pipeline import INTERNAL_ERROR, OtpPipeline
from otp_relay.rate_limit import SendRateLimiter
from otp_relay.responses import REQUEST_ID_HEADER, failure_response
from otp_relay.routers import health, otp
from otp_relay.services.dispatcher import NotificationDispatcher
from otp_relay.services.transport import MailTransport, build_transport

logger = logging.getLogger(__name__)

NOT_FOUND = "Endpoint not found"


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings

    logger.info(
        "OTP relay started",
        extra={
            "port": settings.port,
            "environment": settings.environment,
            "version": settings.version,
            "smtp": settings.smtp_summary(),
            "rate_limit": {
                "window_ms": settings.rate_limit_window_ms,
                "max_requests": settings.rate_limit_max_requests,
            },
        },
    )
    try:
        yield
    finally:
        logger.info("OTP relay stopped")


def _add_middleware(app: FastAPI, settings: Settings) -> None:
    # Added innermost first; the last one added wraps everything else.
    app.add_middleware(GZipMiddleware, minimum_size=500)

    cors = dict(
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["Content-Type", "Authorization", REQUEST_ID_HEADER],
        expose_headers=[REQUEST_ID_HEADER, "Retry-After"],
    )
    if settings.is_production:
        app.add_middleware(CORSMiddleware, allow_origins=list(settings.allowed_origins), **cors)
    else:
        app.add_middleware(CORSMiddleware, allow_origin_regex=".*", **cors)

    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestContextMiddleware)


def _add_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        ctx = get_request_context(request)
        if exc.status_code in (404, 405):
            logger.warning(
                "404 - Route not found",
                extra={
                    "request_id": ctx.correlation_id,
                    "method": request.method,
                    "path": request.url.path,
                },
            )
            return failure_response(ErrorKind.NOT_FOUND, NOT_FOUND, ctx.correlation_id)

        body = ErrorResponse(
            error=str(exc.detail) if exc.status_code < 500 else INTERNAL_ERROR,
            request_id=ctx.correlation_id,
            timestamp=utc_timestamp(),
        )
        return JSONResponse(
            status_code=exc.status_code,
            content=body.model_dump(by_alias=True, exclude_none=True),
            headers={REQUEST_ID_HEADER: ctx.correlation_id},
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        ctx = get_request_context(request)
        logger.exception(
            "Unhandled application error",
            extra={
                "request_id": ctx.correlation_id,
                "method": request.method,
                "path": request.url.path,
            },
        )
        return failure_response(ErrorKind.INTERNAL, INTERNAL_ERROR, ctx.correlation_id)


def create_app(
    settings: Settings | None = None,
    *,
    transport: MailTransport | None = None,
    limiter: SendRateLimiter | None = None,
) -> FastAPI:
    """Build the application.

    When `settings` is omitted they are loaded from the environment and
    process logging is configured from them.
    """
    if settings is None:
        settings = load_settings()
        configure_logging(settings)

    if limiter is None:
        limiter = SendRateLimiter.from_settings(settings)
    if transport is None:
        transport = build_transport(settings)
    dispatcher = NotificationDispatcher(settings, transport)

    app = FastAPI(
        title="OTP Relay",
        description="Relays one-time passcodes by email through an SMTP relay",
        version=settings.version,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.started_at = time.monotonic()
    app.state.limiter = limiter
    app.state.pipeline = OtpPipeline(limiter, dispatcher)

    _add_middleware(app, settings)
    _add_exception_handlers(app)

    app.include_router(health.router)
    app.include_router(otp.router)
    return app


app = create_app()
