"""
pipeline.py: send-otp request pipeline
=======================================
Runs every send request through the same steps.  Each step is a
rejection point; dispatch is the last one.

Steps:
1. Rate check (fixed window per client)
2. Validate payload
3. Dispatch email via the transport
4. Build the response envelope and log the outcome

The pipeline is the only place that decides what an error looks like to
the caller.  Exception text stays in the log; the passcode is never
logged.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any

from otp_relay.errors import RequestValidationFailed, TransportError
from otp_relay.models import Envelope, ErrorKind, Failure, RequestContext, Success
from otp_relay.rate_limit import RateLimitDecision, SendRateLimiter
from otp_relay.services.dispatcher import NotificationDispatcher
from otp_relay.validation import validate_send_otp

logger = logging.getLogger(__name__)

OTP_SENT = "OTP sent successfully"
VALIDATION_FAILED = "Validation failed"
TOO_MANY_REQUESTS = "Too many requests. Please try again later."
DISPATCH_FAILED = "Failed to send verification email. Please try again."
INTERNAL_ERROR = "Internal server error"


@dataclass(frozen=True)
class PipelineResult:
    envelope: Envelope
    headers: dict[str, str] = field(default_factory=dict)


class OtpPipeline:
    def __init__(self, limiter: SendRateLimiter, dispatcher: NotificationDispatcher) -> None:
        self.limiter = limiter
        self.dispatcher = dispatcher

    async def send_otp(self, payload: Any, client_id: str, ctx: RequestContext) -> PipelineResult:
        email = payload.get("email") if isinstance(payload, dict) else None
        log_extra = {"request_id": ctx.correlation_id, "client": client_id, "email": email}
        logger.info("OTP send request received", extra=log_extra)

        decision: RateLimitDecision | None = None
        try:
            # ── Step 1: rate check ────────────────────────────────────────
            decision = self.limiter.check(client_id)
            if not decision.allowed:
                return self._finish(
                    ctx,
                    Failure(
                        kind=ErrorKind.RATE_LIMITED,
                        error=TOO_MANY_REQUESTS,
                        correlation_id=ctx.correlation_id,
                        retry_after=decision.retry_after,
                    ),
                    decision,
                    log_extra,
                )

            # ── Step 2: validate ──────────────────────────────────────────
            try:
                request = validate_send_otp(payload)
            except RequestValidationFailed as exc:
                return self._finish(
                    ctx,
                    Failure(
                        kind=ErrorKind.VALIDATION,
                        error=VALIDATION_FAILED,
                        correlation_id=ctx.correlation_id,
                        details=tuple(exc.messages),
                    ),
                    decision,
                    {**log_extra, "errors": [vars(e) for e in exc.errors]},
                )

            # ── Step 3: dispatch ──────────────────────────────────────────
            try:
                message_id = await self.dispatcher.send(request, ctx.correlation_id)
            except TransportError as exc:
                return self._finish(
                    ctx,
                    Failure(
                        kind=ErrorKind.DISPATCH_FAILED,
                        error=DISPATCH_FAILED,
                        correlation_id=ctx.correlation_id,
                    ),
                    decision,
                    {**log_extra, "email": request.email, "error": str(exc.__cause__ or exc)},
                )

            return self._finish(
                ctx,
                Success(message=OTP_SENT, correlation_id=ctx.correlation_id),
                decision,
                {**log_extra, "email": request.email, "message_id": message_id},
            )
        except Exception:
            logger.exception("Unhandled error in send-otp pipeline", extra=log_extra)
            return self._finish(
                ctx,
                Failure(
                    kind=ErrorKind.INTERNAL,
                    error=INTERNAL_ERROR,
                    correlation_id=ctx.correlation_id,
                ),
                decision,
                log_extra,
            )

    def _finish(
        self,
        ctx: RequestContext,
        envelope: Envelope,
        decision: RateLimitDecision | None,
        extra: dict,
    ) -> PipelineResult:
        """Log exactly one outcome record and attach rate-limit headers."""
        elapsed_ms = round((time.perf_counter() - ctx.started) * 1000, 1)
        outcome = "sent" if isinstance(envelope, Success) else envelope.kind.value
        record = {**extra, "outcome": outcome, "elapsed_ms": elapsed_ms}

        if isinstance(envelope, Success):
            logger.info("OTP email sent successfully", extra=record)
        elif envelope.kind is ErrorKind.INTERNAL or envelope.kind is ErrorKind.DISPATCH_FAILED:
            logger.error("Failed to send OTP email", extra=record)
        else:
            logger.warning("OTP request rejected: %s", envelope.error, extra=record)

        headers = decision.headers() if decision is not None else {}
        return PipelineResult(envelope=envelope, headers=headers)
