"""
Passcode delivery endpoint.
"""

import json
import logging
from urllib.parse import parse_qsl

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from otp_relay.dependencies import AppSettings, ClientId, Context, Pipeline
from otp_relay.models import ErrorKind, ErrorResponse, SendOtpResponse
from otp_relay.responses import envelope_response, failure_response

logger = logging.getLogger(__name__)

router = APIRouter(tags=["otp"])

PAYLOAD_TOO_LARGE = "Request body too large"


class BodyTooLarge(Exception):
    pass


async def _read_body(request: Request, limit: int) -> bytes:
    declared = request.headers.get("content-length", "")
    if declared.isdigit() and int(declared) > limit:
        raise BodyTooLarge
    body = bytearray()
    async for chunk in request.stream():
        body.extend(chunk)
        if len(body) > limit:
            raise BodyTooLarge
    return bytes(body)


def _parse_payload(request: Request, body: bytes):
    """Parsed JSON or form body, or None if it is missing or unreadable."""
    if not body:
        return None
    try:
        text = body.decode("utf-8")
    except UnicodeDecodeError:
        return None
    if request.headers.get("content-type", "").startswith("application/x-www-form-urlencoded"):
        return dict(parse_qsl(text))
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return None


@router.post(
    "/send-otp",
    operation_id="sendOtp",
    summary="Email a caller-supplied one-time passcode",
    responses={
        200: {"model": SendOtpResponse},
        400: {"model": ErrorResponse},
        413: {"model": ErrorResponse},
        429: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
    },
)
async def send_otp(
    request: Request,
    settings: AppSettings,
    pipeline: Pipeline,
    client_id: ClientId,
    ctx: Context,
) -> JSONResponse:
    """
    Body: ``{"email": "...", "otp": "123456"}`` as JSON or a urlencoded form.

    Rate limit first, then validation, then a single delivery attempt.
    Bodies over MAX_BODY_BYTES are refused before any of that.
    """
    try:
        body = await _read_body(request, settings.max_body_bytes)
    except BodyTooLarge:
        logger.warning(
            "Request body over %d bytes refused",
            settings.max_body_bytes,
            extra={"request_id": ctx.correlation_id, "client": client_id},
        )
        return failure_response(ErrorKind.PAYLOAD_TOO_LARGE, PAYLOAD_TOO_LARGE, ctx.correlation_id)

    result = await pipeline.send_otp(_parse_payload(request, body), client_id, ctx)
    return envelope_response(result.envelope, headers=result.headers)
