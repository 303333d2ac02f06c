"""
Health check endpoint.  Never rate limited.
"""

import logging
import time

from fastapi import APIRouter, Request

from otp_relay.dependencies import AppSettings, Context
from otp_relay.models import HealthResponse, utc_timestamp

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


@router.get(
    "/health",
    response_model=HealthResponse,
    response_model_by_alias=True,
    operation_id="getHealth",
    summary="Health check",
)
async def get_health(request: Request, settings: AppSettings, ctx: Context) -> HealthResponse:
    logger.debug(
        "Health check requested",
        extra={"request_id": ctx.correlation_id, "user_agent": request.headers.get("user-agent")},
    )
    return HealthResponse(
        status="OK",
        timestamp=utc_timestamp(),
        uptime=round(time.monotonic() - request.app.state.started_at, 3),
        environment=settings.environment,
        version=settings.version,
        correlation_id=ctx.correlation_id,
    )
