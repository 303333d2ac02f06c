from typing import Annotated

from fastapi import Depends, Request
from slowapi.util import get_remote_address

from otp_relay.config import Settings
from otp_relay.middleware import get_request_context
from otp_relay.models import RequestContext
from otp_relay.pipeline import OtpPipeline


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_pipeline(request: Request) -> OtpPipeline:
    return request.app.state.pipeline


def get_client_id(request: Request) -> str:
    """Peer address; uvicorn has already applied trusted proxy headers."""
    return get_remote_address(request)


AppSettings = Annotated[Settings, Depends(get_settings)]
Pipeline = Annotated[OtpPipeline, Depends(get_pipeline)]
ClientId = Annotated[str, Depends(get_client_id)]
Context = Annotated[RequestContext, Depends(get_request_context)]
