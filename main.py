#!/usr/bin/env python3
"""
Entry point for the OTP relay.

uvicorn stops accepting connections on SIGTERM/SIGINT and gives
in-flight requests SHUTDOWN_GRACE_SECONDS to finish.

With TRUST_PROXY on, uvicorn rewrites the client address from
X-Forwarded-For, walking the header from the right and skipping hops
listed in FORWARDED_ALLOW_IPS.
"""

import uvicorn

from otp_relay.config import Settings, load_settings


def server_options(settings: Settings) -> dict:
    return {
        "host": settings.host,
        "port": settings.port,
        "log_level": settings.log_level.lower(),
        "proxy_headers": settings.trust_proxy,
        "forwarded_allow_ips": settings.forwarded_allow_ips,
        "timeout_graceful_shutdown": settings.shutdown_grace_seconds,
        "log_config": None,
    }


if __name__ == "__main__":
    uvicorn.run("otp_relay.main:app", **server_options(load_settings()))
