"""
Fixed-window rate limiting for the send endpoint.

Counting is done by the `limits` fixed-window strategy over in-memory
storage, the same backend slowapi uses.  The first request from a client
opens a window of `window_ms` (rounded up to whole seconds); up to
`max_requests` calls are admitted until the window ends, after which the
next call opens a fresh window.

Because windows are fixed, a client can get up to 2 × max_requests
through around a window boundary.  That is the intended behaviour, not a
sliding window.

Client ids are the peer address.  When the service sits behind a proxy,
uvicorn's proxy-header handling (`TRUST_PROXY` / `FORWARDED_ALLOW_IPS`)
rewrites the peer address before the app sees the request, so forwarded
headers are never read here.
"""

from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass

from limits import RateLimitItemPerSecond
from limits.storage import MemoryStorage, Storage
from limits.strategies import FixedWindowRateLimiter

from otp_relay.config import Settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    limit: int
    remaining: int
    retry_after: int
    reset_in: int

    def headers(self) -> dict[str, str]:
        headers = {
            "RateLimit-Limit": str(self.limit),
            "RateLimit-Remaining": str(self.remaining),
            "RateLimit-Reset": str(self.reset_in),
        }
        if not self.allowed:
            headers["Retry-After"] = str(self.retry_after)
        return headers


class SendRateLimiter:
    """Per-client fixed-window limit for passcode sends."""

    def __init__(
        self,
        *,
        window_ms: int,
        max_requests: int,
        storage: Storage | None = None,
    ) -> None:
        if window_ms <= 0 or max_requests <= 0:
            raise ValueError("window_ms and max_requests must be positive")
        self.window_ms = window_ms
        self.max_requests = max_requests
        self.item = RateLimitItemPerSecond(
            max_requests, math.ceil(window_ms / 1000), namespace="send-otp"
        )
        self.storage = storage if storage is not None else MemoryStorage()
        self._strategy = FixedWindowRateLimiter(self.storage)

    @classmethod
    def from_settings(cls, settings: Settings) -> SendRateLimiter:
        return cls(
            window_ms=settings.rate_limit_window_ms,
            max_requests=settings.rate_limit_max_requests,
        )

    def check(self, client_id: str) -> RateLimitDecision:
        """Count one request for `client_id` and decide whether to admit it."""
        allowed = self._strategy.hit(self.item, client_id)
        stats = self._strategy.get_window_stats(self.item, client_id)
        seconds_left = max(0, math.ceil(stats.reset_time - time.time()))
        if not allowed:
            logger.debug("Rate limit exceeded for %s", client_id)
        return RateLimitDecision(
            allowed=allowed,
            limit=self.max_requests,
            remaining=stats.remaining,
            retry_after=0 if allowed else max(1, seconds_left),
            reset_in=seconds_left,
        )

    def clear(self, client_id: str) -> None:
        """Forget the window of a single client."""
        self._strategy.clear(self.item, client_id)

    def reset(self) -> None:
        """Forget every client window."""
        self.storage.reset()
