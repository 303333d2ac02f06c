"""Exception types raised inside the service.

Only the request pipeline and the app-level exception handlers turn these
into HTTP responses.
"""

from __future__ import annotations

from dataclasses import dataclass


class OtpRelayError(Exception):
    """Base class for all service errors."""


class ConfigError(OtpRelayError):
    """Invalid configuration value detected at startup."""


@dataclass(frozen=True)
class FieldError:
    field: str
    message: str


class RequestValidationFailed(OtpRelayError):
    """Inbound payload failed one or more field checks."""

    def __init__(self, errors: list[FieldError]) -> None:
        super().__init__("; ".join(f"{e.field}: {e.message}" for e in errors))
        self.errors = list(errors)

    @property
    def messages(self) -> list[str]:
        return [e.message for e in self.errors]


class TransportError(OtpRelayError):
    """The mail relay could not accept the message.

    The message is generic. The underlying exception is chained
    as ``__cause__`` and only ever written to the log.
    """

    def __init__(self, message: str = "Mail transport failed") -> None:
        super().__init__(message)
