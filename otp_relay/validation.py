"""
Input validation for the send-otp payload.

Every field check runs, and all failures are reported together so the
caller can fix the request in one round trip.
"""

from __future__ import annotations

import re
from typing import Any

from email_validator import EmailNotValidError, validate_email

from otp_relay.errors import FieldError, RequestValidationFailed
from otp_relay.models import OtpRequest

MAX_EMAIL_LENGTH = 254
OTP_LENGTH = 6

INVALID_EMAIL = "Invalid email format"
EMAIL_TOO_LONG = "Email address too long"
OTP_NOT_NUMERIC = "OTP must contain only numbers"
OTP_WRONG_LENGTH = "OTP must be exactly 6 digits"

_ASCII_DIGITS = re.compile(r"[0-9]+")


def _check_email(value: Any) -> tuple[str | None, list[FieldError]]:
    """Return the normalized address (if valid) and any errors."""
    if not isinstance(value, str) or not value.strip():
        return None, [FieldError("email", INVALID_EMAIL)]

    candidate = value.strip()
    errors: list[FieldError] = []
    normalized: str | None = None
    try:
        result = validate_email(candidate, check_deliverability=False)
        normalized = result.normalized.lower()
    except EmailNotValidError:
        errors.append(FieldError("email", INVALID_EMAIL))

    if len(normalized or candidate) > MAX_EMAIL_LENGTH:
        errors.append(FieldError("email", EMAIL_TOO_LONG))

    return (normalized if not errors else None), errors


def _check_otp(value: Any) -> list[FieldError]:
    if not isinstance(value, str):
        return [FieldError("otp", OTP_NOT_NUMERIC), FieldError("otp", OTP_WRONG_LENGTH)]

    errors = []
    if not _ASCII_DIGITS.fullmatch(value):
        errors.append(FieldError("otp", OTP_NOT_NUMERIC))
    if len(value) != OTP_LENGTH:
        errors.append(FieldError("otp", OTP_WRONG_LENGTH))
    return errors


def validate_send_otp(payload: Any) -> OtpRequest:
    """Validate a raw send-otp body.

    Raises `RequestValidationFailed` listing every failing check.
    """
    if not isinstance(payload, dict):
        payload = {}

    email, errors = _check_email(payload.get("email"))
    otp = payload.get("otp")
    errors.extend(_check_otp(otp))

    if errors:
        raise RequestValidationFailed(errors)
    return OtpRequest(email=email, passcode=otp)
