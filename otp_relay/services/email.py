"""
Email content for passcode delivery.

Builds the subject line plus the plain-text and HTML bodies.  The
passcode appears only in the message bodies; nothing here logs it.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from html import escape

from otp_relay.config import Settings


@dataclass(frozen=True)
class OtpEmailContent:
    subject: str
    text: str
    html: str


def _build_subject(brand: str) -> str:
    return f"🔐 Your {brand} verification code"


def _build_text_body(brand: str, passcode: str, expiry_minutes: int, request_id: str) -> str:
    return (
        f"Your {brand} verification code is: {passcode}.\n\n"
        f"This code will expire in {expiry_minutes} minutes. "
        "Never share this code with anyone.\n\n"
        f"Request ID: {request_id}\n"
    )


def _build_html_body(
    brand: str,
    passcode: str,
    expiry_minutes: int,
    request_id: str,
    support_email: str | None,
) -> str:
    """Build the HTML email body around the passcode."""
    brand = escape(brand)
    support = (
        f'contact our support team at <a href="mailto:{escape(support_email)}">'
        f"{escape(support_email)}</a>"
        if support_email
        else "contact our support team"
    )
    year = datetime.now(timezone.utc).year

    return f"""<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>{brand} - Verification Code</title>
</head>
<body style="font-family:'Segoe UI',Tahoma,Geneva,Verdana,sans-serif;margin:0;padding:0;background:#f5f5f5">
  <div style="max-width:600px;margin:0 auto;background:#fff">
    <div style="background:#2563EB;padding:30px;text-align:center;color:#fff">
      <div style="font-size:28px;font-weight:bold">🔐 {brand}</div>
    </div>
    <div style="padding:40px 30px;color:#4b5563">
      <h2 style="color:#1f2937">Your Verification Code</h2>
      <p>Please use the verification code below to complete your sign-in:</p>
      <div style="border:2px solid #2563EB;border-radius:12px;padding:30px;text-align:center;margin:30px 0">
        <div style="font-size:36px;font-weight:bold;color:#2563EB;letter-spacing:8px;font-family:monospace">{escape(passcode)}</div>
        <div style="color:#6b7280;font-size:12px;margin-top:10px">This code will expire in {expiry_minutes} minutes</div>
      </div>
      <div style="background:#fef2f2;border:1px solid #fecaca;border-radius:8px;padding:15px;color:#991b1b">
        <strong>⚠️ Security Notice:</strong> Never share this code with anyone.
        {brand} will never ask for your verification code by phone or email.
      </div>
      <div style="background:#f0f9ff;border:1px solid #0ea5e9;border-radius:8px;padding:15px;margin-top:20px;color:#0c4a6e">
        <strong>🛡️ Security Tips:</strong>
        <ul>
          <li>Only enter this code on the official {brand} website</li>
          <li>{brand} staff will never ask for your verification code</li>
          <li>If you didn't request this code, please secure your account immediately</li>
        </ul>
      </div>
      <p style="font-size:14px;margin-top:30px">
        If you didn't request this code, please ignore this email or {support}.
      </p>
    </div>
    <div style="background:#f8fafc;padding:20px;text-align:center;color:#6b7280;font-size:14px">
      <p>© {year} {brand}. All rights reserved.</p>
      <p>This is an automated message, please do not reply to this email.</p>
      <p style="font-size:12px">Request ID: {escape(request_id)}</p>
    </div>
  </div>
</body>
</html>
"""


def build_otp_email(settings: Settings, passcode: str, request_id: str) -> OtpEmailContent:
    brand = settings.brand_name
    expiry = settings.otp_expiry_minutes
    return OtpEmailContent(
        subject=_build_subject(brand),
        text=_build_text_body(brand, passcode, expiry, request_id),
        html=_build_html_body(brand, passcode, expiry, request_id, settings.support_email),
    )
