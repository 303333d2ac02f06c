"""Tests for the /send-otp endpoint and the shared HTTP behaviour."""

import uuid
from dataclasses import replace

import aiosmtplib
from fastapi.testclient import TestClient

from otp_relay.main import create_app
from tests.mocks.services import FakeTransport

VALID = {"email": "user@example.com", "otp": "123456"}


class TestSendOtpSuccess:
    def test_success(self, client, transport):
        resp = client.post("/send-otp", json=VALID)
        assert resp.status_code == 200

        data = resp.json()
        assert data["success"] is True
        assert data["message"] == "OTP sent successfully"
        assert data["requestId"] == resp.headers["X-Request-ID"]
        assert data["timestamp"].endswith("Z")
        assert transport.last["To"] == "user@example.com"
        assert transport.last["X-Request-ID"] == data["requestId"]

    def test_generated_request_id_is_uuid(self, client):
        resp = client.post("/send-otp", json=VALID)
        assert uuid.UUID(resp.json()["requestId"]).version == 4

    def test_request_ids_are_unique(self, client):
        ids = {client.post("/send-otp", json=VALID).json()["requestId"] for _ in range(3)}
        assert len(ids) == 3

    def test_incoming_request_id_is_honoured(self, client):
        resp = client.post("/send-otp", json=VALID, headers={"X-Request-ID": "abc-123"})
        assert resp.json()["requestId"] == "abc-123"
        assert resp.headers["X-Request-ID"] == "abc-123"

    def test_malformed_request_id_is_replaced(self, client):
        resp = client.post("/send-otp", json=VALID, headers={"X-Request-ID": "<script>"})
        assert resp.json()["requestId"] != "<script>"
        assert resp.headers["X-Request-ID"] == resp.json()["requestId"]

    def test_rate_limit_headers(self, client):
        resp = client.post("/send-otp", json=VALID)
        assert resp.headers["RateLimit-Limit"] == "5"
        assert resp.headers["RateLimit-Remaining"] == "4"


class TestSendOtpValidation:
    def test_two_field_errors(self, client, transport):
        resp = client.post("/send-otp", json={"email": "bad", "otp": "1"})
        assert resp.status_code == 400

        data = resp.json()
        assert data["success"] is False
        assert data["error"] == "Validation failed"
        assert data["details"] == ["Invalid email format", "OTP must be exactly 6 digits"]
        assert data["requestId"] == resp.headers["X-Request-ID"]
        assert transport.sent == []

    def test_invalid_json_body(self, client):
        resp = client.post(
            "/send-otp", content=b"{not json", headers={"Content-Type": "application/json"}
        )
        assert resp.status_code == 400
        assert len(resp.json()["details"]) >= 2

    def test_empty_body(self, client):
        resp = client.post("/send-otp")
        assert resp.status_code == 400


class TestSendOtpRateLimit:
    def test_sixth_request_is_throttled(self, client):
        for _ in range(5):
            assert client.post("/send-otp", json=VALID).status_code == 200

        resp = client.post("/send-otp", json=VALID)
        assert resp.status_code == 429
        data = resp.json()
        assert data["success"] is False
        assert data["error"] == "Too many requests. Please try again later."
        assert 0 < data["retryAfter"] <= 60
        assert resp.headers["Retry-After"] == str(data["retryAfter"])
        assert data["requestId"] == resp.headers["X-Request-ID"]

    def test_window_reset_admits_again(self, client, clock):
        for _ in range(6):
            client.post("/send-otp", json=VALID)
        clock.advance(61)
        assert client.post("/send-otp", json=VALID).status_code == 200


class TestSendOtpTransportFailure:
    def test_failure_does_not_leak_detail(self, settings, limiter, caplog):
        detail = "535 auth failed for relay@example.com at smtp.internal.example.com"
        transport = FakeTransport(error=aiosmtplib.SMTPAuthenticationError(535, detail))
        app = create_app(settings, transport=transport, limiter=limiter)

        with TestClient(app, raise_server_exceptions=False) as client:
            resp = client.post("/send-otp", json=VALID)

        assert resp.status_code == 502
        data = resp.json()
        assert data["error"] == "Failed to send verification email. Please try again."
        assert data["requestId"] == resp.headers["X-Request-ID"]
        assert detail not in resp.text
        assert "smtp.internal" not in resp.text
        assert detail in caplog.text


class TestRouting:
    def test_unknown_route_is_404_envelope(self, client):
        resp = client.get("/nope", headers={"X-Request-ID": "r-404"})
        assert resp.status_code == 404
        assert resp.json() == {
            "success": False,
            "error": "Endpoint not found",
            "requestId": "r-404",
            "timestamp": resp.json()["timestamp"],
        }

    def test_wrong_method_is_404_envelope(self, client):
        resp = client.get("/send-otp")
        assert resp.status_code == 404
        assert resp.json()["error"] == "Endpoint not found"
        assert resp.json()["requestId"] == resp.headers["X-Request-ID"]

    def test_uncaught_exception_is_500_envelope(self, app, settings):
        @app.get("/explode")
        async def explode():
            raise RuntimeError("kaboom: secret internals")

        with TestClient(app, raise_server_exceptions=False) as client:
            resp = client.get("/explode", headers={"X-Request-ID": "r-500"})

        assert resp.status_code == 500
        assert resp.json()["error"] == "Internal server error"
        assert resp.json()["requestId"] == "r-500"
        assert resp.headers["X-Request-ID"] == "r-500"
        assert "kaboom" not in resp.text


class TestHttpPolicies:
    def test_security_headers(self, client):
        resp = client.get("/health")
        assert resp.headers["X-Content-Type-Options"] == "nosniff"
        assert "max-age=31536000" in resp.headers["Strict-Transport-Security"]
        assert "default-src 'self'" in resp.headers["Content-Security-Policy"]

    def test_cors_allows_any_origin_outside_production(self, client):
        resp = client.options(
            "/send-otp",
            headers={
                "Origin": "http://localhost:5173",
                "Access-Control-Request-Method": "POST",
            },
        )
        assert resp.status_code == 200
        assert resp.headers["access-control-allow-origin"] == "http://localhost:5173"

    def test_cors_restricted_in_production(self, settings, limiter, transport):
        prod = replace(
            settings, environment="production", allowed_origins=("https://app.example.com",)
        )
        app = create_app(prod, transport=transport, limiter=limiter)
        with TestClient(app) as client:
            allowed = client.get("/health", headers={"Origin": "https://app.example.com"})
            denied = client.get("/health", headers={"Origin": "https://evil.example.com"})

        assert allowed.headers["access-control-allow-origin"] == "https://app.example.com"
        assert "access-control-allow-origin" not in denied.headers


class TestAppWiring:
    def test_injected_collaborators_are_used(self, settings, limiter, transport):
        app = create_app(settings, transport=transport, limiter=limiter)
        assert app.state.limiter is limiter
        assert app.state.pipeline.limiter is limiter

        with TestClient(app) as client:
            client.post("/send-otp", json=VALID)
        assert len(transport.sent) == 1

    def test_requests_count_against_injected_limiter(self, client, limiter):
        for _ in range(3):
            client.post("/send-otp", json=VALID)
        assert limiter.check("testclient").remaining == 1


class TestTrustedProxy:
    def test_spoofed_forwarded_hops_share_one_limit(self, settings, limiter, transport):
        app = create_app(replace(settings, trust_proxy=True), transport=transport, limiter=limiter)
        with TestClient(app) as client:
            statuses = [
                client.post(
                    "/send-otp",
                    json=VALID,
                    headers={"X-Forwarded-For": f"198.51.100.{i}, 10.0.0.1"},
                ).status_code
                for i in range(20)
            ]

        assert statuses.count(200) == 5
        assert statuses.count(429) == 15
        assert len(transport.sent) == 5


class TestRequestBody:
    def test_oversized_body_is_refused(self, settings, limiter, transport):
        app = create_app(replace(settings, max_body_bytes=64), transport=transport, limiter=limiter)
        with TestClient(app) as client:
            resp = client.post(
                "/send-otp", json={"email": "user@example.com", "otp": "123456", "pad": "x" * 100}
            )

        assert resp.status_code == 413
        assert resp.json()["error"] == "Request body too large"
        assert resp.json()["requestId"] == resp.headers["X-Request-ID"]
        assert transport.sent == []
        assert limiter.check("testclient").remaining == 4

    def test_form_encoded_body(self, client, transport):
        resp = client.post("/send-otp", data=VALID)
        assert resp.status_code == 200
        assert transport.last["To"] == "user@example.com"
