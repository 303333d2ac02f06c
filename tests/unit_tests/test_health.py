"""Tests for the /health endpoint."""


def test_health_returns_ok(client):
    resp = client.get("/health")
    assert resp.status_code == 200

    data = resp.json()
    assert data["status"] == "OK"
    assert data["environment"] == "test"
    assert data["version"] == "1.0.0"
    assert data["uptime"] >= 0
    assert data["timestamp"].endswith("Z")
    assert data["correlationId"] == resp.headers["X-Request-ID"]


def test_health_echoes_incoming_request_id(client):
    resp = client.get("/health", headers={"X-Request-ID": "probe-7"})
    assert resp.json()["correlationId"] == "probe-7"
    assert resp.headers["X-Request-ID"] == "probe-7"


def test_health_never_rate_limited(client, limiter):
    for _ in range(limiter.max_requests + 1):
        client.post("/send-otp", json={"email": "user@example.com", "otp": "123456"})
    assert client.post("/send-otp", json={}).status_code == 429

    for _ in range(50):
        assert client.get("/health").status_code == 200
    assert "RateLimit-Limit" not in client.get("/health").headers


def test_health_does_not_touch_limiter(client, limiter):
    for _ in range(10):
        client.get("/health")
    # The first send from this client still opens a fresh window
    assert limiter.check("testclient").remaining == limiter.max_requests - 1
