from __future__ import annotations

from fastapi.testclient import TestClient

from portfolio_api.main import app


client = TestClient(app)


def test_preserves_incoming_request_id_header():
    incoming_id = "test-request-id-123"
    resp = client.get("/health", headers={"X-Request-ID": incoming_id})

    assert resp.status_code == 200
    assert resp.headers.get("X-Request-ID") == incoming_id


def test_generates_request_id_when_missing():
    resp = client.get("/health")

    assert resp.status_code == 200
    generated = resp.headers.get("X-Request-ID")
    assert generated
    assert isinstance(generated, str)
    assert len(generated) > 0

    duration = resp.headers.get("X-Request-Duration-ms")
    assert duration is not None


def test_error_envelope_carries_request_id():
    resp = client.post("/api/chatbot", json={"message": "hi"}, headers={"X-Request-ID": "req-err-1"})

    assert resp.status_code == 403
    assert resp.headers.get("X-Request-ID") == "req-err-1"
    assert resp.json()["error"]["requestId"] == "req-err-1"


def test_logs_completed_request(caplog):
    with caplog.at_level("INFO", logger="portfolio_api.core.middleware"):
        client.get("/health", headers={"X-Request-ID": "req-log-1"})

    records = [r for r in caplog.records if r.getMessage() == "http.request"]
    assert len(records) == 1
    assert records[0].path == "/health"
    assert records[0].status_code == 200
