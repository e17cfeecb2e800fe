import pytest


@pytest.mark.django_db
def test_health_reports_db_and_provider(client, settings):
    settings.NOWPAYMENTS_API_KEY = ""

    r = client.get("/api/health/")

    assert r.status_code == 200
    body = r.json()
    assert body["ok"] is True
    assert body["components"]["db"]["ok"] is True
    assert body["components"]["payments"]["configured"] is False


@pytest.mark.django_db
def test_request_id_is_echoed(client):
    r = client.get("/api/health/", HTTP_X_REQUEST_ID="req-123")
    assert r["X-Request-ID"] == "req-123"


@pytest.mark.django_db
def test_request_id_is_generated(client):
    assert len(client.get("/api/health/")["X-Request-ID"]) == 36


def test_oversized_api_body_rejected(client):
    r = client.post("/api/payment/create", data="x", content_type="application/json", CONTENT_LENGTH="99999999")
    assert r.status_code == 413
    assert r.json()["detail"] == "PAYLOAD_TOO_LARGE"


def test_oversized_webhook_is_still_acknowledged(client, caplog):
    r = client.post("/api/payment/webhook", data="x", content_type="application/json", CONTENT_LENGTH="99999999")
    assert r.status_code == 200
    assert r.json() == {"status": "success"}
    assert any("oversized webhook body dropped" in rec.getMessage() for rec in caplog.records)


def test_liveness_needs_no_database(client):
    r = client.get("/api/health/live/")
    assert r.status_code == 200
    assert r.json() == {"ok": True}
