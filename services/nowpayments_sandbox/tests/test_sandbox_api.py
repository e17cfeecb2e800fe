import hashlib
import hmac
import json

import httpx


HEADERS = {"x-api-key": "test-key"}


def _invoice(api, **overrides):
    body = {
        "price_amount": "59.97",
        "price_currency": "usd",
        "pay_currency": "btc",
        "order_id": "3f1c9d1e-0000-4000-8000-000000000001",
        "order_description": "Order #1",
        "ipn_callback_url": "http://market.test/api/payment/webhook",
        "success_url": "http://shop.test/ok?orderId=3f1c",
        "cancel_url": "http://shop.test/cancel?orderId=3f1c",
    }
    body.update(overrides)
    return api.post("/v1/invoice", json=body, headers=HEADERS)


def test_invoice_requires_api_key(api):
    r = api.post("/v1/invoice", json={"price_amount": "1.00", "price_currency": "usd", "order_id": "x"})
    assert r.status_code == 403


def test_invoice_created_with_provider_shape(api):
    r = _invoice(api)
    assert r.status_code == 200, r.text
    data = r.json()
    assert data["id"].isdigit()
    assert data["invoice_url"].endswith(f"/invoice/{data['id']}")
    assert data["price_amount"] == "59.97"
    assert data["order_id"] == "3f1c9d1e-0000-4000-8000-000000000001"


def test_invoice_rejects_non_positive_amount(api):
    r = _invoice(api, price_amount="0")
    assert r.status_code == 422


def test_currencies_listed(api):
    r = api.get("/v1/currencies", headers=HEADERS)
    assert r.status_code == 200
    assert "btc" in r.json()["currencies"]


def test_status_push_delivers_signed_ipn(api, sandbox, monkeypatch):
    invoice_id = _invoice(api).json()["id"]
    sent = {}

    def handler(request: httpx.Request) -> httpx.Response:
        sent["url"] = str(request.url)
        sent["body"] = json.loads(request.content)
        sent["headers"] = request.headers
        return httpx.Response(200, json={"status": "success"})

    monkeypatch.setattr(sandbox, "_ipn_client", lambda: httpx.Client(transport=httpx.MockTransport(handler)))

    r = api.post(f"/sandbox/invoices/{invoice_id}/status", json={"payment_status": "finished"})
    assert r.status_code == 200
    assert r.json()["delivered"] is True

    assert sent["url"] == "http://market.test/api/payment/webhook"
    assert sent["body"]["payment_status"] == "finished"
    assert sent["body"]["order_id"] == "3f1c9d1e-0000-4000-8000-000000000001"
    assert sent["headers"]["x-nowpayments-sig"] == sandbox.sign(sent["body"], "ipn-secret")

    stored = api.get(f"/v1/invoice/{invoice_id}", headers=HEADERS).json()
    assert stored["payment_status"] == "finished"


def test_status_push_reports_unreachable_callback(api, sandbox, monkeypatch):
    invoice_id = _invoice(api).json()["id"]

    def refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    monkeypatch.setattr(sandbox, "_ipn_client", lambda: httpx.Client(transport=httpx.MockTransport(refuse)))

    r = api.post(f"/sandbox/invoices/{invoice_id}/status", json={"payment_status": "waiting"})
    assert r.status_code == 200
    assert r.json()["delivered"] is False


def test_status_push_unknown_invoice_or_status(api):
    assert api.post("/sandbox/invoices/999/status", json={"payment_status": "finished"}).status_code == 404
    invoice_id = _invoice(api).json()["id"]
    r = api.post(f"/sandbox/invoices/{invoice_id}/status", json={"payment_status": "paid-ish"})
    assert r.status_code == 422


def test_sign_keeps_non_ascii_as_utf8(sandbox):
    payload = {"order_id": "a3c1", "order_description": "Замовлення #1"}
    raw = '{"order_description":"Замовлення #1","order_id":"a3c1"}'.encode("utf-8")
    assert sandbox.sign(payload, "ipn-secret") == hmac.new(b"ipn-secret", raw, hashlib.sha512).hexdigest()
