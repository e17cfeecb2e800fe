"""Unit tests for the NOWPayments HTTP client.

The client is exercised by monkeypatching ``httpx.Client.post``/``get`` and
asserting what it sends and how it maps provider answers.
"""
import httpx
import pytest

from apps.orders.domain import InvoiceRequest, PaymentGatewayError
from apps.orders.http_adapters import CircuitBreaker, NowPaymentsClient

BASE = "https://np.test/v1"

REQUEST = InvoiceRequest(
    order_id="9b2f7c1e-4d7a-4c57-9a55-2d8c8f0f1a10",
    price_amount="59.97",
    price_currency="usd",
    pay_currency="btc",
    order_description="Order #42",
    ipn_callback_url="https://api.shop.test/api/payment/webhook",
    success_url="https://shop.test/ok?orderId=9b2f7c1e-4d7a-4c57-9a55-2d8c8f0f1a10",
    cancel_url="https://shop.test/cancel?orderId=9b2f7c1e-4d7a-4c57-9a55-2d8c8f0f1a10",
)


def _client(**kw):
    kw.setdefault("breaker", CircuitBreaker("test", fail_threshold=2, reset_timeout=60))
    return NowPaymentsClient(base_url=BASE, api_key=kw.pop("api_key", "np-key"), timeout=2, **kw)


def test_create_invoice_sends_provider_payload(monkeypatch):
    sent = {}

    def fake_post(self, url, json=None, headers=None, **kw):
        sent.update(url=url, json=json, headers=headers)
        return httpx.Response(200, json={"id": 5077125051, "invoice_url": "https://nowpayments.io/payment/?iid=5077125051"})

    monkeypatch.setattr(httpx.Client, "post", fake_post, raising=True)

    intent = _client().create_invoice(REQUEST)

    assert intent.payment_id == "5077125051"
    assert intent.payment_url.endswith("iid=5077125051")
    assert sent["url"] == f"{BASE}/invoice"
    assert sent["headers"]["x-api-key"] == "np-key"
    assert sent["json"]["price_amount"] == "59.97"
    assert sent["json"]["order_id"] == REQUEST.order_id
    assert sent["json"]["order_description"] == "Order #42"


def test_create_invoice_non_2xx_is_gateway_error(monkeypatch):
    def fake_post(self, url, json=None, headers=None, **kw):
        return httpx.Response(400, text='{"message":"pay_currency is not supported"}')

    monkeypatch.setattr(httpx.Client, "post", fake_post, raising=True)

    with pytest.raises(PaymentGatewayError) as exc:
        _client().create_invoice(REQUEST)
    assert exc.value.status_code == 400
    assert "not supported" in exc.value.detail


def test_create_invoice_is_not_retried(monkeypatch):
    calls = {"n": 0}

    def fake_post(self, url, json=None, headers=None, **kw):
        calls["n"] += 1
        return httpx.Response(502, text="bad gateway")

    monkeypatch.setattr(httpx.Client, "post", fake_post, raising=True)

    with pytest.raises(PaymentGatewayError):
        _client().create_invoice(REQUEST)
    assert calls["n"] == 1


def test_create_invoice_timeout(monkeypatch):
    def fake_post(self, url, json=None, headers=None, **kw):
        raise httpx.ReadTimeout("slow provider")

    monkeypatch.setattr(httpx.Client, "post", fake_post, raising=True)

    with pytest.raises(PaymentGatewayError) as exc:
        _client().create_invoice(REQUEST)
    assert "timeout" in exc.value.detail


def test_create_invoice_malformed_body(monkeypatch):
    def fake_post(self, url, json=None, headers=None, **kw):
        return httpx.Response(200, text="<html>maintenance</html>")

    monkeypatch.setattr(httpx.Client, "post", fake_post, raising=True)

    with pytest.raises(PaymentGatewayError):
        _client().create_invoice(REQUEST)


def test_missing_api_key_fails_before_network(monkeypatch):
    def fake_post(self, *a, **kw):
        raise AssertionError("no request expected")

    monkeypatch.setattr(httpx.Client, "post", fake_post, raising=True)

    with pytest.raises(PaymentGatewayError):
        _client(api_key="").create_invoice(REQUEST)


def test_circuit_opens_after_repeated_5xx(monkeypatch):
    calls = {"n": 0}

    def fake_post(self, url, json=None, headers=None, **kw):
        calls["n"] += 1
        return httpx.Response(503, text="unavailable")

    monkeypatch.setattr(httpx.Client, "post", fake_post, raising=True)
    client = _client()

    for _ in range(2):
        with pytest.raises(PaymentGatewayError):
            client.create_invoice(REQUEST)
    with pytest.raises(PaymentGatewayError) as exc:
        client.create_invoice(REQUEST)

    assert exc.value.detail == "CIRCUIT_OPEN"
    assert calls["n"] == 2


def test_business_rejections_do_not_open_circuit(monkeypatch):
    def fake_post(self, url, json=None, headers=None, **kw):
        return httpx.Response(400, text="bad currency")

    monkeypatch.setattr(httpx.Client, "post", fake_post, raising=True)
    client = _client()

    for _ in range(3):
        with pytest.raises(PaymentGatewayError) as exc:
            client.create_invoice(REQUEST)
        assert exc.value.status_code == 400
    assert client.breaker.state == "CLOSED"


def test_currencies_retry_on_5xx(monkeypatch, settings):
    settings.HTTP_RETRY_MAX = 3
    calls = {"n": 0}

    def fake_get(self, url, headers=None, **kw):
        calls["n"] += 1
        if calls["n"] == 1:
            return httpx.Response(500, text="oops")
        return httpx.Response(200, json={"currencies": ["BTC", "eth", "usdttrc20"]})

    monkeypatch.setattr(httpx.Client, "get", fake_get, raising=True)
    monkeypatch.setattr("time.sleep", lambda *a, **k: None, raising=True)

    assert _client().list_currencies() == ["btc", "eth", "usdttrc20"]
    assert calls["n"] == 2


def test_currencies_give_up_after_max_attempts(monkeypatch, settings):
    settings.HTTP_RETRY_MAX = 2
    calls = {"n": 0}

    def fake_get(self, url, headers=None, **kw):
        calls["n"] += 1
        raise httpx.ConnectError("refused")

    monkeypatch.setattr(httpx.Client, "get", fake_get, raising=True)
    monkeypatch.setattr("time.sleep", lambda *a, **k: None, raising=True)

    with pytest.raises(PaymentGatewayError):
        _client().list_currencies()
    assert calls["n"] == 2


def test_half_open_probe_closes_on_success():
    breaker = CircuitBreaker("probe", fail_threshold=1, reset_timeout=0)
    breaker.before_call()
    breaker.on_failure()

    assert breaker.before_call() == "HALF_OPEN"
    with pytest.raises(RuntimeError):
        breaker.before_call()
    breaker.on_success()
    assert breaker.state == "CLOSED"
