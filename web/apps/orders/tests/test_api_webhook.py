import hashlib
import hmac
import json
import uuid
from decimal import Decimal

import pytest

from apps.orders.domain import Order, OrderItem
from apps.orders.models import OrderModel
from apps.orders.repository import DjangoOrderStore
from apps.orders.webhooks import sign_payload

WEBHOOK_URL = "/api/payment/webhook"


@pytest.fixture
def order():
    return DjangoOrderStore().create_with_items(
        Order(id=None, user_id="user-1", total=Decimal("25.00"), items=[OrderItem(str(uuid.uuid4()), 1, Decimal("25.00"))])
    )


def _ipn(order_id, status="finished", **extra):
    return {"event_type": "payment", "order_id": order_id, "payment_id": "4512", "payment_status": status, **extra}


@pytest.mark.django_db
def test_finished_completes_order(client, order):
    r = client.post(WEBHOOK_URL, data=_ipn(order.id), content_type="application/json")

    assert r.status_code == 200
    assert r.json() == {"status": "success"}
    row = OrderModel.objects.get(pk=order.id)
    assert row.status == "Completed"
    assert row.completed_at is not None


@pytest.mark.django_db
def test_redelivery_keeps_completion_time(client, order):
    client.post(WEBHOOK_URL, data=_ipn(order.id), content_type="application/json")
    first = OrderModel.objects.get(pk=order.id).completed_at

    client.post(WEBHOOK_URL, data=_ipn(order.id), content_type="application/json")
    client.post(WEBHOOK_URL, data=_ipn(order.id, "waiting"), content_type="application/json")

    row = OrderModel.objects.get(pk=order.id)
    assert row.status == "Waiting"
    assert row.completed_at == first


@pytest.mark.django_db
def test_loose_payload_is_accepted(client, order):
    r = client.post(
        WEBHOOK_URL, data={"order_id": order.id, "payment_status": "partially_paid"}, content_type="application/json"
    )
    assert r.status_code == 200
    assert OrderModel.objects.get(pk=order.id).status == "PartiallyPaid"


@pytest.mark.django_db
def test_malformed_json_is_acknowledged_and_logged(client, order, caplog):
    r = client.post(WEBHOOK_URL, data="{not json", content_type="application/json")

    assert r.status_code == 200
    assert r.json() == {"status": "success"}
    assert OrderModel.objects.get(pk=order.id).status == "Pending"
    assert any("not valid JSON" in rec.getMessage() for rec in caplog.records)


@pytest.mark.django_db
def test_unknown_order_is_acknowledged(client):
    r = client.post(WEBHOOK_URL, data=_ipn(str(uuid.uuid4())), content_type="application/json")
    assert r.status_code == 200


@pytest.mark.django_db
def test_signed_ipn_is_applied(client, order, settings):
    settings.NOWPAYMENTS_IPN_SECRET = "ipn-secret"
    payload = _ipn(order.id)

    client.post(
        WEBHOOK_URL,
        data=payload,
        content_type="application/json",
        HTTP_X_NOWPAYMENTS_SIG=sign_payload(payload, "ipn-secret"),
    )

    assert OrderModel.objects.get(pk=order.id).status == "Completed"


@pytest.mark.django_db
def test_bad_signature_is_ignored(client, order, settings, caplog):
    settings.NOWPAYMENTS_IPN_SECRET = "ipn-secret"

    r = client.post(WEBHOOK_URL, data=_ipn(order.id), content_type="application/json", HTTP_X_NOWPAYMENTS_SIG="00")

    assert r.status_code == 200
    assert OrderModel.objects.get(pk=order.id).status == "Pending"
    assert any("signature mismatch" in rec.getMessage() for rec in caplog.records)


@pytest.mark.django_db
def test_blank_status_keeps_order_status(client, order):
    r = client.post(WEBHOOK_URL, data=_ipn(order.id, status=""), content_type="application/json")

    assert r.status_code == 200
    assert OrderModel.objects.get(pk=order.id).status == "Pending"


@pytest.mark.django_db
def test_signed_ipn_with_non_ascii_description(client, order, settings):
    settings.NOWPAYMENTS_IPN_SECRET = "ipn-secret"
    payload = _ipn(order.id, order_description="Замовлення #1")
    signed = json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False).encode("utf-8")

    client.post(
        WEBHOOK_URL,
        data=payload,
        content_type="application/json",
        HTTP_X_NOWPAYMENTS_SIG=hmac.new(b"ipn-secret", signed, hashlib.sha512).hexdigest(),
    )

    assert OrderModel.objects.get(pk=order.id).status == "Completed"
