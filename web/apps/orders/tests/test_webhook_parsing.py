import hashlib
import hmac
import json
from decimal import Decimal

from apps.orders.webhooks import decode_body, parse_webhook, sign_payload, verify_signature


def test_structured_event():
    event = parse_webhook(
        {
            "event_type": "payment",
            "order_id": "a3c1",
            "payment_id": 5077125051,
            "payment_status": "finished",
            "pay_amount": "0.00091",
            "pay_currency": "btc",
        }
    )
    assert event.order_reference == "a3c1"
    assert event.payment_status == "finished"
    assert event.payment_id == "5077125051"
    assert event.amount == Decimal("0.00091")
    assert event.currency == "btc"


def test_non_payment_structured_event_is_ignored():
    assert parse_webhook({"event_type": "payout", "order_id": "a3c1", "payment_status": "finished"}) is None


def test_loose_payload_with_integer_order_id():
    """Plain provider IPNs have no event_type; the loose reader still finds the order."""
    event = parse_webhook({"order_id": 4521, "payment_status": "confirming", "actually_paid": 0.5})
    assert event.order_reference == "4521"
    assert event.payment_status == "confirming"
    assert event.amount == Decimal("0.5")


def test_loose_payload_missing_status_is_ignored(caplog):
    assert parse_webhook({"order_id": "a3c1"}) is None
    assert any("missing order reference or payment status" in r.getMessage() for r in caplog.records)


def test_non_object_payload_is_ignored():
    assert parse_webhook(["finished"]) is None


def test_decode_body_rejects_garbage(caplog):
    assert decode_body(b"{not json") is None
    assert any(r.levelname == "ERROR" for r in caplog.records)


def test_signature_roundtrip_is_key_order_independent():
    payload = {"payment_status": "finished", "order_id": "a3c1"}
    sig = sign_payload(payload, "ipn-secret")
    assert verify_signature({"order_id": "a3c1", "payment_status": "finished"}, sig, "ipn-secret")
    assert not verify_signature(payload, sig, "other-secret")
    assert not verify_signature(payload, None, "ipn-secret")


def test_blank_structured_status_is_ignored(caplog):
    assert parse_webhook({"event_type": "payment", "order_id": "a3c1", "payment_status": ""}) is None
    assert parse_webhook({"event_type": "payment", "order_id": "a3c1", "payment_status": "   "}) is None
    assert any("missing order reference or payment status" in r.getMessage() for r in caplog.records)


def test_structured_fields_are_trimmed():
    event = parse_webhook({"event_type": "payment", "order_id": " a3c1 ", "payment_status": " finished\n"})
    assert event.order_reference == "a3c1"
    assert event.payment_status == "finished"


def test_signature_over_non_ascii_description():
    """The provider signs raw UTF-8, not \\u escapes."""
    payload = {"order_description": "Замовлення #1", "order_id": "a3c1", "payment_status": "finished"}
    body = json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    sig = hmac.new(b"ipn-secret", body.encode("utf-8"), hashlib.sha512).hexdigest()

    assert verify_signature(payload, sig, "ipn-secret")
