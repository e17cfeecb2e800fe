"""Parsing and authentication of payment provider callbacks.

Providers are not consistent about payload shape, so ``parse_webhook``
tries the structured ``NowPaymentsWebhookEvent`` first and falls back to a
loose read of ``order_id`` / ``payment_status`` from any JSON object. Every
failure is logged and reported as ``None``; nothing here raises, because the
webhook endpoint must acknowledge the provider regardless of our parsing.
"""

import hashlib
import hmac
import json
import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from pydantic import ValidationError

from .domain import WebhookEvent
from .schemas import NowPaymentsWebhookEvent

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "HTTP_X_NOWPAYMENTS_SIG"


def canonical_body(payload: Any) -> str:
    """Serialize a payload with sorted keys and compact separators.

    This is the exact byte sequence the provider signs; non-ASCII text
    stays as raw UTF-8.
    """
    return json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def sign_payload(payload: Any, secret: str) -> str:
    """HMAC-SHA512 hex digest of the canonical payload."""
    return hmac.new(secret.encode("utf-8"), canonical_body(payload).encode("utf-8"), hashlib.sha512).hexdigest()


def verify_signature(payload: Any, signature: Optional[str], secret: str) -> bool:
    if not signature:
        return False
    return hmac.compare_digest(sign_payload(payload, secret), signature.strip().lower())


def decode_body(body: bytes) -> Optional[Any]:
    try:
        return json.loads(body.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        logger.error("webhook body is not valid JSON", extra={"error": str(e), "body": body[:2048].decode("utf-8", "replace")})
        return None


def _loose_text(value: Any) -> Optional[str]:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (str, int)):
        text = str(value).strip()
        return text or None
    return None


def _loose_decimal(value: Any) -> Optional[Decimal]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return Decimal(str(value))
    except InvalidOperation:
        return None


def parse_webhook(payload: Any) -> Optional[WebhookEvent]:
    """Reduce a decoded callback payload to a ``WebhookEvent``.

    Returns:
        The event, or None when the payload carries nothing actionable
        (not an object, non-payment structured event, missing order
        reference or status).
    """
    if not isinstance(payload, dict):
        logger.warning("webhook payload is not a JSON object", extra={"payload_type": type(payload).__name__})
        return None

    try:
        structured = NowPaymentsWebhookEvent.model_validate(payload)
    except ValidationError as e:
        logger.info("webhook is not a structured event, trying loose format", extra={"errors": e.error_count()})
    else:
        if structured.event_type.lower() != "payment":
            logger.warning(
                "webhook event type ignored",
                extra={"event_type": structured.event_type, "order_reference": structured.order_id},
            )
            return None
        return WebhookEvent(
            order_reference=structured.order_id,
            payment_status=structured.payment_status,
            event_type=structured.event_type,
            payment_id=structured.payment_id,
            amount=structured.pay_amount,
            currency=structured.pay_currency,
        )

    order_ref = _loose_text(payload.get("order_id"))
    status = _loose_text(payload.get("payment_status"))
    if not order_ref or not status:
        logger.warning(
            "webhook missing order reference or payment status",
            extra={"order_reference": order_ref, "payment_status": status},
        )
        return None

    return WebhookEvent(
        order_reference=order_ref,
        payment_status=status,
        event_type="payment",
        payment_id=_loose_text(payload.get("payment_id")),
        amount=_loose_decimal(payload.get("pay_amount", payload.get("actually_paid"))),
        currency=_loose_text(payload.get("pay_currency")),
    )
