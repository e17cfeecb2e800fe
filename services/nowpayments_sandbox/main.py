"""NOWPayments sandbox built with FastAPI.

Emulates the two provider endpoints the marketplace calls
(``POST /v1/invoice`` and ``GET /v1/currencies``) so the Django app can run
end to end without a real merchant account. A developer then pushes a
payment status with ``POST /sandbox/invoices/{id}/status``; the sandbox
stores it and delivers a signed IPN to the invoice's callback URL, the same
way the provider does.
"""

import hashlib
import hmac
import json
import logging
import os
import uuid
from decimal import Decimal
from typing import Annotated, Optional

import httpx
from fastapi import FastAPI, Header, HTTPException, Request
from pydantic import BaseModel, Field
from pythonjsonlogger import jsonlogger

from repo import InvoicesRepo, quantize

API_KEY = os.getenv("SANDBOX_API_KEY", "sandbox-key")
IPN_SECRET = os.getenv("SANDBOX_IPN_SECRET", "")
PUBLIC_URL = os.getenv("SANDBOX_PUBLIC_URL", "http://localhost:9002").rstrip("/")
CURRENCIES = [c for c in os.getenv("SANDBOX_CURRENCIES", "btc,eth,ltc,usdttrc20,usdterc20,trx").split(",") if c]
PAYMENT_STATUSES = {
    "waiting", "confirming", "confirmed", "sending", "partially_paid",
    "finished", "failed", "refunded", "expired",
}

app = FastAPI(title="NOWPayments Sandbox")

logger = logging.getLogger("nowpayments_sandbox")
if not logger.handlers:
    h = logging.StreamHandler()
    h.setFormatter(jsonlogger.JsonFormatter("%(asctime)s %(levelname)s %(name)s %(message)s %(request_id)s"))
    logger.addHandler(h)
    logger.setLevel(logging.INFO)


class InvoiceRequest(BaseModel):
    """Invoice body as the provider documents it.

    ``price_amount`` is accepted as a string or number and must be positive.
    """

    price_amount: Decimal = Field(gt=0)
    price_currency: str = Field(min_length=2, max_length=20)
    pay_currency: Optional[str] = None
    order_id: str = Field(min_length=1, max_length=64)
    order_description: Optional[str] = None
    ipn_callback_url: Optional[str] = None
    success_url: Optional[str] = None
    cancel_url: Optional[str] = None


class StatusPush(BaseModel):
    payment_status: str
    actually_paid: Optional[Decimal] = None


def _ipn_client() -> httpx.Client:
    return httpx.Client(timeout=5.0)


def _require_key(x_api_key: Optional[str]) -> None:
    if x_api_key != API_KEY:
        raise HTTPException(status_code=403, detail="INVALID_API_KEY")


def sign(payload: dict, secret: str) -> str:
    """HMAC-SHA512 over the key-sorted compact JSON, as the provider signs IPNs."""
    body = json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    return hmac.new(secret.encode("utf-8"), body.encode("utf-8"), hashlib.sha512).hexdigest()


def _invoice_body(inv) -> dict:
    return {
        "id": inv.id,
        "order_id": inv.order_id,
        "order_description": inv.order_description,
        "price_amount": str(quantize(inv.price_amount)),
        "price_currency": inv.price_currency,
        "pay_currency": inv.pay_currency,
        "ipn_callback_url": inv.ipn_callback_url,
        "invoice_url": f"{PUBLIC_URL}/invoice/{inv.id}",
        "success_url": inv.success_url,
        "cancel_url": inv.cancel_url,
        "created_at": inv.created_at.isoformat(),
        "updated_at": inv.updated_at.isoformat(),
    }


@app.get("/health")
def health():
    return {"ok": True}


@app.post("/v1/invoice")
def create_invoice(
    req: InvoiceRequest,
    x_api_key: Annotated[Optional[str], Header(alias="x-api-key")] = None,
):
    """Create an invoice; responds 200 with the provider's invoice shape."""
    _require_key(x_api_key)
    inv = InvoicesRepo().create(**req.model_dump())
    logger.info("invoice created", extra={"invoice_id": inv.id, "order_id": inv.order_id})
    return _invoice_body(inv)


@app.get("/v1/invoice/{invoice_id}")
def get_invoice(invoice_id: str, x_api_key: Annotated[Optional[str], Header(alias="x-api-key")] = None):
    _require_key(x_api_key)
    inv = InvoicesRepo().get(invoice_id)
    if inv is None:
        raise HTTPException(status_code=404, detail="INVOICE_NOT_FOUND")
    return {**_invoice_body(inv), "payment_status": inv.status}


@app.get("/v1/currencies")
def currencies(x_api_key: Annotated[Optional[str], Header(alias="x-api-key")] = None):
    _require_key(x_api_key)
    return {"currencies": CURRENCIES}


@app.post("/sandbox/invoices/{invoice_id}/status")
def push_status(invoice_id: str, body: StatusPush):
    """Record a payment status and deliver it as an IPN callback.

    Returns:
        dict: ``delivered`` plus the callback's HTTP status, or the
        transport error when the callback could not be reached.
    """
    status = body.payment_status.strip().lower()
    if status not in PAYMENT_STATUSES:
        raise HTTPException(status_code=422, detail="UNKNOWN_PAYMENT_STATUS")

    inv = InvoicesRepo().set_status(invoice_id, status)
    if inv is None:
        raise HTTPException(status_code=404, detail="INVOICE_NOT_FOUND")

    paid = body.actually_paid if body.actually_paid is not None else quantize(inv.price_amount)
    ipn = {
        "event_type": "payment",
        "payment_id": inv.id,
        "invoice_id": inv.id,
        "order_id": inv.order_id,
        "order_description": inv.order_description,
        "payment_status": status,
        "price_amount": str(quantize(inv.price_amount)),
        "price_currency": inv.price_currency,
        "pay_amount": str(paid),
        "actually_paid": str(paid),
        "pay_currency": inv.pay_currency,
    }
    if not inv.ipn_callback_url:
        return {"delivered": False, "reason": "NO_CALLBACK_URL", "ipn": ipn}

    headers = {"Content-Type": "application/json"}
    if IPN_SECRET:
        headers["x-nowpayments-sig"] = sign(ipn, IPN_SECRET)
    try:
        with _ipn_client() as client:
            resp = client.post(inv.ipn_callback_url, content=json.dumps(ipn), headers=headers)
    except httpx.RequestError as e:
        logger.warning("ipn delivery failed", extra={"invoice_id": inv.id, "error": str(e)})
        return {"delivered": False, "reason": str(e), "ipn": ipn}

    logger.info("ipn delivered", extra={"invoice_id": inv.id, "callback_status": resp.status_code})
    return {"delivered": resp.is_success, "callback_status": resp.status_code, "ipn": ipn}


@app.middleware("http")
async def add_request_id(request: Request, call_next):
    rid = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    request.state.request_id = rid
    try:
        response = await call_next(request)
    finally:
        logger.info("request handled", extra={"request_id": rid, "path": request.url.path, "method": request.method})
    response.headers["X-Request-ID"] = rid
    return response
