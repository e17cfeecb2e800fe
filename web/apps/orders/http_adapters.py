"""NOWPayments HTTP client with a circuit breaker and correlation headers.

This module implements ``PaymentGatewayPort`` against the provider's REST
API using ``httpx``. It adds:

- Request correlation: propagates ``X-Request-ID`` from the ContextVar set
    by the gateway middleware.
- A circuit breaker so an unhealthy provider is not hammered, with
    HALF_OPEN probing after a timeout.
- Exponential-backoff retry for the currency listing only. Invoice creation
    is never retried: a retried POST could open a second invoice for the
    same order.

Every failure surfaces as ``PaymentGatewayError`` so the checkout service
has a single error type to handle.
"""

import logging
import threading
import time
from typing import List, Optional

import httpx
from django.conf import settings
from django.utils.module_loading import import_string

from .domain import InvoiceRequest, PaymentGatewayError, PaymentIntent

logger = logging.getLogger(__name__)

REQUEST_ID_CTX = import_string("gateway.middleware.REQUEST_ID_CTX")


# ---------------- Circuit Breaker ---------------- #

class CircuitBreaker:
    """Minimal circuit breaker with CLOSED/OPEN/HALF_OPEN states.

    Transitions:
    - CLOSED → OPEN when failures reach ``fail_threshold``.
    - OPEN → HALF_OPEN after ``reset_timeout`` seconds.
    - HALF_OPEN → CLOSED on a successful probe; back to OPEN on failure.
      Only one probe may be in flight.
    """

    def __init__(self, name: str, fail_threshold: int, reset_timeout: float):
        self.name = name
        self.fail_threshold = fail_threshold
        self.reset_timeout = reset_timeout
        self._lock = threading.RLock()
        self._failures = 0
        self._state = "CLOSED"  # CLOSED | OPEN | HALF_OPEN
        self._opened_at = 0.0
        self._probe_in_flight = False

    @property
    def state(self) -> str:
        with self._lock:
            if self._state == "OPEN" and (time.monotonic() - self._opened_at) >= self.reset_timeout:
                self._state = "HALF_OPEN"
                self._probe_in_flight = False
            return self._state

    def before_call(self) -> str:
        """Admit or reject a call.

        Returns:
            str: The state at call time.

        Raises:
            RuntimeError: ``CIRCUIT_OPEN`` or ``CIRCUIT_HALF_OPEN_BUSY``.
        """
        with self._lock:
            st = self.state
            if st == "OPEN":
                raise RuntimeError("CIRCUIT_OPEN")
            if st == "HALF_OPEN":
                if self._probe_in_flight:
                    raise RuntimeError("CIRCUIT_HALF_OPEN_BUSY")
                self._probe_in_flight = True
            return st

    def on_success(self):
        with self._lock:
            self._failures = 0
            self._state = "CLOSED"
            self._probe_in_flight = False

    def on_failure(self):
        with self._lock:
            self._failures += 1
            if self._state == "HALF_OPEN" or (self._failures >= self.fail_threshold and self._state != "OPEN"):
                self._state = "OPEN"
                self._opened_at = time.monotonic()
                self._probe_in_flight = False

    def on_finish(self):
        with self._lock:
            if self._state == "HALF_OPEN":
                self._probe_in_flight = False

    def reset(self):
        with self._lock:
            self._failures = 0
            self._state = "CLOSED"
            self._opened_at = 0.0
            self._probe_in_flight = False


_nowpayments_cb = CircuitBreaker(
    "nowpayments",
    getattr(settings, "HTTP_CIRCUIT_FAIL_THRESHOLD", 5),
    getattr(settings, "HTTP_CIRCUIT_RESET_TIMEOUT", 30.0),
)


# ---------------- Helpers ---------------- #

def _request_headers(extra: Optional[dict] = None) -> dict:
    """Build outgoing headers: ``X-Request-ID`` (when known) plus ``extra``."""
    headers: dict[str, str] = {}
    rid = REQUEST_ID_CTX.get()
    if rid and rid != "-":
        headers["X-Request-ID"] = rid
    if extra:
        headers.update(extra)
    return headers


def _retry_policy():
    """Return retry configuration as (max_attempts, backoff_base, max_sleep)."""
    return (
        max(1, getattr(settings, "HTTP_RETRY_MAX", 3)),
        getattr(settings, "HTTP_RETRY_BACKOFF_BASE", 0.15),
        getattr(settings, "HTTP_RETRY_MAX_SLEEP", 0.5),
    )


def _should_retry(resp: Optional[httpx.Response], exc: Optional[Exception]) -> bool:
    """Retry only on transport exceptions or HTTP 5xx."""
    if exc is not None:
        return True
    return resp is not None and 500 <= resp.status_code < 600


# ---------------- NOWPayments Adapter ---------------- #

class NowPaymentsClient:
    """HTTP client for the NOWPayments invoice API.

    Args:
        base_url: API root, e.g. ``https://api.nowpayments.io/v1``.
        api_key: Sent as ``x-api-key``. A missing key fails every call with
            ``PaymentGatewayError`` before any network traffic.
        timeout: Per-request timeout in seconds.
        breaker: Circuit breaker shared by all clients of this provider.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        breaker: Optional[CircuitBreaker] = None,
    ):
        self.base_url = (base_url or settings.NOWPAYMENTS_BASE_URL).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.NOWPAYMENTS_API_KEY
        self.timeout = timeout or settings.NOWPAYMENTS_TIMEOUT_SECS
        self.breaker = breaker or _nowpayments_cb

    def _headers(self, state: str) -> dict:
        return _request_headers({"x-api-key": self.api_key, "X-Circuit-State": state})

    def _admit(self) -> str:
        if not self.api_key:
            raise PaymentGatewayError("NOWPayments API key is not configured")
        try:
            return self.breaker.before_call()
        except RuntimeError as e:
            raise PaymentGatewayError(str(e), status_code=503) from e

    def create_invoice(self, request: InvoiceRequest) -> PaymentIntent:
        """Open a hosted invoice for an order.

        Non-2xx answers below 500 are business rejections (bad currency,
        amount below minimum) and do not count against the breaker.

        Raises:
            PaymentGatewayError: Missing key, open circuit, timeout,
                transport error, non-2xx status or a body without
                ``id``/``invoice_url``.
        """
        payload = {
            "price_amount": request.price_amount,
            "price_currency": request.price_currency,
            "pay_currency": request.pay_currency,
            "order_id": request.order_id,
            "order_description": request.order_description,
            "ipn_callback_url": request.ipn_callback_url,
            "success_url": request.success_url,
            "cancel_url": request.cancel_url,
        }
        state = self._admit()
        try:
            with httpx.Client(timeout=self.timeout) as client:
                resp = client.post(f"{self.base_url}/invoice", json=payload, headers=self._headers(state))
        except httpx.TimeoutException as e:
            self.breaker.on_failure()
            raise PaymentGatewayError(f"timeout: {e}") from e
        except httpx.RequestError as e:
            self.breaker.on_failure()
            raise PaymentGatewayError(f"transport error: {e}") from e
        finally:
            self.breaker.on_finish()

        if resp.status_code >= 500:
            self.breaker.on_failure()
        else:
            self.breaker.on_success()

        if not resp.is_success:
            logger.warning(
                "nowpayments invoice rejected",
                extra={"order_id": request.order_id, "provider_status": resp.status_code},
            )
            raise PaymentGatewayError(resp.text, status_code=resp.status_code)

        try:
            data = resp.json()
            invoice_id, invoice_url = data.get("id"), data.get("invoice_url")
        except (ValueError, AttributeError) as e:
            raise PaymentGatewayError(f"malformed provider body: {resp.text[:200]}", resp.status_code) from e
        if invoice_id in (None, "") or not invoice_url:
            raise PaymentGatewayError(f"provider body missing id/invoice_url: {resp.text[:200]}", resp.status_code)

        return PaymentIntent(payment_id=str(invoice_id), payment_url=str(invoice_url))

    def list_currencies(self) -> List[str]:
        """Currencies the merchant can accept, lowercased.

        A safe read, so transport errors and 5xx are retried with
        exponential backoff.

        Raises:
            PaymentGatewayError: When every attempt failed or the answer
                was not usable.
        """
        max_attempts, backoff, cap = _retry_policy()
        state = self._admit()
        headers = self._headers(state)
        tries = 0
        try:
            with httpx.Client(timeout=self.timeout) as client:
                while True:
                    resp = None
                    exc = None
                    try:
                        resp = client.get(f"{self.base_url}/currencies", headers=headers)
                        if resp.is_success:
                            self.breaker.on_success()
                            break
                    except httpx.RequestError as e:
                        exc = e

                    tries += 1
                    headers["X-Retry-Count"] = str(tries)
                    if tries >= max_attempts or not _should_retry(resp, exc):
                        if exc is not None or resp.status_code >= 500:
                            self.breaker.on_failure()
                        else:
                            self.breaker.on_success()
                        if exc is not None:
                            raise PaymentGatewayError(f"transport error: {exc}") from exc
                        raise PaymentGatewayError(resp.text, status_code=resp.status_code)

                    time.sleep(min(backoff * (2 ** (tries - 1)), cap))
        finally:
            self.breaker.on_finish()

        try:
            currencies = resp.json().get("currencies", [])
        except (ValueError, AttributeError) as e:
            raise PaymentGatewayError("malformed currency list", resp.status_code) from e
        return [str(c).lower() for c in currencies if c]
