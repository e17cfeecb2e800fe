"""HTTP views for the payment API.

Views are kept small: they validate requests (via Pydantic), delegate to
the checkout/reconciliation services obtained from ``providers``, and turn
domain errors into responses through ``gateway.errors``.

Idempotency: when an ``Idempotency-Key`` header is sent to the create
endpoint, the first successful response is stored and retries with the same
payload replay it (``Idempotent-Replay: true``). Failed attempts free the
key. Reusing the key with a different payload, or retrying while the first
request is still running, returns HTTP 409.

The provider webhook is a plain Django view: it bypasses DRF
authentication and always acknowledges with 200 so the provider does not
retry on our parsing or lookup failures.
"""

import logging

from django.conf import settings
from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_POST
from pydantic import ValidationError
from rest_framework import status
from rest_framework.response import Response
from rest_framework.throttling import ScopedRateThrottle
from rest_framework.views import APIView

from apps.catalog.pricing import DjangoProductCatalog
from gateway.authentication import IsAdminRole
from gateway.errors import domain_error_response, validation_error_response

from .domain import DomainError
from .idempotency import IN_PROGRESS, IdempotencyConflict, finalize, get_or_create_idempotent
from .providers import get_checkout_service, get_order_operations, get_webhook_reconciler
from .schemas import CreatePaymentDTO, OrderItemReadDTO, OrderStatusDTO, PaymentCreatedDTO
from .webhooks import SIGNATURE_HEADER, decode_body, parse_webhook, verify_signature

logger = logging.getLogger(__name__)


def _status_body(order) -> dict:
    return OrderStatusDTO.from_order(order).model_dump(by_alias=True, mode="json")


class CreatePaymentView(APIView):
    """Check out the caller's cart and open a provider invoice."""

    throttle_classes = [ScopedRateThrottle]
    throttle_scope = "payments_create"

    def post(self, request):
        """Create an order from the cart and return its payment link.

        Returns:
            Response: One of the following responses.
            - 200 with {orderId, paymentId, paymentUrl, total, currency}.
            - 200 replayed body when an idempotent retry is detected.
            - 400 for an empty cart or an invalid body.
            - 409 for a duplicate payment intent or idempotency conflict.
            - 500 with {detail, message, error} when the provider failed.
        """
        user_id = request.user.id
        idem_key = request.headers.get("Idempotency-Key")

        try:
            dto = CreatePaymentDTO.model_validate(request.data)
        except ValidationError as e:
            return validation_error_response(e)

        rec = None
        if idem_key:
            try:
                existing, rec = get_or_create_idempotent(user_id, idem_key, dto.model_dump())
            except IdempotencyConflict:
                return Response({"detail": "IDEMPOTENCY_CONFLICT"}, status=status.HTTP_409_CONFLICT)
            if existing:
                if rec.response_status == IN_PROGRESS:
                    return Response({"detail": "IDEMPOTENCY_IN_PROGRESS"}, status=status.HTTP_409_CONFLICT)
                resp = Response(rec.response_body, status=rec.response_status)
                resp["Idempotent-Replay"] = "true"
                return resp

        try:
            result = get_checkout_service().create_payment(user_id, dto.currency)
        except DomainError as e:
            # Only successes are replayed; a failed attempt frees the key.
            if rec:
                rec.delete()
            return domain_error_response(e)
        except Exception:
            if rec:
                rec.delete()
            raise

        body = PaymentCreatedDTO(
            order_id=result.order.id,
            payment_id=result.intent.payment_id,
            payment_url=result.intent.payment_url,
            total=result.order.total,
            currency=dto.currency,
        ).model_dump(by_alias=True, mode="json")

        if rec:
            finalize(rec, status.HTTP_200_OK, body, order_id=result.order.id)
        return Response(body, status=status.HTTP_200_OK)


class _ReadView(APIView):
    throttle_classes = [ScopedRateThrottle]
    throttle_scope = "payments_read"


class CheckPaymentView(_ReadView):
    def get(self, request, order_id: str):
        try:
            order = get_order_operations().owned(order_id, request.user.id)
        except DomainError as e:
            return domain_error_response(e)
        return Response(_status_body(order))


class UserOrdersView(_ReadView):
    def get(self, request):
        orders = get_order_operations().list_owned(request.user.id)
        return Response([_status_body(o) for o in orders])


class OrderItemsView(_ReadView):
    def get(self, request, order_id: str):
        try:
            items = get_order_operations().owned_items(order_id, request.user.id)
        except DomainError as e:
            return domain_error_response(e)

        products = DjangoProductCatalog().resolve_many(i.product_id for i in items)
        body = []
        for item in items:
            product = products.get(item.product_id)
            body.append(
                OrderItemReadDTO(
                    order_item_id=item.id,
                    product_id=item.product_id,
                    product_name=product.name if product else None,
                    quantity=item.quantity,
                    price=item.price,
                ).model_dump(by_alias=True, mode="json")
            )
        return Response(body)


class CurrenciesView(_ReadView):
    def get(self, request):
        fallback = getattr(settings, "FALLBACK_CURRENCIES", [])
        return Response(get_checkout_service().supported_currencies(fallback))


class AdminFakePaymentView(APIView):
    """Mark an order paid without the provider (operator escape hatch)."""

    permission_classes = [IsAdminRole]

    def post(self, request, order_id: str):
        try:
            order = get_order_operations().fake_payment(order_id)
        except DomainError as e:
            return domain_error_response(e)
        logger.warning("fake payment requested", extra={"order_id": order_id, "admin_id": request.user.id})
        return Response(_status_body(order))


class TestCompletePaymentView(APIView):
    """Let a customer complete their own order; only exists in test mode."""

    def post(self, request, order_id: str):
        if not getattr(settings, "PAYMENT_TEST_MODE", False):
            return Response({"detail": "NOT_FOUND"}, status=status.HTTP_404_NOT_FOUND)
        try:
            order = get_order_operations().test_complete(order_id, request.user.id)
        except DomainError as e:
            return domain_error_response(e)
        return Response(_status_body(order))


@csrf_exempt
@require_POST
def payment_webhook(request):
    """Receive a provider IPN; always answers 200 ``{"status": "success"}``."""
    ack = JsonResponse({"status": "success"})

    payload = decode_body(request.body)
    if payload is None:
        return ack

    secret = getattr(settings, "NOWPAYMENTS_IPN_SECRET", "")
    if secret and not verify_signature(payload, request.META.get(SIGNATURE_HEADER), secret):
        logger.warning("webhook signature mismatch, event ignored")
        return ack

    event = parse_webhook(payload)
    if event is None:
        return ack

    try:
        get_webhook_reconciler().apply(event)
    except Exception:
        logger.exception("webhook processing failed", extra={"order_reference": event.order_reference})
    return ack
