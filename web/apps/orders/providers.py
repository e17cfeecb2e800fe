"""Service provider helpers that wire the checkout services with ports.

The factories return services bound to the Django ORM stores. The payment
gateway is the NOWPayments HTTP client when ``settings.USE_HTTP_ADAPTERS``
is truthy and the in-process ``PaymentsStub`` otherwise (tests, local
development without an API key).
"""

from django.conf import settings

from apps.carts.repository import DjangoCartStore
from apps.catalog.pricing import DjangoProductCatalog

from .adapters import PaymentsStub
from .checkout import CheckoutService, PaymentUrls
from .domain import PaymentGatewayPort
from .http_adapters import NowPaymentsClient
from .operations import OrderOperations
from .reconciliation import WebhookReconciler
from .repository import DjangoOrderStore


def get_payment_gateway() -> PaymentGatewayPort:
    if getattr(settings, "USE_HTTP_ADAPTERS", True):
        return NowPaymentsClient()
    return PaymentsStub()


def get_payment_urls() -> PaymentUrls:
    return PaymentUrls(
        success_url=settings.NOWPAYMENTS_SUCCESS_URL,
        cancel_url=settings.NOWPAYMENTS_CANCEL_URL,
        ipn_callback_url=settings.NOWPAYMENTS_IPN_CALLBACK_URL,
        price_currency=getattr(settings, "NOWPAYMENTS_PRICE_CURRENCY", "usd"),
    )


def get_checkout_service() -> CheckoutService:
    """Return a ``CheckoutService`` wired to the ORM stores and the gateway."""
    return CheckoutService(
        cart=DjangoCartStore(),
        catalog=DjangoProductCatalog(),
        orders=DjangoOrderStore(),
        gateway=get_payment_gateway(),
        urls=get_payment_urls(),
    )


def get_webhook_reconciler() -> WebhookReconciler:
    return WebhookReconciler(orders=DjangoOrderStore())


def get_order_operations() -> OrderOperations:
    return OrderOperations(orders=DjangoOrderStore())
