"""Checkout services: cart snapshot, order creation, payment intent.

``CheckoutService.create_payment`` runs the whole flow for one request::

    CartSnapshotReader -> OrderFactory -> PaymentIntentService -> cart clearing

Each step is causally ordered. The order and its items are committed
before the provider is called, and the cart is trimmed only after the
provider returned an invoice, so a failed provider call leaves the cart
intact for another attempt. The provider call itself is never retried
here: a second ``create_invoice`` could produce a second invoice for the
same order.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Callable, List

from .domain import (
    CartPort,
    CartSnapshot,
    DuplicatePaymentIntentError,
    EmptyCartError,
    InvoiceRequest,
    Order,
    OrderItem,
    OrderStatus,
    OrderStore,
    PaymentGatewayError,
    PaymentGatewayPort,
    PaymentIntent,
    ProductCatalogPort,
    SnapshotLine,
    format_amount,
    to_money,
    utcnow,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PaymentUrls:
    """Where the provider sends the customer and its IPN callbacks."""

    success_url: str
    cancel_url: str
    ipn_callback_url: str
    price_currency: str = "usd"

    def with_order(self, base: str, order_id: str) -> str:
        sep = "&" if "?" in base else "?"
        return f"{base}{sep}orderId={order_id}"


@dataclass(frozen=True)
class CheckoutResult:
    order: Order
    intent: PaymentIntent


class CartSnapshotReader:
    """Read a user's cart and price it against the live catalog."""

    def __init__(self, cart: CartPort, catalog: ProductCatalogPort):
        self.cart = cart
        self.catalog = catalog

    def read(self, user_id: str) -> CartSnapshot:
        """Build the priced snapshot.

        Lines whose product has been deleted are skipped so that catalog
        drift does not block checkout of the remaining lines.

        Raises:
            EmptyCartError: If the cart has no lines, or none of its lines
                reference an existing product.
        """
        lines = self.cart.lines_for(user_id)
        if not lines:
            raise EmptyCartError("Cart is empty")

        priced: List[SnapshotLine] = []
        total = Decimal("0")
        for line in lines:
            product = self.catalog.resolve(line.product_id)
            if product is None:
                logger.warning(
                    "cart line skipped, product no longer exists",
                    extra={"cart_item_id": line.cart_item_id, "product_id": line.product_id},
                )
                continue
            snap = SnapshotLine(cart_item_id=line.cart_item_id, product=product, quantity=line.quantity)
            priced.append(snap)
            total += snap.line_total

        if not priced:
            raise EmptyCartError("Cart has no purchasable items")
        return CartSnapshot(user_id=user_id, lines=tuple(priced), total=to_money(total))


class OrderFactory:
    """Turn a cart snapshot into a persisted Pending order."""

    def __init__(self, orders: OrderStore, now: Callable = utcnow):
        self.orders = orders
        self.now = now

    def create(self, user_id: str, snapshot: CartSnapshot, currency: str) -> Order:
        items = [
            OrderItem(product_id=l.product.product_id, quantity=l.quantity, price=to_money(l.product.price))
            for l in snapshot.lines
        ]
        order = Order(
            id=None,
            user_id=user_id,
            total=snapshot.total,
            status=OrderStatus.PENDING.value,
            created_at=self.now(),
            payment_currency=currency,
            items=items,
        )
        created = self.orders.create_with_items(order)
        logger.info(
            "order created",
            extra={"order_id": created.id, "items": len(items), "total": str(created.total)},
        )
        return created


class PaymentIntentService:
    """Create the provider invoice for an order, exactly once."""

    def __init__(self, orders: OrderStore, gateway: PaymentGatewayPort, urls: PaymentUrls):
        self.orders = orders
        self.gateway = gateway
        self.urls = urls

    def build_request(self, order: Order) -> InvoiceRequest:
        label = order.number if order.number is not None else order.id
        return InvoiceRequest(
            order_id=str(order.id),
            price_amount=format_amount(order.total),
            price_currency=self.urls.price_currency,
            pay_currency=order.payment_currency or "",
            order_description=f"Order #{label}",
            ipn_callback_url=self.urls.ipn_callback_url,
            success_url=self.urls.with_order(self.urls.success_url, str(order.id)),
            cancel_url=self.urls.with_order(self.urls.cancel_url, str(order.id)),
        )

    def create_intent(self, order: Order) -> PaymentIntent:
        """Call the provider and attach the invoice to the order.

        Raises:
            DuplicatePaymentIntentError: The order already has a payment id,
                either before the call or because a concurrent request
                attached one first.
            PaymentGatewayError: The provider failed; nothing was persisted.
        """
        stored = self.orders.get(order.id)
        existing = order.payment_id or (stored.payment_id if stored else None)
        if existing:
            raise DuplicatePaymentIntentError(f"Order {order.id} already has payment {existing}")

        request = self.build_request(order)
        intent = self.gateway.create_invoice(request)

        if not self.orders.attach_payment_intent(order.id, intent):
            logger.error(
                "provider invoice created but order already had a payment intent",
                extra={"order_id": order.id, "payment_id": intent.payment_id},
            )
            raise DuplicatePaymentIntentError(f"Order {order.id} already has a payment intent")

        order.payment_id = intent.payment_id
        order.payment_url = intent.payment_url
        logger.info("payment intent attached", extra={"order_id": order.id, "payment_id": intent.payment_id})
        return intent


class CheckoutService:
    """Orchestrate cart -> order -> payment intent -> cart clearing."""

    def __init__(
        self,
        cart: CartPort,
        catalog: ProductCatalogPort,
        orders: OrderStore,
        gateway: PaymentGatewayPort,
        urls: PaymentUrls,
        now: Callable = utcnow,
    ):
        self.cart = cart
        self.orders = orders
        self.gateway = gateway
        self.reader = CartSnapshotReader(cart, catalog)
        self.factory = OrderFactory(orders, now=now)
        self.intents = PaymentIntentService(orders, gateway, urls)

    def create_payment(self, user_id: str, currency: str) -> CheckoutResult:
        """Check out the user's cart and open a provider invoice.

        Raises:
            EmptyCartError: Nothing to buy; no order is created.
            PaymentGatewayError: The order exists in Pending without a
                payment id and the cart is left untouched.
        """
        snapshot = self.reader.read(user_id)
        order = self.factory.create(user_id, snapshot, currency)

        try:
            intent = self.intents.create_intent(order)
        except PaymentGatewayError as e:
            logger.error(
                "payment provider rejected invoice",
                extra={"order_id": order.id, "provider_status": e.status_code, "provider_detail": e.detail},
            )
            raise

        self._clear_cart(user_id, snapshot)
        return CheckoutResult(order=order, intent=intent)

    def _clear_cart(self, user_id: str, snapshot: CartSnapshot) -> None:
        # The order is already valid here; a failed clear only leaves stale lines.
        try:
            removed = self.cart.remove_checked_out(user_id, snapshot.cart_lines)
        except Exception:
            logger.exception("cart clearing failed after checkout", extra={"user_id": user_id})
            return
        logger.info("cart cleared", extra={"user_id": user_id, "lines": removed})

    def supported_currencies(self, fallback: List[str]) -> List[str]:
        """Provider currency list, or ``fallback`` in degraded mode."""
        try:
            currencies = self.gateway.list_currencies()
        except PaymentGatewayError as e:
            logger.warning("currency list unavailable, using fallback", extra={"reason": e.detail})
            return list(fallback)
        return currencies or list(fallback)
