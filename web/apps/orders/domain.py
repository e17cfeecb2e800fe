"""Domain types, errors and storage ports for the order/payment lifecycle.

This module holds the dataclasses passed between the checkout services and
their collaborators, the typed domain errors the HTTP layer translates into
status codes, and the protocol definitions (ports) for every storage or
network dependency. The services in ``checkout`` and ``reconciliation`` are
written once against these ports; the Django ORM repositories and the
in-memory adapters are interchangeable implementations.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import List, Optional, Protocol, Sequence

CENTS = Decimal("0.01")
DELETED_USER = "deleted-user"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_money(value) -> Decimal:
    """Quantize a price to two fraction digits without passing through float."""
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def format_amount(value: Decimal) -> str:
    """Render an amount as ``"1234.50"`` for the payment provider.

    ``Decimal`` formatting never consults the host locale, so the separator
    is always ``.`` and there is no grouping.
    """
    return format(to_money(value), "f")


# ---- Enums ----
class OrderStatus(str, Enum):
    """Order statuses persisted and exposed on the wire.

    Provider statuses outside this vocabulary are stored verbatim, which is
    why ``Order.status`` is typed as ``str``.
    """

    PENDING = "Pending"
    COMPLETED = "Completed"
    PARTIALLY_PAID = "PartiallyPaid"
    CONFIRMING = "Confirming"
    WAITING = "Waiting"
    EXPIRED = "Expired"
    FAILED = "Failed"
    REFUNDED = "Refunded"


def is_shippable(order: "Order") -> bool:
    """An order can be handed to a carrier only once it is fully paid."""
    return order.status == OrderStatus.COMPLETED.value


# ---- Errors ----
class DomainError(ValueError):
    """Base class for expected business failures.

    ``str(err)`` is the stable error code; ``detail`` is a human message or
    upstream payload. ``http_status`` is the status the API answers with.
    """

    code = "DOMAIN_ERROR"
    http_status = 400

    def __init__(self, detail: Optional[str] = None):
        super().__init__(self.code)
        self.detail = detail


class EmptyCartError(DomainError):
    code = "EMPTY_CART"


class OrderNotFoundError(DomainError):
    code = "NOT_FOUND"
    http_status = 404


class ProductNotFoundError(DomainError):
    code = "PRODUCT_NOT_FOUND"
    http_status = 404


class DuplicatePaymentIntentError(DomainError):
    code = "DUPLICATE_PAYMENT_INTENT"
    http_status = 409


class OrderAlreadyPaidError(DomainError):
    code = "ORDER_ALREADY_PAID"


class PaymentGatewayError(DomainError):
    """The payment provider could not create or list what we asked for."""

    code = "PAYMENT_PROVIDER_ERROR"
    http_status = 500

    def __init__(self, detail: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(detail)
        self.status_code = status_code


# ---- Entities / DTOs ----
@dataclass(frozen=True)
class ProductSnapshot:
    """Current catalog data for a product at the moment it was resolved."""

    product_id: str
    name: str
    price: Decimal


@dataclass(frozen=True)
class CartLine:
    """One row of a user's cart as stored."""

    cart_item_id: str
    product_id: str
    quantity: int


@dataclass(frozen=True)
class SnapshotLine:
    cart_item_id: str
    product: ProductSnapshot
    quantity: int

    @property
    def line_total(self) -> Decimal:
        return self.product.price * self.quantity


@dataclass(frozen=True)
class CartSnapshot:
    """Priced cart contents read at checkout start.

    Attributes:
        user_id: Owner of the cart.
        lines: Lines whose product still existed when the cart was read.
        total: Sum of ``price * quantity`` in exact decimal arithmetic.
    """

    user_id: str
    lines: tuple
    total: Decimal

    @property
    def cart_lines(self) -> List[CartLine]:
        return [CartLine(l.cart_item_id, l.product.product_id, l.quantity) for l in self.lines]


@dataclass(frozen=True)
class OrderItem:
    """A purchased line; ``price`` is the snapshot price and never changes."""

    product_id: str
    quantity: int
    price: Decimal
    id: Optional[str] = None


@dataclass
class Order:
    """Container for order data.

    Attributes:
        id: Persistent identifier, or None before the order is stored.
        user_id: Owning user, or ``DELETED_USER`` after anonymization.
        total: Order total fixed at creation.
        status: An ``OrderStatus`` value or a passthrough provider string.
        number: Sequential human-facing order number.
        payment_id / payment_url: Provider invoice, set at most once.
        payment_currency: Currency the customer settles in.
    """

    id: Optional[str]
    user_id: str
    total: Decimal
    status: str = OrderStatus.PENDING.value
    created_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    payment_id: Optional[str] = None
    payment_url: Optional[str] = None
    payment_currency: Optional[str] = None
    number: Optional[int] = None
    items: List[OrderItem] = field(default_factory=list)


@dataclass(frozen=True)
class PaymentIntent:
    payment_id: str
    payment_url: str


@dataclass(frozen=True)
class InvoiceRequest:
    """Provider invoice payload; ``price_amount`` is already formatted."""

    order_id: str
    price_amount: str
    price_currency: str
    pay_currency: str
    order_description: str
    ipn_callback_url: str
    success_url: str
    cancel_url: str


@dataclass(frozen=True)
class WebhookEvent:
    """A provider payment notification reduced to what reconciliation needs."""

    order_reference: str
    payment_status: str
    event_type: str = "payment"
    payment_id: Optional[str] = None
    amount: Optional[Decimal] = None
    currency: Optional[str] = None


# ---- Ports (DIP) ----
class ProductCatalogPort(Protocol):
    """Resolves product ids to current price snapshots."""

    def resolve(self, product_id: str) -> Optional[ProductSnapshot]:
        """Return the product snapshot, or None if the product is gone."""
        raise NotImplementedError()


class CartPort(Protocol):
    """Read and trim a user's cart."""

    def lines_for(self, user_id: str) -> List[CartLine]:
        raise NotImplementedError()

    def remove_checked_out(self, user_id: str, lines: Sequence[CartLine]) -> int:
        """Remove exactly the quantities captured in ``lines``.

        Rows whose quantity grew after the snapshot are decremented instead
        of deleted; rows not in ``lines`` are untouched.

        Returns:
            Number of rows deleted or decremented.
        """
        raise NotImplementedError()


class OrderStore(Protocol):
    """Persistence for orders and their items.

    ``create_with_items`` is all-or-nothing: implementations use a
    transaction where the store has one and a compensating delete where it
    does not.
    """

    def create_with_items(self, order: Order) -> Order:
        raise NotImplementedError()

    def get(self, order_id: str) -> Optional[Order]:
        raise NotImplementedError()

    def get_for_user(self, order_id: str, user_id: str) -> Optional[Order]:
        raise NotImplementedError()

    def list_for_user(self, user_id: str) -> List[Order]:
        raise NotImplementedError()

    def items_for(self, order_id: str) -> List[OrderItem]:
        raise NotImplementedError()

    def attach_payment_intent(self, order_id: str, intent: PaymentIntent) -> bool:
        """Store the intent only if the order has no payment id yet.

        Returns:
            True when the write happened, False if another intent won.
        """
        raise NotImplementedError()

    def apply_status(self, order_id: str, status: str, completed_at: Optional[datetime] = None) -> bool:
        """Overwrite the status; set ``completed_at`` only if still empty.

        Returns:
            False when the order does not exist.
        """
        raise NotImplementedError()

    def force_complete(self, order_id: str, payment_id: str, completed_at: datetime, default_currency: str) -> bool:
        raise NotImplementedError()

    def anonymize_user(self, user_id: str) -> int:
        raise NotImplementedError()


class PaymentGatewayPort(Protocol):
    """The external payment processor."""

    def create_invoice(self, request: InvoiceRequest) -> PaymentIntent:
        """Create a hosted invoice.

        Raises:
            PaymentGatewayError: On any transport, timeout or non-2xx outcome.
        """
        raise NotImplementedError()

    def list_currencies(self) -> List[str]:
        raise NotImplementedError()
