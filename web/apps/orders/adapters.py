"""In-process adapters for the order/payment ports.

``PaymentsStub`` replaces the provider when ``settings.USE_HTTP_ADAPTERS``
is off (tests, local development without an API key). The ``InMemory*``
stores behave like a document database without multi-document
transactions: ``InMemoryOrderStore.create_with_items`` inserts the order and
then each item separately, and undoes what it inserted when an item insert
fails. Domain unit tests run the checkout and reconciliation services
against them.
"""

import copy
import threading
import uuid
from dataclasses import replace
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional, Sequence

from .domain import (
    DELETED_USER,
    CartLine,
    InvoiceRequest,
    Order,
    OrderItem,
    OrderStatus,
    PaymentGatewayError,
    PaymentIntent,
    ProductSnapshot,
)

DEFAULT_CURRENCIES = ["btc", "eth", "ltc", "usdttrc20"]


class PaymentsStub:
    """Deterministic stand-in for the payment provider.

    Approves invoices with a positive amount and returns a generated id and
    a hosted URL under ``https://sandbox.invalid``. Non-positive amounts are
    rejected like the real provider does.
    """

    def create_invoice(self, request: InvoiceRequest) -> PaymentIntent:
        if Decimal(request.price_amount) <= 0:
            raise PaymentGatewayError('{"message":"price_amount must be positive"}', status_code=400)
        invoice_id = str(uuid.uuid4().int)[:10]
        return PaymentIntent(payment_id=invoice_id, payment_url=f"https://sandbox.invalid/invoice/{invoice_id}")

    def list_currencies(self) -> List[str]:
        return list(DEFAULT_CURRENCIES)


class InMemoryCatalog:
    def __init__(self, products: Optional[Dict[str, ProductSnapshot]] = None):
        self.products: Dict[str, ProductSnapshot] = dict(products or {})

    def add(self, product_id: str, price, name: str = "") -> ProductSnapshot:
        snap = ProductSnapshot(product_id=product_id, name=name or product_id, price=Decimal(str(price)))
        self.products[product_id] = snap
        return snap

    def resolve(self, product_id: str) -> Optional[ProductSnapshot]:
        return self.products.get(product_id)


class InMemoryCart:
    """Cart collection keyed by row id with (user, product) uniqueness."""

    def __init__(self):
        self.rows: Dict[str, CartLine] = {}
        self.owners: Dict[str, str] = {}
        self._lock = threading.Lock()

    def add(self, user_id: str, product_id: str, quantity: int = 1) -> CartLine:
        with self._lock:
            for rid, row in self.rows.items():
                if self.owners[rid] == user_id and row.product_id == product_id:
                    self.rows[rid] = replace(row, quantity=row.quantity + quantity)
                    return self.rows[rid]
            rid = uuid.uuid4().hex
            self.rows[rid] = CartLine(cart_item_id=rid, product_id=product_id, quantity=quantity)
            self.owners[rid] = user_id
            return self.rows[rid]

    def lines_for(self, user_id: str) -> List[CartLine]:
        return [row for rid, row in self.rows.items() if self.owners[rid] == user_id]

    def remove_checked_out(self, user_id: str, lines: Sequence[CartLine]) -> int:
        touched = 0
        with self._lock:
            for line in lines:
                row = self.rows.get(line.cart_item_id)
                if row is None or self.owners[line.cart_item_id] != user_id:
                    continue
                if row.quantity <= line.quantity:
                    del self.rows[line.cart_item_id]
                    del self.owners[line.cart_item_id]
                else:
                    self.rows[line.cart_item_id] = replace(row, quantity=row.quantity - line.quantity)
                touched += 1
        return touched


class InMemoryOrderStore:
    """Document-style ``OrderStore`` with compensating rollback."""

    def __init__(self):
        self.orders: Dict[str, Order] = {}
        self.items: Dict[str, OrderItem] = {}
        self.item_owner: Dict[str, str] = {}
        self._lock = threading.Lock()
        self._seq = 0

    # -- writes ------------------------------------------------------------
    def _insert_order(self, order: Order) -> Order:
        with self._lock:
            self._seq += 1
            stored = replace(order, id=str(uuid.uuid4()), number=self._seq, items=[])
            self.orders[stored.id] = stored
            return copy.copy(stored)

    def _insert_item(self, order_id: str, item: OrderItem) -> OrderItem:
        stored = replace(item, id=uuid.uuid4().hex)
        self.items[stored.id] = stored
        self.item_owner[stored.id] = order_id
        return stored

    def _delete_order(self, order_id: str) -> None:
        for iid in [i for i, o in self.item_owner.items() if o == order_id]:
            self.items.pop(iid, None)
            self.item_owner.pop(iid, None)
        self.orders.pop(order_id, None)

    def create_with_items(self, order: Order) -> Order:
        created = self._insert_order(order)
        inserted: List[OrderItem] = []
        try:
            for item in order.items:
                inserted.append(self._insert_item(created.id, item))
        except Exception:
            self._delete_order(created.id)
            raise
        created.items = inserted
        return created

    def attach_payment_intent(self, order_id: str, intent: PaymentIntent) -> bool:
        with self._lock:
            order = self.orders.get(order_id)
            if order is None or order.payment_id:
                return False
            order.payment_id = intent.payment_id
            order.payment_url = intent.payment_url
            return True

    def apply_status(self, order_id: str, status: str, completed_at: Optional[datetime] = None) -> bool:
        with self._lock:
            order = self.orders.get(order_id)
            if order is None:
                return False
            order.status = status
            if completed_at is not None and order.completed_at is None:
                order.completed_at = completed_at
            return True

    def force_complete(self, order_id: str, payment_id: str, completed_at: datetime, default_currency: str) -> bool:
        with self._lock:
            order = self.orders.get(order_id)
            if order is None:
                return False
            order.status = OrderStatus.COMPLETED.value
            order.completed_at = completed_at
            order.payment_id = payment_id
            order.payment_url = None
            order.payment_currency = order.payment_currency or default_currency
            return True

    def anonymize_user(self, user_id: str) -> int:
        count = 0
        for order in self.orders.values():
            if order.user_id == user_id:
                order.user_id = DELETED_USER
                count += 1
        return count

    # -- reads -------------------------------------------------------------
    def get(self, order_id: str) -> Optional[Order]:
        order = self.orders.get(order_id)
        return copy.copy(order) if order else None

    def get_for_user(self, order_id: str, user_id: str) -> Optional[Order]:
        order = self.get(order_id)
        return order if order and order.user_id == user_id else None

    def list_for_user(self, user_id: str) -> List[Order]:
        owned = [copy.copy(o) for o in self.orders.values() if o.user_id == user_id]
        return sorted(owned, key=lambda o: o.created_at, reverse=True)

    def items_for(self, order_id: str) -> List[OrderItem]:
        return [self.items[i] for i, o in self.item_owner.items() if o == order_id]
