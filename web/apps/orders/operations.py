"""Operator escape hatches and owner-scoped order lookups."""

import logging
import uuid
from typing import Callable, List

from .domain import (
    Order,
    OrderAlreadyPaidError,
    OrderItem,
    OrderNotFoundError,
    OrderStatus,
    OrderStore,
    DELETED_USER,
    utcnow,
)

logger = logging.getLogger(__name__)


class OrderOperations:
    def __init__(self, orders: OrderStore, now: Callable = utcnow):
        self.orders = orders
        self.now = now

    def owned(self, order_id: str, user_id: str) -> Order:
        """Return the order if ``user_id`` owns it.

        Raises:
            OrderNotFoundError: Missing or owned by someone else; the two
                cases are indistinguishable to the caller.
        """
        order = self.orders.get_for_user(order_id, user_id)
        if order is None:
            raise OrderNotFoundError(f"Order {order_id} not found")
        return order

    def list_owned(self, user_id: str) -> List[Order]:
        return self.orders.list_for_user(user_id)

    def owned_items(self, order_id: str, user_id: str) -> List[OrderItem]:
        self.owned(order_id, user_id)
        return self.orders.items_for(order_id)

    def fake_payment(self, order_id: str, default_currency: str = "USD") -> Order:
        """Mark an order paid without the provider (admin only).

        Raises:
            OrderNotFoundError: Unknown order.
            OrderAlreadyPaidError: The order is already Completed.
        """
        order = self.orders.get(order_id)
        if order is None:
            raise OrderNotFoundError(f"Order {order_id} not found")
        if order.status == OrderStatus.COMPLETED.value:
            raise OrderAlreadyPaidError("Order is already paid")

        fake_id = f"FAKE_{uuid.uuid4().hex[:12]}"
        self.orders.force_complete(order_id, fake_id, self.now(), default_currency)
        logger.warning("admin fake payment applied", extra={"order_id": order_id, "payment_id": fake_id})
        return self.orders.get(order_id)

    def test_complete(self, order_id: str, user_id: str) -> Order:
        self.owned(order_id, user_id)
        self.orders.apply_status(order_id, OrderStatus.COMPLETED.value, completed_at=self.now())
        logger.warning("order completed through test path", extra={"order_id": order_id})
        return self.orders.get(order_id)

    def anonymize_user(self, user_id: str) -> int:
        """Detach a removed user's orders without deleting purchase history."""
        if user_id == DELETED_USER:
            return 0
        count = self.orders.anonymize_user(user_id)
        logger.info("orders anonymized", extra={"user_id": user_id, "orders": count})
        return count
