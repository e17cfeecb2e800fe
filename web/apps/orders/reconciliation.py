"""Apply provider payment notifications to order state.

Reconciliation is a last-write-wins overwrite of ``Order.status``: the
provider does not guarantee delivery order, and redeliveries must be
harmless. The only derived field is ``completed_at``, which is written once
(the first time a completing status arrives) and never moved afterwards.
"""

import logging
from enum import Enum
from typing import Callable

from .domain import OrderStatus, OrderStore, WebhookEvent, utcnow

logger = logging.getLogger(__name__)


PROVIDER_STATUS_MAP = {
    "finished": OrderStatus.COMPLETED,
    "confirmed": OrderStatus.COMPLETED,
    "partially_paid": OrderStatus.PARTIALLY_PAID,
    "confirming": OrderStatus.CONFIRMING,
    "waiting": OrderStatus.WAITING,
    "expired": OrderStatus.EXPIRED,
    "failed": OrderStatus.FAILED,
    "refunded": OrderStatus.REFUNDED,
}


def map_provider_status(raw: str) -> str:
    """Translate a provider status to the internal vocabulary.

    Unknown statuses pass through unchanged so operators can see what the
    provider actually sent.
    """
    mapped = PROVIDER_STATUS_MAP.get(raw.strip().lower())
    return mapped.value if mapped else raw


class ReconcileOutcome(str, Enum):
    APPLIED = "applied"
    ORDER_NOT_FOUND = "order_not_found"


class WebhookReconciler:
    """Stateless handler for parsed provider events."""

    def __init__(self, orders: OrderStore, now: Callable = utcnow):
        self.orders = orders
        self.now = now

    def apply(self, event: WebhookEvent) -> ReconcileOutcome:
        status = map_provider_status(event.payment_status)
        completed_at = self.now() if status == OrderStatus.COMPLETED.value else None

        if not self.orders.apply_status(event.order_reference, status, completed_at=completed_at):
            logger.warning("webhook for unknown order", extra={"order_reference": event.order_reference})
            return ReconcileOutcome.ORDER_NOT_FOUND

        logger.info(
            "order status reconciled",
            extra={
                "order_id": event.order_reference,
                "provider_status": event.payment_status,
                "status": status,
                "payment_id": event.payment_id,
                "amount": str(event.amount) if event.amount is not None else None,
                "currency": event.currency,
            },
        )
        return ReconcileOutcome.APPLIED
