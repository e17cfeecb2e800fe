from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from apps.orders.adapters import InMemoryOrderStore
from apps.orders.domain import Order, OrderItem, WebhookEvent
from apps.orders.reconciliation import ReconcileOutcome, WebhookReconciler, map_provider_status

T0 = datetime(2025, 5, 1, 12, 0, tzinfo=timezone.utc)


class Clock:
    def __init__(self):
        self.t = T0

    def __call__(self):
        self.t += timedelta(minutes=1)
        return self.t


@pytest.fixture
def store():
    return InMemoryOrderStore()


@pytest.fixture
def order(store):
    return store.create_with_items(
        Order(id=None, user_id="u1", total=Decimal("10.00"), items=[OrderItem("p1", 1, Decimal("10.00"))])
    )


def _event(order_id, status):
    return WebhookEvent(order_reference=order_id, payment_status=status, payment_id="5077125051")


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("finished", "Completed"),
        ("confirmed", "Completed"),
        ("FINISHED", "Completed"),
        ("partially_paid", "PartiallyPaid"),
        ("confirming", "Confirming"),
        ("waiting", "Waiting"),
        ("expired", "Expired"),
        ("failed", "Failed"),
        ("refunded", "Refunded"),
        ("sending", "sending"),
    ],
)
def test_map_provider_status(raw, expected):
    assert map_provider_status(raw) == expected


def test_finished_twice_keeps_first_completion_time(store, order):
    reconciler = WebhookReconciler(store, now=Clock())

    assert reconciler.apply(_event(order.id, "finished")) is ReconcileOutcome.APPLIED
    first = store.get(order.id).completed_at
    assert reconciler.apply(_event(order.id, "finished")) is ReconcileOutcome.APPLIED

    stored = store.get(order.id)
    assert stored.status == "Completed"
    assert stored.completed_at == first


def test_later_status_overwrites_completed(store, order):
    """Last write wins; completed_at is left as it was."""
    reconciler = WebhookReconciler(store, now=Clock())
    reconciler.apply(_event(order.id, "finished"))
    completed_at = store.get(order.id).completed_at

    reconciler.apply(_event(order.id, "waiting"))

    stored = store.get(order.id)
    assert stored.status == "Waiting"
    assert stored.completed_at == completed_at


def test_non_completing_status_does_not_set_completed_at(store, order):
    WebhookReconciler(store, now=Clock()).apply(_event(order.id, "partially_paid"))
    stored = store.get(order.id)
    assert stored.status == "PartiallyPaid"
    assert stored.completed_at is None


def test_unknown_status_is_stored_verbatim(store, order):
    WebhookReconciler(store).apply(_event(order.id, "sending"))
    assert store.get(order.id).status == "sending"


def test_unknown_order_is_reported_not_raised(store, caplog):
    outcome = WebhookReconciler(store).apply(_event("no-such-order", "finished"))
    assert outcome is ReconcileOutcome.ORDER_NOT_FOUND
    assert any("unknown order" in r.getMessage() for r in caplog.records)
