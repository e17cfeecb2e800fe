"""Django ORM implementation of the ``OrderStore`` port.

The repository maps between ``OrderModel`` rows and domain ``Order``
dataclasses so the checkout and reconciliation services never touch ORM
types. Every mutation that must be safe under concurrent requests is a
single conditional ``UPDATE`` rather than a read-modify-write.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from django.db import transaction
from django.db.models import F, Value
from django.db.models.functions import Coalesce

from .domain import DELETED_USER, Order, OrderItem, OrderStatus, PaymentIntent
from .models import OrderItemModel, OrderModel


def _uuid(raw) -> Optional[uuid.UUID]:
    """Parse an order id, or None when it cannot be one of ours."""
    if isinstance(raw, uuid.UUID):
        return raw
    try:
        return uuid.UUID(str(raw))
    except (TypeError, ValueError):
        return None


def to_domain(obj: OrderModel, items: Optional[List[OrderItem]] = None) -> Order:
    return Order(
        id=str(obj.id),
        user_id=obj.user_id,
        total=obj.total,
        status=obj.status,
        created_at=obj.created_at,
        completed_at=obj.completed_at,
        payment_id=obj.payment_id,
        payment_url=obj.payment_url,
        payment_currency=obj.payment_currency,
        number=obj.number,
        items=items or [],
    )


def item_to_domain(obj: OrderItemModel) -> OrderItem:
    return OrderItem(id=str(obj.id), product_id=str(obj.product_id), quantity=obj.quantity, price=obj.price)


class DjangoOrderStore:
    """Relational ``OrderStore``: order and items commit in one transaction."""

    def create_with_items(self, order: Order) -> Order:
        with transaction.atomic():
            obj = OrderModel(
                user_id=order.user_id,
                total=order.total,
                status=order.status,
                payment_currency=order.payment_currency,
            )
            if order.created_at is not None:
                obj.created_at = order.created_at
            obj.save()
            rows = OrderItemModel.objects.bulk_create(
                [
                    OrderItemModel(order=obj, product_id=i.product_id, quantity=i.quantity, price=i.price)
                    for i in order.items
                ]
            )
        # bulk_create does not return pks on every backend
        items = [item_to_domain(r) for r in rows] if all(r.pk for r in rows) else self.items_for(str(obj.id))
        return to_domain(obj, items)

    def get(self, order_id: str) -> Optional[Order]:
        pk = _uuid(order_id)
        if pk is None:
            return None
        obj = OrderModel.objects.filter(pk=pk).first()
        return to_domain(obj) if obj else None

    def get_for_user(self, order_id: str, user_id: str) -> Optional[Order]:
        pk = _uuid(order_id)
        if pk is None:
            return None
        obj = OrderModel.objects.filter(pk=pk, user_id=user_id).first()
        return to_domain(obj) if obj else None

    def list_for_user(self, user_id: str) -> List[Order]:
        return [to_domain(o) for o in OrderModel.objects.filter(user_id=user_id).order_by("-created_at")]

    def items_for(self, order_id: str) -> List[OrderItem]:
        pk = _uuid(order_id)
        if pk is None:
            return []
        return [item_to_domain(i) for i in OrderItemModel.objects.filter(order_id=pk).order_by("id")]

    def attach_payment_intent(self, order_id: str, intent: PaymentIntent) -> bool:
        pk = _uuid(order_id)
        if pk is None:
            return False
        updated = OrderModel.objects.filter(pk=pk, payment_id__isnull=True).update(
            payment_id=intent.payment_id,
            payment_url=intent.payment_url,
        )
        return updated == 1

    def apply_status(self, order_id: str, status: str, completed_at: Optional[datetime] = None) -> bool:
        pk = _uuid(order_id)
        if pk is None:
            return False
        fields = {"status": status}
        if completed_at is not None:
            fields["completed_at"] = Coalesce(F("completed_at"), Value(completed_at))
        return OrderModel.objects.filter(pk=pk).update(**fields) == 1

    def force_complete(self, order_id: str, payment_id: str, completed_at: datetime, default_currency: str) -> bool:
        pk = _uuid(order_id)
        if pk is None:
            return False
        return (
            OrderModel.objects.filter(pk=pk).update(
                status=OrderStatus.COMPLETED.value,
                completed_at=completed_at,
                payment_id=payment_id,
                payment_url=None,
                payment_currency=Coalesce(F("payment_currency"), Value(default_currency)),
            )
            == 1
        )

    def anonymize_user(self, user_id: str) -> int:
        return OrderModel.objects.filter(user_id=user_id).update(user_id=DELETED_USER)
