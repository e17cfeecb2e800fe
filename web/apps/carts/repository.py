"""Cart storage: the ``CartPort`` used by checkout plus the cart/wishlist CRUD."""

import uuid
from typing import List, Optional, Sequence

from django.db import IntegrityError, transaction
from django.db.models import F

from apps.orders.domain import CartLine

from .models import CartItem, WishlistItem


def _line(obj: CartItem) -> CartLine:
    return CartLine(cart_item_id=str(obj.id), product_id=str(obj.product_id), quantity=obj.quantity)


def _uuid(raw) -> Optional[uuid.UUID]:
    try:
        return raw if isinstance(raw, uuid.UUID) else uuid.UUID(str(raw))
    except (TypeError, ValueError):
        return None


class DjangoCartStore:
    def lines_for(self, user_id: str) -> List[CartLine]:
        return [_line(c) for c in CartItem.objects.filter(user_id=user_id).order_by("added_at", "id")]

    def remove_checked_out(self, user_id: str, lines: Sequence[CartLine]) -> int:
        """Delete or decrement exactly the checked-out quantities.

        The delete is conditional on the quantity still matching the
        snapshot; if a concurrent add raised it, the row is decremented
        instead so the extra units stay in the cart.
        """
        touched = 0
        with transaction.atomic():
            for line in lines:
                deleted, _ = CartItem.objects.filter(
                    pk=line.cart_item_id, user_id=user_id, quantity__lte=line.quantity
                ).delete()
                if deleted:
                    touched += 1
                    continue
                touched += CartItem.objects.filter(
                    pk=line.cart_item_id, user_id=user_id, quantity__gt=line.quantity
                ).update(quantity=F("quantity") - line.quantity)
        return touched

    def add(self, user_id: str, product_id: str, quantity: int = 1) -> CartLine:
        """Increment the existing row or create it.

        Two concurrent first adds race on the unique constraint; the loser
        falls back to the increment.
        """
        pid = _uuid(product_id)
        if CartItem.objects.filter(user_id=user_id, product_id=pid).update(quantity=F("quantity") + quantity):
            return _line(CartItem.objects.get(user_id=user_id, product_id=pid))
        try:
            with transaction.atomic():
                obj = CartItem.objects.create(user_id=user_id, product_id=pid, quantity=quantity)
            return _line(obj)
        except IntegrityError:
            CartItem.objects.filter(user_id=user_id, product_id=pid).update(quantity=F("quantity") + quantity)
            return _line(CartItem.objects.get(user_id=user_id, product_id=pid))

    def get(self, user_id: str, item_id) -> Optional[CartLine]:
        pk = _uuid(item_id)
        obj = CartItem.objects.filter(pk=pk, user_id=user_id).first() if pk else None
        return _line(obj) if obj else None

    def set_quantity(self, user_id: str, item_id, quantity: int) -> bool:
        pk = _uuid(item_id)
        if pk is None:
            return False
        if quantity <= 0:
            return CartItem.objects.filter(pk=pk, user_id=user_id).delete()[0] > 0
        return CartItem.objects.filter(pk=pk, user_id=user_id).update(quantity=quantity) == 1

    def remove(self, user_id: str, item_id) -> bool:
        pk = _uuid(item_id)
        return bool(pk) and CartItem.objects.filter(pk=pk, user_id=user_id).delete()[0] > 0

    def clear(self, user_id: str) -> int:
        return CartItem.objects.filter(user_id=user_id).delete()[0]


class DjangoWishlistStore:
    def list_for(self, user_id: str) -> List[WishlistItem]:
        return list(WishlistItem.objects.filter(user_id=user_id).order_by("-added_at"))

    def add(self, user_id: str, product_id: str) -> WishlistItem:
        pid = _uuid(product_id)
        try:
            with transaction.atomic():
                obj, _ = WishlistItem.objects.get_or_create(user_id=user_id, product_id=pid)
        except IntegrityError:
            obj = WishlistItem.objects.get(user_id=user_id, product_id=pid)
        return obj

    def get(self, user_id: str, item_id) -> Optional[WishlistItem]:
        pk = _uuid(item_id)
        return WishlistItem.objects.filter(pk=pk, user_id=user_id).first() if pk else None

    def remove(self, user_id: str, item_id) -> bool:
        pk = _uuid(item_id)
        return bool(pk) and WishlistItem.objects.filter(pk=pk, user_id=user_id).delete()[0] > 0
