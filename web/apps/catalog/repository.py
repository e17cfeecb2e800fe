from typing import Dict, List

from django.db import transaction

from apps.carts.models import CartItem, WishlistItem
from apps.orders.models import OrderItemModel, OrderModel

from .models import Product, ProductPhoto, ProductSpecification, Review
from .pricing import parse_product_id


class DjangoCleanupStore:
    """``CleanupStore`` over the relational schema; every step is a bulk delete."""

    def atomic(self):
        return transaction.atomic()

    def order_ids_with_product(self, product_id: str) -> List[str]:
        pk = parse_product_id(product_id)
        if pk is None:
            return []
        ids = OrderItemModel.objects.filter(product_id=pk).values_list("order_id", flat=True).distinct()
        return [str(i) for i in ids]

    def delete_order_items_for_product(self, product_id: str) -> int:
        pk = parse_product_id(product_id)
        if pk is None:
            return 0
        deleted, _ = OrderItemModel.objects.filter(product_id=pk).delete()
        return deleted

    def count_order_items(self, order_id: str) -> int:
        return OrderItemModel.objects.filter(order_id=order_id).count()

    def delete_order(self, order_id: str) -> int:
        return OrderModel.objects.filter(pk=order_id).delete()[1].get(OrderModel._meta.label, 0)

    def delete_product_references(self, product_id: str) -> Dict[str, int]:
        pk = parse_product_id(product_id)
        if pk is None:
            return {}
        return {
            "cartItems": CartItem.objects.filter(product_id=pk).delete()[0],
            "wishlistItems": WishlistItem.objects.filter(product_id=pk).delete()[0],
            "reviews": Review.objects.filter(product_id=pk).delete()[0],
            "photos": ProductPhoto.objects.filter(product_id=pk).delete()[0],
            "specifications": ProductSpecification.objects.filter(product_id=pk).delete()[0],
        }

    def delete_product(self, product_id: str) -> int:
        pk = parse_product_id(product_id)
        if pk is None:
            return 0
        return Product.objects.filter(pk=pk).delete()[0]
