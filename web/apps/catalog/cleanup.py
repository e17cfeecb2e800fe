"""Cascade cleanup when a product is removed from the catalog.

Order items and cart/wishlist rows only hold a weak reference to a product,
so deleting a product has to remove those rows explicitly. Orders that lose
their last item are deleted with them; orders that keep other items stay
as they are, including their original total.
"""

import logging
from dataclasses import dataclass, field
from typing import ContextManager, Dict, List, Protocol

logger = logging.getLogger(__name__)


class CleanupStore(Protocol):
    """Storage operations the cleanup sequence needs. Each is idempotent."""

    def atomic(self) -> ContextManager:
        raise NotImplementedError()

    def order_ids_with_product(self, product_id: str) -> List[str]:
        raise NotImplementedError()

    def delete_order_items_for_product(self, product_id: str) -> int:
        raise NotImplementedError()

    def count_order_items(self, order_id: str) -> int:
        raise NotImplementedError()

    def delete_order(self, order_id: str) -> int:
        raise NotImplementedError()

    def delete_product_references(self, product_id: str) -> Dict[str, int]:
        """Delete cart, wishlist, review, photo and specification rows.

        Returns:
            Deleted row count per collection name.
        """
        raise NotImplementedError()

    def delete_product(self, product_id: str) -> int:
        raise NotImplementedError()


@dataclass
class CleanupReport:
    product_id: str
    order_items: int = 0
    orders: int = 0
    product: int = 0
    references: Dict[str, int] = field(default_factory=dict)

    @property
    def found(self) -> bool:
        return bool(self.product or self.order_items or any(self.references.values()))

    def as_dict(self) -> dict:
        return {
            "productId": self.product_id,
            "orderItems": self.order_items,
            "orders": self.orders,
            "product": self.product,
            **self.references,
        }


class ProductCleanup:
    def __init__(self, store: CleanupStore):
        self.store = store

    def delete_product(self, product_id: str) -> CleanupReport:
        """Remove a product and everything that references it.

        Runs in one transaction on stores that support it. Calling it again
        for the same id is a no-op that reports zero counts.
        """
        report = CleanupReport(product_id=product_id)
        with self.store.atomic():
            affected = self.store.order_ids_with_product(product_id)
            report.order_items = self.store.delete_order_items_for_product(product_id)
            for order_id in affected:
                if self.store.count_order_items(order_id) == 0:
                    report.orders += self.store.delete_order(order_id)
            report.references = self.store.delete_product_references(product_id)
            report.product = self.store.delete_product(product_id)

        logger.info("product deleted with cascade", extra=report.as_dict())
        return report
