"""Catalog lookups used by checkout and the cart views."""

import uuid
from typing import Dict, Iterable, Optional

from apps.orders.domain import ProductSnapshot

from .models import Product


def parse_product_id(raw) -> Optional[uuid.UUID]:
    try:
        return raw if isinstance(raw, uuid.UUID) else uuid.UUID(str(raw))
    except (TypeError, ValueError):
        return None


def to_snapshot(obj: Product) -> ProductSnapshot:
    return ProductSnapshot(product_id=str(obj.id), name=obj.name, price=obj.price)


class DjangoProductCatalog:
    """``ProductCatalogPort`` backed by the ``products`` table."""

    def resolve(self, product_id: str) -> Optional[ProductSnapshot]:
        pk = parse_product_id(product_id)
        if pk is None:
            return None
        obj = Product.objects.filter(pk=pk).first()
        return to_snapshot(obj) if obj else None

    def resolve_many(self, product_ids: Iterable[str]) -> Dict[str, ProductSnapshot]:
        """Batch variant for listings; unknown ids are simply absent."""
        pks = [pk for pk in (parse_product_id(p) for p in product_ids) if pk is not None]
        return {str(p.id): to_snapshot(p) for p in Product.objects.filter(pk__in=pks)}
