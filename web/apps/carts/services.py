"""Cart and wishlist use cases behind the ``/api/cart`` and ``/api/wishlist`` views."""

import logging
from decimal import Decimal

from apps.orders.domain import DomainError, ProductNotFoundError, to_money

from .schemas import CartLineReadDTO, CartReadDTO, WishlistItemReadDTO

logger = logging.getLogger(__name__)


class CartItemNotFoundError(DomainError):
    code = "NOT_FOUND"
    http_status = 404


class CartService:
    def __init__(self, cart, wishlist, catalog):
        self.cart = cart
        self.wishlist = wishlist
        self.catalog = catalog

    def view(self, user_id: str) -> CartReadDTO:
        """Cart lines priced at current catalog prices.

        Lines whose product was deleted are left out of the listing; they
        are removed for good by the product cleanup.
        """
        lines = self.cart.lines_for(user_id)
        products = self.catalog.resolve_many(l.product_id for l in lines)
        items = []
        total = Decimal("0")
        for line in lines:
            product = products.get(line.product_id)
            if product is None:
                continue
            line_total = product.price * line.quantity
            total += line_total
            items.append(
                CartLineReadDTO(
                    cart_item_id=line.cart_item_id,
                    product_id=line.product_id,
                    product_name=product.name,
                    price=product.price,
                    quantity=line.quantity,
                    line_total=line_total,
                )
            )
        return CartReadDTO(items=items, total=to_money(total))

    def add(self, user_id: str, product_id: str, quantity: int):
        if self.catalog.resolve(product_id) is None:
            raise ProductNotFoundError(f"Product {product_id} not found")
        line = self.cart.add(user_id, product_id, quantity)
        logger.info("cart line added", extra={"product_id": product_id, "quantity": line.quantity})
        return line

    def set_quantity(self, user_id: str, item_id: str, quantity: int) -> None:
        """Set a line's quantity; zero removes the line."""
        if not self.cart.set_quantity(user_id, item_id, quantity):
            raise CartItemNotFoundError(f"Cart item {item_id} not found")

    def remove(self, user_id: str, item_id: str) -> None:
        if not self.cart.remove(user_id, item_id):
            raise CartItemNotFoundError(f"Cart item {item_id} not found")

    def clear(self, user_id: str) -> int:
        return self.cart.clear(user_id)

    # ---- wishlist ----
    def wishlist_items(self, user_id: str) -> list:
        rows = self.wishlist.list_for(user_id)
        products = self.catalog.resolve_many(str(r.product_id) for r in rows)
        out = []
        for r in rows:
            product = products.get(str(r.product_id))
            out.append(
                WishlistItemReadDTO(
                    wishlist_item_id=str(r.id),
                    product_id=str(r.product_id),
                    product_name=product.name if product else None,
                    price=product.price if product else None,
                    added_at=r.added_at,
                )
            )
        return out

    def add_to_wishlist(self, user_id: str, product_id: str):
        if self.catalog.resolve(product_id) is None:
            raise ProductNotFoundError(f"Product {product_id} not found")
        return self.wishlist.add(user_id, product_id)

    def remove_from_wishlist(self, user_id: str, item_id: str) -> None:
        if not self.wishlist.remove(user_id, item_id):
            raise CartItemNotFoundError(f"Wishlist item {item_id} not found")

    def move_to_cart(self, user_id: str, item_id: str):
        """Add the wishlist product to the cart and drop it from the wishlist."""
        row = self.wishlist.get(user_id, item_id)
        if row is None:
            raise CartItemNotFoundError(f"Wishlist item {item_id} not found")
        line = self.add(user_id, str(row.product_id), 1)
        self.wishlist.remove(user_id, item_id)
        return line
