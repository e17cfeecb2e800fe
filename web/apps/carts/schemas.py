import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class _Camel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class AddToCartDTO(_Camel):
    product_id: uuid.UUID = Field(alias="productId")
    quantity: int = Field(default=1, ge=1, le=999)


class SetQuantityDTO(_Camel):
    quantity: int = Field(ge=0, le=999)


class AddToWishlistDTO(_Camel):
    product_id: uuid.UUID = Field(alias="productId")


class CartLineReadDTO(_Camel):
    cart_item_id: str = Field(alias="cartItemId")
    product_id: str = Field(alias="productId")
    product_name: str = Field(alias="productName")
    price: Decimal
    quantity: int
    line_total: Decimal = Field(alias="lineTotal")


class CartReadDTO(_Camel):
    items: list[CartLineReadDTO]
    total: Decimal


class WishlistItemReadDTO(_Camel):
    wishlist_item_id: str = Field(alias="wishlistItemId")
    product_id: str = Field(alias="productId")
    product_name: Optional[str] = Field(default=None, alias="productName")
    price: Optional[Decimal] = None
    added_at: datetime = Field(alias="addedAt")
