"""Pydantic schemas for the payment API.

Request schemas validate incoming bodies before they reach the checkout
services. Read schemas shape responses; they are dumped with
``by_alias=True`` so the wire format stays camelCase while Python code uses
snake_case. ``NowPaymentsWebhookEvent`` is the structured form of a provider
callback.
"""

import re
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


CURRENCY_RE = re.compile(r"^[a-z0-9]{2,20}$")


class CreatePaymentDTO(BaseModel):
    """Body of ``POST /payment/create``.

    Attributes:
        currency: Provider currency code the customer pays in (``btc``,
            ``usdttrc20``...). Normalized to lowercase.
    """

    currency: str = Field(min_length=2, max_length=20)

    @field_validator("currency")
    @classmethod
    def validate_currency(cls, v: str) -> str:
        v2 = v.strip().lower()
        if not CURRENCY_RE.match(v2):
            raise ValueError("Invalid currency code")
        return v2


class _CamelOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class PaymentCreatedDTO(_CamelOut):
    order_id: str = Field(alias="orderId")
    payment_id: str = Field(alias="paymentId")
    payment_url: str = Field(alias="paymentUrl")
    total: Decimal
    currency: str


class OrderStatusDTO(_CamelOut):
    """Order status snapshot returned by check/list endpoints."""

    order_id: str = Field(alias="orderId")
    status: str
    total: Decimal
    currency: str = ""
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")
    completed_at: Optional[datetime] = Field(default=None, alias="completedAt")
    payment_id: str = Field(default="", alias="paymentId")
    payment_url: str = Field(default="", alias="paymentUrl")

    @classmethod
    def from_order(cls, order) -> "OrderStatusDTO":
        return cls(
            order_id=str(order.id),
            status=order.status or "Pending",
            total=order.total,
            currency=order.payment_currency or "",
            created_at=order.created_at,
            completed_at=order.completed_at,
            payment_id=order.payment_id or "",
            payment_url=order.payment_url or "",
        )


class OrderItemReadDTO(_CamelOut):
    order_item_id: str = Field(alias="orderItemId")
    product_id: str = Field(alias="productId")
    product_name: Optional[str] = Field(default=None, alias="productName")
    quantity: int
    price: Decimal


class NowPaymentsWebhookEvent(BaseModel):
    """Structured provider callback.

    ``order_id`` accepts strings and integers because the provider echoes
    back whatever was sent at invoice creation.
    """

    model_config = ConfigDict(extra="ignore")

    event_type: str
    order_id: str
    payment_status: str
    payment_id: Optional[str] = None
    pay_amount: Optional[Decimal] = None
    pay_currency: Optional[str] = None

    @field_validator("order_id", "payment_id", mode="before")
    @classmethod
    def coerce_identifier(cls, v):
        if isinstance(v, bool):
            raise ValueError("identifier must be a string or integer")
        if isinstance(v, int):
            return str(v)
        return v

    @field_validator("order_id", "payment_status")
    @classmethod
    def require_text(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v
