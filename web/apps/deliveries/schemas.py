from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class _Camel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class DeliveryDetailsDTO(_Camel):
    """Recipient and route fields shared by create and update."""

    delivery_method: str = Field(alias="deliveryMethod", min_length=1, max_length=50)
    delivery_type: str = Field(alias="deliveryType", min_length=1, max_length=50)
    recipient_full_name: str = Field(alias="recipientFullName", min_length=1, max_length=200)
    recipient_phone: str = Field(alias="recipientPhone", min_length=5, max_length=32)
    city_ref: Optional[str] = Field(default=None, alias="cityRef")
    city_name: Optional[str] = Field(default=None, alias="cityName")
    warehouse_ref: Optional[str] = Field(default=None, alias="warehouseRef")
    warehouse_address: Optional[str] = Field(default=None, alias="warehouseAddress")
    delivery_address: Optional[str] = Field(default=None, alias="deliveryAddress")
    delivery_cost: Decimal = Field(default=Decimal("0"), alias="deliveryCost", ge=0, decimal_places=2)
    estimated_delivery_date: Optional[datetime] = Field(default=None, alias="estimatedDeliveryDate")
    delivery_data: Optional[Any] = Field(default=None, alias="deliveryData")


class CreateDeliveryDTO(DeliveryDetailsDTO):
    order_id: str = Field(alias="orderId")


class TrackingNumberDTO(_Camel):
    tracking_number: str = Field(alias="trackingNumber")


class DeliveryStatusUpdateDTO(_Camel):
    status: str = Field(alias="deliveryStatus")
    tracking_number: Optional[str] = Field(default=None, alias="trackingNumber")


class DeliveryReadDTO(_Camel):
    id: int
    order_id: str = Field(alias="orderId")
    delivery_method: str = Field(alias="deliveryMethod")
    delivery_type: str = Field(alias="deliveryType")
    recipient_full_name: str = Field(alias="recipientFullName")
    recipient_phone: str = Field(alias="recipientPhone")
    city_ref: Optional[str] = Field(default=None, alias="cityRef")
    city_name: Optional[str] = Field(default=None, alias="cityName")
    warehouse_ref: Optional[str] = Field(default=None, alias="warehouseRef")
    warehouse_address: Optional[str] = Field(default=None, alias="warehouseAddress")
    delivery_address: Optional[str] = Field(default=None, alias="deliveryAddress")
    tracking_number: Optional[str] = Field(default=None, alias="trackingNumber")
    delivery_cost: Decimal = Field(alias="deliveryCost")
    estimated_delivery_date: Optional[datetime] = Field(default=None, alias="estimatedDeliveryDate")
    status: str = Field(alias="deliveryStatus")
    delivery_data: Optional[Any] = Field(default=None, alias="deliveryData")
    created_at: datetime = Field(alias="createdAt")
    updated_at: Optional[datetime] = Field(default=None, alias="updatedAt")

    @classmethod
    def from_model(cls, obj) -> "DeliveryReadDTO":
        return cls(
            id=obj.pk,
            order_id=str(obj.order_id),
            delivery_method=obj.delivery_method,
            delivery_type=obj.delivery_type,
            recipient_full_name=obj.recipient_full_name,
            recipient_phone=obj.recipient_phone,
            city_ref=obj.city_ref,
            city_name=obj.city_name,
            warehouse_ref=obj.warehouse_ref,
            warehouse_address=obj.warehouse_address,
            delivery_address=obj.delivery_address,
            tracking_number=obj.tracking_number,
            delivery_cost=obj.delivery_cost,
            estimated_delivery_date=obj.estimated_delivery_date,
            status=str(obj.status),
            delivery_data=obj.delivery_data,
            created_at=obj.created_at,
            updated_at=obj.updated_at,
        )
