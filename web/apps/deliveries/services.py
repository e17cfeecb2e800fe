"""Shipment records attached to paid orders."""

import logging
import re

from django.db import IntegrityError, transaction
from django.utils import timezone

from apps.orders.domain import DomainError, OrderNotFoundError, is_shippable
from apps.orders.repository import DjangoOrderStore

from .models import Delivery, DeliveryStatus
from .schemas import CreateDeliveryDTO, DeliveryDetailsDTO

logger = logging.getLogger(__name__)

# Carrier waybill numbers (TTN) are exactly 14 digits.
TRACKING_RE = re.compile(r"^\d{14}$")

DETAIL_FIELDS = list(DeliveryDetailsDTO.model_fields)


class DeliveryNotFoundError(DomainError):
    code = "NOT_FOUND"
    http_status = 404


class OrderNotShippableError(DomainError):
    code = "ORDER_NOT_SHIPPABLE"


class DeliveryExistsError(DomainError):
    code = "DELIVERY_EXISTS"
    http_status = 409


class InvalidTrackingNumberError(DomainError):
    code = "INVALID_TRACKING_NUMBER"


class InvalidDeliveryStatusError(DomainError):
    code = "INVALID_DELIVERY_STATUS"


def validate_tracking_number(value: str) -> str:
    value = (value or "").strip()
    if not TRACKING_RE.match(value):
        raise InvalidTrackingNumberError("Tracking number must be 14 digits")
    return value


class DeliveryService:
    def __init__(self, orders=None):
        self.orders = orders or DjangoOrderStore()

    def create(self, user_id: str, dto: CreateDeliveryDTO) -> Delivery:
        """Open a delivery for a paid order owned by ``user_id``.

        Raises:
            OrderNotFoundError: Unknown order or owned by someone else.
            OrderNotShippableError: The order is not Completed.
            DeliveryExistsError: The order already has a delivery.
        """
        order = self.orders.get_for_user(dto.order_id, user_id)
        if order is None:
            raise OrderNotFoundError(f"Order {dto.order_id} not found")
        if not is_shippable(order):
            raise OrderNotShippableError(f"Order status is {order.status}")
        if Delivery.objects.filter(order_id=order.id).exists():
            raise DeliveryExistsError("Delivery already created for this order")

        fields = dto.model_dump(include=set(DETAIL_FIELDS))
        try:
            with transaction.atomic():
                obj = Delivery.objects.create(order_id=order.id, status=DeliveryStatus.PENDING, **fields)
        except IntegrityError:
            raise DeliveryExistsError("Delivery already created for this order")
        logger.info("delivery created", extra={"order_id": order.id, "delivery_id": obj.pk})
        return obj

    def _visible(self, delivery_id: int, user) -> Delivery:
        obj = Delivery.objects.select_related("order").filter(pk=delivery_id).first()
        if obj is None or (obj.order.user_id != user.id and not user.is_admin):
            raise DeliveryNotFoundError(f"Delivery {delivery_id} not found")
        return obj

    def for_order(self, order_id: str, user) -> Delivery:
        order = self.orders.get(order_id)
        if order is None or (order.user_id != user.id and not user.is_admin):
            raise OrderNotFoundError(f"Order {order_id} not found")
        obj = Delivery.objects.filter(order_id=order.id).first()
        if obj is None:
            raise DeliveryNotFoundError("Delivery not found for this order")
        return obj

    def update_details(self, delivery_id: int, user, dto: DeliveryDetailsDTO) -> Delivery:
        obj = self._visible(delivery_id, user)
        for name, value in dto.model_dump(include=set(DETAIL_FIELDS)).items():
            setattr(obj, name, value)
        obj.updated_at = timezone.now()
        obj.save()
        return obj

    def add_tracking(self, delivery_id: int, user, tracking_number: str) -> Delivery:
        """Record the carrier waybill and move the delivery to InTransit."""
        number = validate_tracking_number(tracking_number)
        obj = self._visible(delivery_id, user)
        obj.tracking_number = number
        obj.status = DeliveryStatus.IN_TRANSIT
        obj.updated_at = timezone.now()
        obj.save(update_fields=["tracking_number", "status", "updated_at"])
        logger.info("tracking number added", extra={"delivery_id": obj.pk, "tracking_number": number})
        return obj

    def set_status(self, delivery_id: int, user, status: str, tracking_number=None) -> Delivery:
        if status not in DeliveryStatus.values:
            raise InvalidDeliveryStatusError(f"Unknown delivery status {status}")
        obj = self._visible(delivery_id, user)
        obj.status = status
        if tracking_number:
            obj.tracking_number = validate_tracking_number(tracking_number)
        obj.updated_at = timezone.now()
        obj.save(update_fields=["status", "tracking_number", "updated_at"])
        return obj
