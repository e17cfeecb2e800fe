from django.db import models
from django.utils import timezone

from apps.orders.models import OrderModel


class DeliveryStatus(models.TextChoices):
    PENDING = "Pending"
    IN_TRANSIT = "InTransit"
    DELIVERED = "Delivered"
    FAILED = "Failed"


class Delivery(models.Model):
    order = models.OneToOneField(OrderModel, on_delete=models.CASCADE, related_name="delivery")
    delivery_method = models.CharField(max_length=50)  # NovaPoshta, UkrPoshta, Meest
    delivery_type = models.CharField(max_length=50)  # Warehouse, Courier, PostOffice
    recipient_full_name = models.CharField(max_length=200)
    recipient_phone = models.CharField(max_length=32)
    city_ref = models.CharField(max_length=64, null=True, blank=True)
    city_name = models.CharField(max_length=200, null=True, blank=True)
    warehouse_ref = models.CharField(max_length=64, null=True, blank=True)
    warehouse_address = models.CharField(max_length=500, null=True, blank=True)
    delivery_address = models.CharField(max_length=500, null=True, blank=True)
    tracking_number = models.CharField(max_length=14, null=True, blank=True, db_index=True)
    delivery_cost = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    estimated_delivery_date = models.DateTimeField(null=True, blank=True)
    status = models.CharField(max_length=20, choices=DeliveryStatus.choices, default=DeliveryStatus.PENDING)
    delivery_data = models.JSONField(null=True, blank=True)
    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = "deliveries"
