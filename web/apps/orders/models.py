import uuid
from django.db import models, transaction
from django.utils import timezone


class OrderModel(models.Model):
    # UUID PK exposed in the API and sent to the provider as order_id
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    # Sequential number shown to customers ("Order #42")
    number = models.BigIntegerField(unique=True, editable=False, null=True)

    user_id = models.CharField(max_length=64, db_index=True)
    total = models.DecimalField(max_digits=12, decimal_places=2)
    # No choices: unknown provider statuses are stored verbatim
    status = models.CharField(max_length=64, default="Pending", db_index=True)
    created_at = models.DateTimeField(default=timezone.now)
    completed_at = models.DateTimeField(null=True, blank=True)
    payment_id = models.CharField(max_length=128, unique=True, null=True, blank=True)
    payment_url = models.URLField(max_length=500, null=True, blank=True)
    payment_currency = models.CharField(max_length=20, null=True, blank=True)

    class Meta:
        db_table = "orders"
        ordering = ["-created_at"]

    def save(self, *args, **kwargs):
        # Assign `number` only on creation
        if self.number is None:
            with transaction.atomic():
                last = (
                    OrderModel.objects.select_for_update()
                    .exclude(number__isnull=True)
                    .order_by("-number")
                    .first()
                )
                self.number = 1 if not last else last.number + 1
                super().save(*args, **kwargs)
            return
        super().save(*args, **kwargs)


class OrderItemModel(models.Model):
    order = models.ForeignKey(OrderModel, on_delete=models.CASCADE, related_name="items")
    # Weak reference: the product may be deleted later
    product_id = models.UUIDField(db_index=True)
    quantity = models.PositiveIntegerField()
    # Price at time of purchase
    price = models.DecimalField(max_digits=12, decimal_places=2)

    class Meta:
        db_table = "order_items"


class IdempotencyKey(models.Model):
    key = models.CharField(max_length=200, primary_key=True)
    request_hash = models.CharField(max_length=64)
    response_status = models.PositiveSmallIntegerField(default=0)
    response_body = models.JSONField(default=dict)
    order = models.ForeignKey(OrderModel, null=True, blank=True, on_delete=models.SET_NULL)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "idempotency_keys"
