import uuid
from django.db import models
from django.utils import timezone


class CartItem(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user_id = models.CharField(max_length=64, db_index=True)
    # Weak reference: the product may be deleted later
    product_id = models.UUIDField(db_index=True)
    quantity = models.PositiveIntegerField(default=1)
    added_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = "cart_items"
        constraints = [
            models.UniqueConstraint(fields=["user_id", "product_id"], name="uniq_cart_user_product"),
        ]


class WishlistItem(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user_id = models.CharField(max_length=64, db_index=True)
    product_id = models.UUIDField(db_index=True)
    added_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = "wishlist_items"
        constraints = [
            models.UniqueConstraint(fields=["user_id", "product_id"], name="uniq_wishlist_user_product"),
        ]
