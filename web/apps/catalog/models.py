import uuid
from django.db import models
from django.utils import timezone


class Product(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=200)
    description = models.TextField(blank=True, default="")
    price = models.DecimalField(max_digits=12, decimal_places=2)
    image_url = models.URLField(max_length=500, blank=True, default="")
    category = models.CharField(max_length=100, blank=True, default="", db_index=True)
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = "products"


# Photos, specifications and reviews point at products by id only (weak
# reference); cascade cleanup removes them explicitly.
class ProductPhoto(models.Model):
    product_id = models.UUIDField(db_index=True)
    url = models.URLField(max_length=500)
    position = models.PositiveSmallIntegerField(default=0)

    class Meta:
        db_table = "product_photos"


class ProductSpecification(models.Model):
    product_id = models.UUIDField(db_index=True)
    name = models.CharField(max_length=100)
    value = models.CharField(max_length=500)

    class Meta:
        db_table = "product_specifications"


class Review(models.Model):
    product_id = models.UUIDField(db_index=True)
    user_id = models.CharField(max_length=64, db_index=True)
    order_id = models.UUIDField(null=True, blank=True)
    rating = models.PositiveSmallIntegerField()
    text = models.TextField(blank=True, default="")
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = "reviews"
