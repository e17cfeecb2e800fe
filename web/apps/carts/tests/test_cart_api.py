import uuid
from decimal import Decimal

import pytest
from django.db import IntegrityError

from apps.carts.models import CartItem, WishlistItem
from apps.carts.repository import DjangoCartStore
from apps.catalog.models import Product

CART_URL = "/api/cart/"
WISHLIST_URL = "/api/wishlist/"


@pytest.fixture
def product():
    return Product.objects.create(name="Monitor", price=Decimal("199.00"))


@pytest.mark.django_db
def test_adding_same_product_twice_sums_quantity(auth_client, user_id, product):
    auth_client.post(CART_URL, data={"productId": str(product.id), "quantity": 2}, content_type="application/json")
    r = auth_client.post(CART_URL, data={"productId": str(product.id)}, content_type="application/json")

    assert r.status_code == 201
    assert r.json()["quantity"] == 3
    assert CartItem.objects.filter(user_id=user_id).count() == 1


@pytest.mark.django_db
def test_unique_constraint_on_user_and_product(user_id, product):
    CartItem.objects.create(user_id=user_id, product_id=product.id, quantity=1)
    with pytest.raises(IntegrityError):
        CartItem.objects.create(user_id=user_id, product_id=product.id, quantity=1)


@pytest.mark.django_db
def test_add_unknown_product(auth_client):
    r = auth_client.post(CART_URL, data={"productId": str(uuid.uuid4())}, content_type="application/json")
    assert r.status_code == 404
    assert r.json()["detail"] == "PRODUCT_NOT_FOUND"


@pytest.mark.django_db
def test_cart_listing_skips_deleted_products(auth_client, user_id, product):
    CartItem.objects.create(user_id=user_id, product_id=product.id, quantity=2)
    CartItem.objects.create(user_id=user_id, product_id=uuid.uuid4(), quantity=1)

    body = auth_client.get(CART_URL).json()

    assert len(body["items"]) == 1
    assert body["items"][0]["productName"] == "Monitor"
    assert Decimal(body["total"]) == Decimal("398.00")


@pytest.mark.django_db
def test_set_quantity_zero_removes_line(auth_client, user_id, product):
    item = CartItem.objects.create(user_id=user_id, product_id=product.id, quantity=2)
    url = f"{CART_URL}{item.id}/"

    assert auth_client.put(url, data={"quantity": 5}, content_type="application/json").status_code == 204
    assert CartItem.objects.get(pk=item.id).quantity == 5
    assert auth_client.put(url, data={"quantity": 0}, content_type="application/json").status_code == 204
    assert not CartItem.objects.filter(pk=item.id).exists()


@pytest.mark.django_db
def test_cannot_touch_other_users_line(other_client, user_id, product):
    item = CartItem.objects.create(user_id=user_id, product_id=product.id, quantity=2)
    assert other_client.delete(f"{CART_URL}{item.id}/").status_code == 404
    assert CartItem.objects.filter(pk=item.id).exists()


@pytest.mark.django_db
def test_clear_cart(auth_client, user_id, product):
    CartItem.objects.create(user_id=user_id, product_id=product.id, quantity=2)
    CartItem.objects.create(user_id="user-2", product_id=product.id, quantity=1)

    assert auth_client.delete(CART_URL).json() == {"removed": 1}
    assert CartItem.objects.count() == 1


@pytest.mark.django_db
def test_remove_checked_out_decrements_grown_line(user_id, product):
    store = DjangoCartStore()
    line = store.add(user_id, str(product.id), 1)
    snapshot = store.lines_for(user_id)
    store.add(user_id, str(product.id), 2)

    assert store.remove_checked_out(user_id, snapshot) == 1

    assert CartItem.objects.get(pk=line.cart_item_id).quantity == 2


@pytest.mark.django_db
def test_wishlist_add_is_idempotent_and_moves_to_cart(auth_client, user_id, product):
    payload = {"productId": str(product.id)}
    first = auth_client.post(WISHLIST_URL, data=payload, content_type="application/json").json()
    second = auth_client.post(WISHLIST_URL, data=payload, content_type="application/json").json()
    assert first["wishlistItemId"] == second["wishlistItemId"]
    assert auth_client.get(WISHLIST_URL).json()[0]["productName"] == "Monitor"

    r = auth_client.post(f"{WISHLIST_URL}{first['wishlistItemId']}/move-to-cart/")

    assert r.status_code == 201
    assert not WishlistItem.objects.filter(user_id=user_id).exists()
    assert CartItem.objects.get(user_id=user_id).quantity == 1


@pytest.mark.django_db
def test_wishlist_remove(auth_client, user_id, product):
    row = WishlistItem.objects.create(user_id=user_id, product_id=product.id)
    assert auth_client.delete(f"{WISHLIST_URL}{row.id}/").status_code == 204
    assert auth_client.delete(f"{WISHLIST_URL}{row.id}/").status_code == 404
