from django.urls import path
from .views import WishlistItemView, WishlistMoveToCartView, WishlistView

app_name = "wishlist"

urlpatterns = [
    path("", WishlistView.as_view(), name="wishlist"),
    path("<uuid:item_id>/", WishlistItemView.as_view(), name="wishlist-item"),
    path("<uuid:item_id>/move-to-cart/", WishlistMoveToCartView.as_view(), name="wishlist-move"),
]
