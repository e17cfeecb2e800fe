from django.urls import path
from .views import CartItemView, CartView

app_name = "carts"

urlpatterns = [
    path("", CartView.as_view(), name="cart"),  # GET list / POST add / DELETE clear
    path("<uuid:item_id>/", CartItemView.as_view(), name="cart-item"),
]
