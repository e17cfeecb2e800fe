from django.urls import path
from .views import (
    AdminFakePaymentView,
    CheckPaymentView,
    CreatePaymentView,
    CurrenciesView,
    OrderItemsView,
    TestCompletePaymentView,
    UserOrdersView,
    payment_webhook,
)

app_name = "orders"

urlpatterns = [
    path("create", CreatePaymentView.as_view(), name="payment-create"),
    path("check/<str:order_id>", CheckPaymentView.as_view(), name="payment-check"),
    path("orders", UserOrdersView.as_view(), name="orders-list"),
    path("orders/<str:order_id>/items", OrderItemsView.as_view(), name="order-items"),
    path("webhook", payment_webhook, name="payment-webhook"),
    path("currencies", CurrenciesView.as_view(), name="currencies"),
    path("admin/fake-payment/<str:order_id>", AdminFakePaymentView.as_view(), name="admin-fake-payment"),
    path("test-complete/<str:order_id>", TestCompletePaymentView.as_view(), name="test-complete"),
]
