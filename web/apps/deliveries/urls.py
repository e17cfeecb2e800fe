from django.urls import path
from .views import (
    DeliveryByOrderView,
    DeliveryCollectionView,
    DeliveryDetailView,
    DeliveryStatusView,
    DeliveryTrackingView,
)

app_name = "deliveries"

urlpatterns = [
    path("", DeliveryCollectionView.as_view(), name="delivery-create"),
    path("order/<uuid:order_id>/", DeliveryByOrderView.as_view(), name="delivery-by-order"),
    path("<int:delivery_id>/", DeliveryDetailView.as_view(), name="delivery-detail"),
    path("<int:delivery_id>/tracking/", DeliveryTrackingView.as_view(), name="delivery-tracking"),
    path("<int:delivery_id>/status/", DeliveryStatusView.as_view(), name="delivery-status"),
]
