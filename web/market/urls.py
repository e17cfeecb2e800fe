from django.urls import include, path

urlpatterns = [
    path("api/payment/", include("apps.orders.urls")),
    path("api/cart/", include("apps.carts.urls")),
    path("api/wishlist/", include("apps.carts.wishlist_urls")),
    path("api/products/", include("apps.catalog.urls")),
    path("api/delivery/", include("apps.deliveries.urls")),
    path("api/", include("apps.monitoring.urls")),
]
