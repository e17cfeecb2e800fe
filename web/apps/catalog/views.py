from rest_framework.response import Response
from rest_framework.views import APIView

from gateway.authentication import IsAdminRole

from .cleanup import ProductCleanup
from .repository import DjangoCleanupStore


class ProductDetailView(APIView):
    """Admin-only product removal with cascade cleanup."""

    permission_classes = [IsAdminRole]

    def delete(self, request, product_id):
        report = ProductCleanup(DjangoCleanupStore()).delete_product(str(product_id))
        if not report.found:
            return Response({"detail": "PRODUCT_NOT_FOUND", "message": "Product not found"}, status=404)
        return Response(status=204)
