"""Cart and wishlist endpoints; every route is scoped to the caller's id."""

from pydantic import ValidationError
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.catalog.pricing import DjangoProductCatalog
from apps.orders.domain import DomainError
from gateway.errors import domain_error_response, validation_error_response

from .repository import DjangoCartStore, DjangoWishlistStore
from .schemas import AddToCartDTO, AddToWishlistDTO, SetQuantityDTO
from .services import CartService


def get_cart_service() -> CartService:
    return CartService(DjangoCartStore(), DjangoWishlistStore(), DjangoProductCatalog())


def _line_body(line) -> dict:
    return {"cartItemId": line.cart_item_id, "productId": line.product_id, "quantity": line.quantity}


class CartView(APIView):
    def get(self, request):
        cart = get_cart_service().view(request.user.id)
        return Response(cart.model_dump(by_alias=True, mode="json"))

    def post(self, request):
        try:
            dto = AddToCartDTO.model_validate(request.data)
            line = get_cart_service().add(request.user.id, str(dto.product_id), dto.quantity)
        except ValidationError as e:
            return validation_error_response(e)
        except DomainError as e:
            return domain_error_response(e)
        return Response(_line_body(line), status=status.HTTP_201_CREATED)

    def delete(self, request):
        removed = get_cart_service().clear(request.user.id)
        return Response({"removed": removed})


class CartItemView(APIView):
    def put(self, request, item_id):
        try:
            dto = SetQuantityDTO.model_validate(request.data)
            get_cart_service().set_quantity(request.user.id, str(item_id), dto.quantity)
        except ValidationError as e:
            return validation_error_response(e)
        except DomainError as e:
            return domain_error_response(e)
        return Response(status=status.HTTP_204_NO_CONTENT)

    def delete(self, request, item_id):
        try:
            get_cart_service().remove(request.user.id, str(item_id))
        except DomainError as e:
            return domain_error_response(e)
        return Response(status=status.HTTP_204_NO_CONTENT)


class WishlistView(APIView):
    def get(self, request):
        items = get_cart_service().wishlist_items(request.user.id)
        return Response([i.model_dump(by_alias=True, mode="json") for i in items])

    def post(self, request):
        try:
            dto = AddToWishlistDTO.model_validate(request.data)
            row = get_cart_service().add_to_wishlist(request.user.id, str(dto.product_id))
        except ValidationError as e:
            return validation_error_response(e)
        except DomainError as e:
            return domain_error_response(e)
        return Response({"wishlistItemId": str(row.id), "productId": str(row.product_id)}, status=201)


class WishlistItemView(APIView):
    def delete(self, request, item_id):
        try:
            get_cart_service().remove_from_wishlist(request.user.id, str(item_id))
        except DomainError as e:
            return domain_error_response(e)
        return Response(status=status.HTTP_204_NO_CONTENT)


class WishlistMoveToCartView(APIView):
    def post(self, request, item_id):
        try:
            line = get_cart_service().move_to_cart(request.user.id, str(item_id))
        except DomainError as e:
            return domain_error_response(e)
        return Response(_line_body(line), status=status.HTTP_201_CREATED)
