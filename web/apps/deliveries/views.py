from pydantic import ValidationError
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.orders.domain import DomainError
from gateway.authentication import IsAdminRole
from gateway.errors import domain_error_response, validation_error_response

from .schemas import (
    CreateDeliveryDTO,
    DeliveryDetailsDTO,
    DeliveryReadDTO,
    DeliveryStatusUpdateDTO,
    TrackingNumberDTO,
)
from .services import DeliveryService


def _body(obj) -> dict:
    return DeliveryReadDTO.from_model(obj).model_dump(by_alias=True, mode="json")


class DeliveryCollectionView(APIView):
    def post(self, request):
        try:
            dto = CreateDeliveryDTO.model_validate(request.data)
            obj = DeliveryService().create(request.user.id, dto)
        except ValidationError as e:
            return validation_error_response(e)
        except DomainError as e:
            return domain_error_response(e)
        return Response(_body(obj), status=status.HTTP_201_CREATED)


class DeliveryByOrderView(APIView):
    def get(self, request, order_id):
        try:
            obj = DeliveryService().for_order(str(order_id), request.user)
        except DomainError as e:
            return domain_error_response(e)
        return Response(_body(obj))


class DeliveryDetailView(APIView):
    def put(self, request, delivery_id: int):
        try:
            dto = DeliveryDetailsDTO.model_validate(request.data)
            obj = DeliveryService().update_details(delivery_id, request.user, dto)
        except ValidationError as e:
            return validation_error_response(e)
        except DomainError as e:
            return domain_error_response(e)
        return Response(_body(obj))


class DeliveryTrackingView(APIView):
    def post(self, request, delivery_id: int):
        try:
            dto = TrackingNumberDTO.model_validate(request.data)
            obj = DeliveryService().add_tracking(delivery_id, request.user, dto.tracking_number)
        except ValidationError as e:
            return validation_error_response(e)
        except DomainError as e:
            return domain_error_response(e)
        return Response({"trackingNumber": obj.tracking_number, "deliveryStatus": str(obj.status)})


class DeliveryStatusView(APIView):
    permission_classes = [IsAdminRole]

    def patch(self, request, delivery_id: int):
        try:
            dto = DeliveryStatusUpdateDTO.model_validate(request.data)
            obj = DeliveryService().set_status(delivery_id, request.user, dto.status, dto.tracking_number)
        except ValidationError as e:
            return validation_error_response(e)
        except DomainError as e:
            return domain_error_response(e)
        return Response(_body(obj))
