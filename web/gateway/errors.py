"""Translate domain failures into API responses.

Every expected business failure is a ``DomainError`` subclass with a stable
code; the JSON body is always ``{"detail": <CODE>, "message": <text>}`` so
clients can switch on ``detail``.
"""

from pydantic import ValidationError
from rest_framework.response import Response

from apps.orders.domain import DomainError, PaymentGatewayError


def domain_error_response(err: DomainError) -> Response:
    body = {"detail": str(err), "message": err.detail or str(err)}
    if isinstance(err, PaymentGatewayError):
        body["error"] = err.detail
    return Response(body, status=err.http_status)


def validation_error_response(err: ValidationError) -> Response:
    errors = [{"loc": list(e["loc"]), "msg": e["msg"]} for e in err.errors()]
    return Response({"detail": "VALIDATION_ERROR", "message": errors}, status=400)
