"""Request-scoped middleware for the marketplace API.

``RequestIdMiddleware`` gives every request a correlation id. The id comes
from the incoming ``X-Request-Id`` header when a caller (load balancer,
payment provider, frontend) supplies one, or is generated server-side. It is
stored on the request, in ``REQUEST_ID_CTX`` for code that has no request
object (log filters, the payment gateway client), and echoed back in the
``X-Request-ID`` response header.

``USER_ID_CTX`` holds the authenticated caller id once the bearer token has
been verified; the middleware resets it at the start of every request so a
worker thread never leaks the previous caller into the next request's logs.

``ApiSizeLimitMiddleware`` rejects oversized API bodies before they reach a
view. The provider webhook is acknowledged with 200 instead, and the body
is dropped unread.
"""

import uuid
import os
import logging
import contextvars
from django.http import JsonResponse

from django.utils.deprecation import MiddlewareMixin

REQUEST_ID_CTX = contextvars.ContextVar("request_id", default="-")
USER_ID_CTX = contextvars.ContextVar("user_id", default="-")
MAX_API_BYTES = int(os.getenv("API_MAX_BYTES", str(1 * 1024 * 1024)))
WEBHOOK_PATH = "/api/payment/webhook"

logger = logging.getLogger(__name__)


class RequestIdMiddleware(MiddlewareMixin):
    """Assign, propagate and echo a per-request identifier.

    Attributes:
        HEADER (str): Incoming header name in ``request.META`` casing.
        RESPONSE_HEADER (str): Header set on every outgoing response.
    """

    HEADER = "HTTP_X_REQUEST_ID"
    RESPONSE_HEADER = "X-Request-ID"

    def process_request(self, request):
        """Reuse the caller's id or mint a UUIDv4, then publish it.

        Args:
            request: Django HttpRequest instance.
        """
        rid = request.META.get(self.HEADER)
        if not rid:
            rid = str(uuid.uuid4())
        request.request_id = rid
        REQUEST_ID_CTX.set(rid)
        USER_ID_CTX.set("-")

    def process_response(self, request, response):
        """Copy the request id onto the response.

        Falls back to the ContextVar when the request object carries no id
        (for example when an earlier middleware short-circuited).
        """
        rid = getattr(request, "request_id", REQUEST_ID_CTX.get())
        response[self.RESPONSE_HEADER] = rid
        return response


class ApiSizeLimitMiddleware(MiddlewareMixin):
    """Return 413 for ``/api/`` requests whose declared body is too large."""

    def process_request(self, request):
        if request.path.startswith("/api/"):
            clen = request.META.get("CONTENT_LENGTH")
            if clen and clen.isdigit() and int(clen) > MAX_API_BYTES:
                if request.path == WEBHOOK_PATH:
                    logger.warning("oversized webhook body dropped", extra={"content_length": int(clen)})
                    return JsonResponse({"status": "success"})
                return JsonResponse({"detail": "PAYLOAD_TOO_LARGE"}, status=413)
