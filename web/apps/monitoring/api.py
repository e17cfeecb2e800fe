"""Liveness and readiness endpoints for load balancers."""

import logging

from django.conf import settings
from django.db import DatabaseError, connection
from django.http import JsonResponse

logger = logging.getLogger(__name__)


def health_view(_request):
    """Report database reachability and whether the payment provider is configured.

    Only the database decides the status code: without a provider key the
    service still serves carts and orders, and checkout fails per request.
    """
    db_ok = True
    try:
        with connection.cursor() as cur:
            cur.execute("SELECT 1;")
    except DatabaseError:
        logger.exception("health check: database unreachable")
        db_ok = False

    provider = {
        "http": bool(getattr(settings, "USE_HTTP_ADAPTERS", True)),
        "configured": bool(getattr(settings, "NOWPAYMENTS_API_KEY", "")),
        "ipn_signed": bool(getattr(settings, "NOWPAYMENTS_IPN_SECRET", "")),
    }
    return JsonResponse(
        {"ok": db_ok, "components": {"db": {"ok": db_ok}, "payments": provider}},
        status=200 if db_ok else 503,
    )


def live_view(_request):
    """Process is up; touches nothing external."""
    return JsonResponse({"ok": True})
