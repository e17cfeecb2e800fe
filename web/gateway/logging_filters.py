"""Logging filter that stamps request context onto every record.

Checkout, webhook and cleanup logs are correlated by the request id set in
``RequestIdMiddleware`` and by the authenticated user id published by
``JWTAuthentication``. Both are read from ContextVars so individual log
calls never pass them explicitly.
"""

from logging import Filter, LogRecord
from .middleware import REQUEST_ID_CTX, USER_ID_CTX


class RequestIdFilter(Filter):
    """Attach ``request_id`` and ``user_id`` attributes to log records.

    Missing values are rendered as ``"-"`` so the JSON formatter can always
    reference ``%(request_id)s``.
    """

    def filter(self, record: LogRecord) -> bool:
        record.request_id = REQUEST_ID_CTX.get()
        if not hasattr(record, "user_id"):
            record.user_id = USER_ID_CTX.get()
        return True
