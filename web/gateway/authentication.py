"""Bearer-token authentication and role permissions for DRF views.

Tokens are issued by the identity service; this module only verifies them.
The signing secret is injected through ``settings.JWT_SECRET``. A valid
token yields a ``TokenUser`` carrying the caller id (``userId`` claim, or
``sub`` as a fallback) and role. Views never see how the identity was
derived.
"""

import logging
from dataclasses import dataclass

import jwt
from django.conf import settings
from rest_framework import exceptions
from rest_framework.authentication import BaseAuthentication, get_authorization_header
from rest_framework.permissions import BasePermission

from .middleware import USER_ID_CTX

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TokenUser:
    """Authenticated caller derived from a verified JWT."""

    id: str
    role: str = "user"

    is_authenticated = True

    @property
    def pk(self) -> str:
        return self.id

    @property
    def is_admin(self) -> bool:
        return self.role == getattr(settings, "JWT_ADMIN_ROLE", "admin")


class JWTAuthentication(BaseAuthentication):
    """Authenticate ``Authorization: Bearer <token>`` requests.

    Requests without a bearer header are left unauthenticated so the
    permission layer answers 401. A present but invalid token fails
    immediately with 401.
    """

    keyword = b"bearer"

    def authenticate(self, request):
        parts = get_authorization_header(request).split()
        if not parts or parts[0].lower() != self.keyword:
            return None
        if len(parts) != 2:
            raise exceptions.AuthenticationFailed("INVALID_TOKEN_HEADER")

        try:
            claims = jwt.decode(
                parts[1].decode("utf-8"),
                settings.JWT_SECRET,
                algorithms=getattr(settings, "JWT_ALGORITHMS", ["HS256"]),
            )
        except (jwt.InvalidTokenError, UnicodeDecodeError) as e:
            logger.info("rejected bearer token", extra={"reason": str(e)})
            raise exceptions.AuthenticationFailed("INVALID_TOKEN")

        user_id = claims.get("userId") or claims.get("sub")
        if not user_id:
            raise exceptions.AuthenticationFailed("INVALID_TOKEN")

        user = TokenUser(id=str(user_id), role=str(claims.get("role") or "user"))
        USER_ID_CTX.set(user.id)
        return user, claims

    def authenticate_header(self, request):
        return "Bearer"


class IsAdminRole(BasePermission):
    """Allow only authenticated callers whose token carries the admin role."""

    def has_permission(self, request, view):
        user = request.user
        return bool(user and user.is_authenticated and getattr(user, "is_admin", False))
