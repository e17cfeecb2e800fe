import jwt
import pytest
from django.core.cache import cache
from django.test import Client


@pytest.fixture(autouse=True)
def use_stubs_for_tests(settings):
    settings.USE_HTTP_ADAPTERS = False
    settings.NOWPAYMENTS_IPN_SECRET = ""
    settings.PAYMENT_TEST_MODE = False
    settings.HTTP_RETRY_BACKOFF_BASE = 0.0


@pytest.fixture(autouse=True)
def reset_throttle_cache():
    cache.clear()
    yield
    cache.clear()


def make_token(settings, user_id: str, role: str = "user") -> str:
    return jwt.encode({"userId": user_id, "role": role}, settings.JWT_SECRET, algorithm="HS256")


@pytest.fixture
def user_id():
    return "user-1"


@pytest.fixture
def auth_client(settings, user_id):
    """Django test client sending a bearer token for ``user_id``."""
    return Client(HTTP_AUTHORIZATION=f"Bearer {make_token(settings, user_id)}")


@pytest.fixture
def other_client(settings):
    return Client(HTTP_AUTHORIZATION=f"Bearer {make_token(settings, 'user-2')}")


@pytest.fixture
def admin_client(settings):
    return Client(HTTP_AUTHORIZATION=f"Bearer {make_token(settings, 'admin-1', role='admin')}")


@pytest.fixture
def client_for(settings):
    """Factory: ``client_for("user-9", role="admin")``."""

    def _make(uid: str, role: str = "user") -> Client:
        return Client(HTTP_AUTHORIZATION=f"Bearer {make_token(settings, uid, role)}")

    return _make
