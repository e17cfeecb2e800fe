"""Django settings for the marketplace backend.

Every value that differs between environments is read from the process
environment at start-up. Secrets (``DJANGO_SECRET_KEY``, ``JWT_SECRET``,
``NOWPAYMENTS_API_KEY``, ``NOWPAYMENTS_IPN_SECRET``) have no usable
production default and must be injected by the deployment.
"""

import os
from pathlib import Path


def _env_bool(name: str, default: bool) -> bool:
    return os.getenv(name, "1" if default else "0").strip().lower() in ("1", "true", "yes", "on")


BASE_DIR = Path(__file__).resolve().parent.parent

SECRET_KEY = os.getenv("DJANGO_SECRET_KEY", "dev-insecure-secret-key")
DEBUG = _env_bool("DJANGO_DEBUG", False)
ALLOWED_HOSTS = [h for h in os.getenv("DJANGO_ALLOWED_HOSTS", "*").split(",") if h]

INSTALLED_APPS = [
    "django.contrib.contenttypes",
    "django.contrib.auth",
    "rest_framework",
    "apps.catalog",
    "apps.carts",
    "apps.orders",
    "apps.deliveries",
]

MIDDLEWARE = [
    "gateway.middleware.RequestIdMiddleware",
    "gateway.middleware.ApiSizeLimitMiddleware",
    "django.middleware.security.SecurityMiddleware",
    "django.middleware.common.CommonMiddleware",
]

ROOT_URLCONF = "market.urls"
WSGI_APPLICATION = "market.wsgi.application"

DATABASES = {
    "default": {
        "ENGINE": os.getenv("DB_ENGINE", "django.db.backends.sqlite3"),
        "NAME": os.getenv("DB_NAME", str(BASE_DIR / "db.sqlite3")),
        "USER": os.getenv("DB_USER", ""),
        "PASSWORD": os.getenv("DB_PASSWORD", ""),
        "HOST": os.getenv("DB_HOST", ""),
        "PORT": os.getenv("DB_PORT", ""),
        "CONN_MAX_AGE": int(os.getenv("DB_CONN_MAX_AGE", "60")),
    }
}

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"
USE_TZ = True
TIME_ZONE = "UTC"

# ---- REST framework ----
REST_FRAMEWORK = {
    "DEFAULT_AUTHENTICATION_CLASSES": ["gateway.authentication.JWTAuthentication"],
    "DEFAULT_PERMISSION_CLASSES": ["rest_framework.permissions.IsAuthenticated"],
    "DEFAULT_RENDERER_CLASSES": ["rest_framework.renderers.JSONRenderer"],
    "DEFAULT_PARSER_CLASSES": ["rest_framework.parsers.JSONParser"],
    "UNAUTHENTICATED_USER": None,
    "DEFAULT_THROTTLE_RATES": {
        "payments_create": os.getenv("THROTTLE_PAYMENTS_CREATE", "30/min"),
        "payments_read": os.getenv("THROTTLE_PAYMENTS_READ", "600/min"),
    },
}

# ---- Auth (tokens are issued by the identity service) ----
JWT_SECRET = os.getenv("JWT_SECRET", "dev-jwt-secret-change-me-0123456789abcdef")
JWT_ALGORITHMS = ["HS256"]
JWT_ADMIN_ROLE = os.getenv("JWT_ADMIN_ROLE", "admin")

# ---- Payment provider ----
USE_HTTP_ADAPTERS = _env_bool("USE_HTTP_ADAPTERS", True)
PAYMENT_TEST_MODE = _env_bool("PAYMENT_TEST_MODE", False)
NOWPAYMENTS_BASE_URL = os.getenv("NOWPAYMENTS_BASE_URL", "https://api.nowpayments.io/v1")
NOWPAYMENTS_API_KEY = os.getenv("NOWPAYMENTS_API_KEY", "")
NOWPAYMENTS_IPN_SECRET = os.getenv("NOWPAYMENTS_IPN_SECRET", "")
NOWPAYMENTS_PRICE_CURRENCY = os.getenv("NOWPAYMENTS_PRICE_CURRENCY", "usd")
NOWPAYMENTS_SUCCESS_URL = os.getenv("NOWPAYMENTS_SUCCESS_URL", "http://localhost:3000/payment/success")
NOWPAYMENTS_CANCEL_URL = os.getenv("NOWPAYMENTS_CANCEL_URL", "http://localhost:3000/payment/cancel")
NOWPAYMENTS_IPN_CALLBACK_URL = os.getenv(
    "NOWPAYMENTS_IPN_CALLBACK_URL", "http://localhost:8000/api/payment/webhook"
)
NOWPAYMENTS_TIMEOUT_SECS = float(os.getenv("NOWPAYMENTS_TIMEOUT_SECS", "10"))
FALLBACK_CURRENCIES = ["btc", "eth", "ltc", "usdttrc20", "usdterc20", "trx", "doge", "xmr"]

# ---- Outbound HTTP resilience ----
HTTP_RETRY_MAX = int(os.getenv("HTTP_RETRY_MAX", "3"))
HTTP_RETRY_BACKOFF_BASE = float(os.getenv("HTTP_RETRY_BACKOFF_BASE", "0.15"))
HTTP_RETRY_MAX_SLEEP = float(os.getenv("HTTP_RETRY_MAX_SLEEP", "0.5"))
HTTP_CIRCUIT_FAIL_THRESHOLD = int(os.getenv("HTTP_CIRCUIT_FAIL_THRESHOLD", "5"))
HTTP_CIRCUIT_RESET_TIMEOUT = float(os.getenv("HTTP_CIRCUIT_RESET_TIMEOUT", "30"))

# ---- Logging ----
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "filters": {
        "request_id": {"()": "gateway.logging_filters.RequestIdFilter"},
    },
    "formatters": {
        "json": {
            "()": "pythonjsonlogger.jsonlogger.JsonFormatter",
            "fmt": "%(asctime)s %(levelname)s %(name)s %(message)s %(request_id)s",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "json",
            "filters": ["request_id"],
        },
    },
    "root": {"handlers": ["console"], "level": LOG_LEVEL},
    "loggers": {
        "django.db.backends": {"level": "WARNING"},
    },
}
