"""
Production settings for the Trade Journal application.

This configuration is optimized for production deployment with security,
performance, and reliability considerations. All secrets come from
environment variables.
"""

import copy
import os
from pathlib import Path

from services.core.logging import LOGGING as BASE_LOGGING  # noqa: E402

from .base import *  # noqa: F403

# ================================================================================
# PRODUCTION SECURITY SETTINGS
# ================================================================================

SECRET_KEY = os.environ.get("SECRET_KEY")
if not SECRET_KEY:
    raise ValueError("SECRET_KEY environment variable must be set in production")

if not FIELD_ENCRYPTION_KEY:
    from django.core.exceptions import ImproperlyConfigured

    raise ImproperlyConfigured(
        "FIELD_ENCRYPTION_KEY must be set in production. "
        "Generate with: python -c 'from cryptography.fernet import Fernet; "
        "print(Fernet.generate_key().decode())'"
    )

if not TRADE_SYNC_CRON_SECRET:
    raise ValueError("TRADE_SYNC_CRON_SECRET must be set in production")

DEBUG = False
ALLOWED_HOSTS = [
    host.strip() for host in os.environ.get("ALLOWED_HOSTS", "").split(",") if host.strip()
] + [
    "localhost",
    "127.0.0.1",
]

CSRF_TRUSTED_ORIGINS = [
    f"https://{host}" for host in ALLOWED_HOSTS if host and host not in ["localhost", "127.0.0.1"]
]

CSRF_COOKIE_SECURE = True
SESSION_COOKIE_SECURE = True

SECURE_PROXY_SSL_HEADER = ("HTTP_X_FORWARDED_PROTO", "https")

SECURE_SSL_REDIRECT = os.environ.get("SECURE_SSL_REDIRECT", "True").lower() == "true"
SECURE_HSTS_SECONDS = int(os.environ.get("SECURE_HSTS_SECONDS", "31536000"))  # 1 year
SECURE_HSTS_INCLUDE_SUBDOMAINS = True
SECURE_HSTS_PRELOAD = True
SECURE_CONTENT_TYPE_NOSNIFF = True
X_FRAME_OPTIONS = "DENY"

CONTAINER_MODE = os.environ.get("CONTAINER_MODE", "false").lower() == "true"

# ================================================================================
# DATABASE CONFIGURATION
# ================================================================================

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.postgresql",
        "NAME": os.environ.get("DB_NAME", "tradejournal"),
        "USER": os.environ.get("DB_USER", "tradejournal"),
        "PASSWORD": os.environ.get("DB_PASSWORD"),
        "HOST": os.environ.get("DB_HOST", "localhost"),
        "PORT": os.environ.get("DB_PORT", "5432"),
        "OPTIONS": {
            "sslmode": "disable" if CONTAINER_MODE else "require",
            "connect_timeout": 10,
            "options": "-c statement_timeout=30000",  # 30s query timeout
        },
        "CONN_MAX_AGE": 60,
    }
}

if not DATABASES["default"]["PASSWORD"]:
    raise ValueError("DB_PASSWORD environment variable must be set in production")

# ================================================================================
# CACHE CONFIGURATION (REDIS)
# ================================================================================

REDIS_URL = os.environ.get("REDIS_URL")
if not REDIS_URL:
    raise ValueError("REDIS_URL environment variable must be set in production")

CACHES = {
    "default": {
        "BACKEND": "django.core.cache.backends.redis.RedisCache",
        "LOCATION": REDIS_URL,
        "KEY_PREFIX": "tradejournal_cache",
        "VERSION": 1,
        "TIMEOUT": 300,
    }
}

# ================================================================================
# CELERY CONFIGURATION (PRODUCTION)
# ================================================================================

CELERY_BROKER_URL = os.environ.get("CELERY_BROKER_URL")
CELERY_RESULT_BACKEND = os.environ.get("CELERY_RESULT_BACKEND")

if not CELERY_BROKER_URL or not CELERY_RESULT_BACKEND:
    raise ValueError("CELERY_BROKER_URL and CELERY_RESULT_BACKEND must be set in production")

CELERY_TASK_ALWAYS_EAGER = False
CELERY_WORKER_PREFETCH_MULTIPLIER = 1
CELERY_WORKER_MAX_TASKS_PER_CHILD = 100

# Sync jobs crawl the exchange day by day; per-task limits live in trading/tasks.py
CELERY_TASK_SOFT_TIME_LIMIT = 300
CELERY_TASK_TIME_LIMIT = 600

# ================================================================================
# STATIC FILES
# ================================================================================

STATIC_ROOT = BASE_DIR / "staticfiles"

# Admin static assets are served by WhiteNoise
MIDDLEWARE.insert(1, "whitenoise.middleware.WhiteNoiseMiddleware")
STORAGES = {
    "default": {"BACKEND": "django.core.files.storage.FileSystemStorage"},
    "staticfiles": {"BACKEND": "whitenoise.storage.CompressedManifestStaticFilesStorage"},
}

# ================================================================================
# LOGGING CONFIGURATION (PRODUCTION)
# ================================================================================

LOGGING = copy.deepcopy(BASE_LOGGING)

if CONTAINER_MODE:
    # Container mode: Log to stdout/stderr only
    LOGGING["handlers"]["console"]["formatter"] = "console_journald"
    LOGGING["handlers"]["console"]["level"] = "INFO"
    for name in ("django", "services", "trading", "accounts", "celery"):
        LOGGING["loggers"][name]["handlers"] = ["console"]
        LOGGING["loggers"][name]["level"] = "INFO"
    LOGGING["root"]["handlers"] = ["console"]
    LOGGING["root"]["level"] = "INFO"
else:
    # Bare-metal mode: Log to files in /var/log/tradejournal
    PRODUCTION_LOG_DIR = Path("/var/log/tradejournal")
    PRODUCTION_LOG_DIR.mkdir(parents=True, exist_ok=True)

    LOGGING["handlers"]["file_structured"]["filename"] = PRODUCTION_LOG_DIR / "application.log"
    LOGGING["handlers"]["file_structured"]["maxBytes"] = 50 * 1024 * 1024
    LOGGING["handlers"]["file_structured"]["backupCount"] = 10

    LOGGING["handlers"]["error_file"]["filename"] = PRODUCTION_LOG_DIR / "errors.log"
    LOGGING["handlers"]["error_file"]["maxBytes"] = 50 * 1024 * 1024
    LOGGING["handlers"]["error_file"]["backupCount"] = 10

    LOGGING["handlers"]["sync_file"]["filename"] = PRODUCTION_LOG_DIR / "sync.log"
    LOGGING["handlers"]["sync_file"]["maxBytes"] = 100 * 1024 * 1024
    LOGGING["handlers"]["sync_file"]["backupCount"] = 20

    LOGGING["loggers"]["django"]["handlers"] = ["file_structured", "error_file"]
    LOGGING["loggers"]["services"]["handlers"] = ["file_structured", "sync_file", "error_file"]
    LOGGING["loggers"]["trading"]["handlers"] = ["file_structured", "sync_file", "error_file"]
    LOGGING["loggers"]["trading"]["level"] = "INFO"
    LOGGING["loggers"]["services"]["level"] = "INFO"

    LOGGING["root"]["handlers"] = ["file_structured", "error_file"]
    LOGGING["root"]["level"] = "WARNING"
