"""
Development settings for the Trade Journal application.

This configuration is optimized for local development with debugging enabled
and relaxed security for easier development.
"""

import logging.config
import os

# Ensure encrypted fields work in local environments even if developers
# forget to provision a FIELD_ENCRYPTION_KEY. Production must still set
# this explicitly via environment variables.
if "FIELD_ENCRYPTION_KEY" not in os.environ:
    DEFAULT_DEV_FIELD_ENCRYPTION_KEY = os.environ.get(
        "DEFAULT_DEV_FIELD_ENCRYPTION_KEY",
        "Zl0bJ8Wq3mH4Cq2tVq5m3bX9u1aK7pR2yE6dN0sT4fI=",
    )
    os.environ["FIELD_ENCRYPTION_KEY"] = DEFAULT_DEV_FIELD_ENCRYPTION_KEY

from .base import *  # noqa: F403

# ================================================================================
# DEVELOPMENT SETTINGS
# ================================================================================

# SECURITY WARNING: keep the secret key used in production secret!
SECRET_KEY = os.environ.get(
    "SECRET_KEY", "django-insecure-p3w!t9r#dev-only-k2v8x$q7m1z@4b6n0c5l&j"
)

# SECURITY WARNING: don't run with debug turned on in production!
DEBUG = os.environ.get("DEBUG", "True").lower() in ("true", "1", "yes", "on")

_default_hosts = "127.0.0.1,localhost,testserver"
_allowed_hosts_raw = os.environ.get("ALLOWED_HOSTS")
if _allowed_hosts_raw and _allowed_hosts_raw.strip():
    ALLOWED_HOSTS = [h.strip() for h in _allowed_hosts_raw.split(",") if h.strip()]
else:
    ALLOWED_HOSTS = [h.strip() for h in _default_hosts.split(",") if h.strip()]

# ================================================================================
# DATABASE CONFIGURATION (DEVELOPMENT)
# ================================================================================

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": BASE_DIR / "db.sqlite3",
    }
}

# ================================================================================
# CACHE CONFIGURATION (DEVELOPMENT)
# ================================================================================

REDIS_URL = os.environ.get("REDIS_URL", "redis://127.0.0.1:6379/1")

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
# CELERY CONFIGURATION (DEVELOPMENT)
# ================================================================================

CELERY_BROKER_URL = os.environ.get("CELERY_BROKER_URL", "redis://127.0.0.1:6379/2")
CELERY_RESULT_BACKEND = os.environ.get("CELERY_RESULT_BACKEND", "redis://127.0.0.1:6379/3")

CELERY_TASK_ALWAYS_EAGER = os.environ.get("CELERY_TASK_ALWAYS_EAGER", "False").lower() == "true"
CELERY_WORKER_PREFETCH_MULTIPLIER = 1
CELERY_WORKER_MAX_TASKS_PER_CHILD = 50

# Task time limits (more generous for development)
CELERY_TASK_SOFT_TIME_LIMIT = 1800
CELERY_TASK_TIME_LIMIT = 3600

# ================================================================================
# DEVELOPMENT LOGGING
# ================================================================================

from services.core.logging import get_development_logging  # noqa: E402

LOGGING = get_development_logging()
logging.config.dictConfig(LOGGING)

# ================================================================================
# STATIC FILES (DEVELOPMENT)
# ================================================================================

STATIC_ROOT = BASE_DIR / "staticfiles"
