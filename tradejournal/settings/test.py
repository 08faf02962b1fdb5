"""
Test settings for the Trade Journal application.

In-memory SQLite, local-memory cache and eager Celery so the suite runs
without Redis or Postgres.
"""

import os

if "FIELD_ENCRYPTION_KEY" not in os.environ:
    from cryptography.fernet import Fernet

    os.environ["FIELD_ENCRYPTION_KEY"] = Fernet.generate_key().decode()

from .base import *  # noqa: F403

SECRET_KEY = "test-secret-key-not-for-production"  # noqa: S105
DEBUG = False
ALLOWED_HOSTS = ["testserver", "localhost", "127.0.0.1"]

FIELD_ENCRYPTION_KEY = os.environ["FIELD_ENCRYPTION_KEY"]

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
    }
}

CACHES = {
    "default": {
        "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
    }
}

CELERY_BROKER_URL = "memory://"
CELERY_RESULT_BACKEND = "cache+memory://"
CELERY_TASK_ALWAYS_EAGER = True
CELERY_TASK_EAGER_PROPAGATES = True

PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]

TRADE_SYNC_CRON_SECRET = "test-cron-secret"  # noqa: S105
TRADE_SYNC_DEFAULT_SYMBOLS = ["BTCBRL", "ETHBRL", "BNBBRL"]
