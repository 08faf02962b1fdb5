"""
Base settings for the Trade Journal application.

This contains common configuration shared between development, test and production.
"""

import os
from pathlib import Path

from celery.schedules import crontab

# Build paths inside the project like this: BASE_DIR / 'subdir'.
BASE_DIR = Path(__file__).resolve().parent.parent.parent

# ================================================================================
# APPLICATION DEFINITION
# ================================================================================

INSTALLED_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    # Third-party apps
    "encrypted_model_fields",
    # Local apps
    "accounts",
    "trading",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]

ROOT_URLCONF = "tradejournal.urls"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.debug",
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
            ],
        },
    },
]

WSGI_APPLICATION = "tradejournal.wsgi.application"
ASGI_APPLICATION = "tradejournal.asgi.application"

# ================================================================================
# AUTHENTICATION AND AUTHORIZATION
# ================================================================================

AUTH_USER_MODEL = "accounts.User"

AUTH_PASSWORD_VALIDATORS = [
    {
        "NAME": ("django.contrib.auth.password_validation.UserAttributeSimilarityValidator"),
    },
    {
        "NAME": "django.contrib.auth.password_validation.MinimumLengthValidator",
        "OPTIONS": {
            "min_length": 8,
        },
    },
    {
        "NAME": "django.contrib.auth.password_validation.CommonPasswordValidator",
    },
    {
        "NAME": "django.contrib.auth.password_validation.NumericPasswordValidator",
    },
]

# ================================================================================
# INTERNATIONALIZATION
# ================================================================================

LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# ================================================================================
# STATIC FILES
# ================================================================================

STATIC_URL = "/static/"

# ================================================================================
# ENCRYPTED FIELDS CONFIGURATION
# ================================================================================

# Exchange API keys/secrets are stored with EncryptedTextField.
# This will be overridden in specific environments
FIELD_ENCRYPTION_KEY = os.environ.get("FIELD_ENCRYPTION_KEY")

# ================================================================================
# DEFAULT CELERY SETTINGS (will be overridden in production)
# ================================================================================

CELERY_TASK_SERIALIZER = "json"
CELERY_ACCEPT_CONTENT = ["json"]
CELERY_RESULT_SERIALIZER = "json"
CELERY_TIMEZONE = "UTC"
CELERY_ENABLE_UTC = True

CELERY_BEAT_SCHEDULE = {
    # Scheduled sync of every account (system-owned job)
    "sync-all-accounts-daily": {
        "task": "trading.tasks.scheduled_sync_task",
        "schedule": crontab(hour=3, minute=0),  # Daily at 03:00 UTC
    },
    # Force-fail jobs that stopped reporting progress
    "fail-stuck-jobs": {
        "task": "trading.tasks.fail_stuck_jobs_task",
        "schedule": crontab(minute="*/10"),  # Every 10 min
    },
    # Job retention
    "purge-finished-jobs": {
        "task": "trading.tasks.purge_finished_jobs_task",
        "schedule": crontab(hour=4, minute=30),  # Daily at 04:30 UTC
    },
}

# ================================================================================
# TRADE SYNC SETTINGS
# ================================================================================

# Symbols fetched when a sync request does not name any
TRADE_SYNC_DEFAULT_SYMBOLS = [
    s.strip()
    for s in os.environ.get("TRADE_SYNC_DEFAULT_SYMBOLS", "BTCBRL,ETHBRL,BNBBRL").split(",")
    if s.strip()
]

# Trailing window (days) used when a sync request has no dates
TRADE_SYNC_DEFAULT_WINDOW_DAYS = int(os.environ.get("TRADE_SYNC_DEFAULT_WINDOW_DAYS", "7"))

# Shared secret for scheduled/system sync calls (Authorization: Bearer <secret>)
TRADE_SYNC_CRON_SECRET = os.environ.get("TRADE_SYNC_CRON_SECRET", "")

# Running jobs with no progress update for this long are force-failed
STUCK_JOB_THRESHOLD_MINUTES = 30

# Finished jobs older than this are purged
SYNC_JOB_RETENTION_DAYS = int(os.environ.get("SYNC_JOB_RETENTION_DAYS", "7"))

# ================================================================================
# EXCHANGE API SETTINGS
# ================================================================================

BINANCE_SPOT_BASE_URL = os.environ.get("BINANCE_SPOT_BASE_URL", "https://api.binance.com")
BINANCE_FUTURES_BASE_URL = os.environ.get("BINANCE_FUTURES_BASE_URL", "https://fapi.binance.com")
# Optional proxy that fetches trades on the caller's behalf. When set, the caller's
# Authorization header (the cron secret in scheduled mode) travels in the Celery
# message through the broker and is sent to the proxy. Unset, it is never enqueued.
BINANCE_PROXY_URL = os.environ.get("BINANCE_PROXY_URL", "")
BINANCE_RECV_WINDOW = 5000
BINANCE_TRADES_LIMIT = 1000
