import logging
import os
import sys

from celery import Celery
from celery.signals import setup_logging


def _resolve_default_settings_module() -> str:
    """Return the default settings module respecting ENVIRONMENT."""
    env = os.environ.get("ENVIRONMENT")
    if env == "production":
        return "tradejournal.settings.production"
    return "tradejournal.settings.development"


# Ensure Celery loads the correct settings module BEFORE importing Django settings
if (
    not os.environ.get("DJANGO_SETTINGS_MODULE")
    or os.environ["DJANGO_SETTINGS_MODULE"] == "tradejournal.settings"
):
    os.environ["DJANGO_SETTINGS_MODULE"] = _resolve_default_settings_module()

app = Celery("tradejournal")
app.config_from_object("django.conf:settings", namespace="CELERY")

app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    # Exchange crawls are long; keep them off the queue that serves dedup and sweeps
    task_routes={
        "trading.tasks.sync_accounts_task": {"queue": "sync"},
        "trading.tasks.scheduled_sync_task": {"queue": "sync"},
        "trading.tasks.*": {"queue": "trading"},
    },
    worker_prefetch_multiplier=1,
    worker_max_tasks_per_child=100,
    result_expires=3600,
)

app.autodiscover_tasks()


@setup_logging.connect
def config_loggers(*args, **kwargs):
    """Configure Celery logging to match application format."""
    root_logger = logging.getLogger()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.INFO)

    formatter = logging.Formatter(
        "%(asctime)s [%(levelname)-8s] %(name)-30s "
        "PID:%(process)d TID:%(thread)d %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    console_handler.setFormatter(formatter)

    if not any(isinstance(h, logging.StreamHandler) for h in root_logger.handlers):
        root_logger.addHandler(console_handler)

    logging.getLogger("trading").setLevel(logging.INFO)
    logging.getLogger("services").setLevel(logging.INFO)
    logging.getLogger("celery").setLevel(logging.INFO)
