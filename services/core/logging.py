"""
Structured logging configuration for Trade Journal.

This module provides logging setup for development and production
environments, with handlers, formatters, and loggers for all application components.
"""

import copy
import logging
import re
from pathlib import Path

# Get the base directory for log files (project root, not services/)
BASE_DIR = Path(__file__).resolve().parent.parent.parent
LOGS_DIR = BASE_DIR / "logs"


class SensitiveDataFilter(logging.Filter):
    """
    Logging filter that redacts sensitive information from log messages.

    Exchange API keys and secrets, request signatures and bearer credentials
    forwarded to the exchange proxy are replaced with redacted placeholders.
    """

    def __init__(self):
        super().__init__()
        self.patterns = [
            # Bearer credentials (forwarded Authorization headers, cron secret)
            (re.compile(r"(bearer\s+)[a-zA-Z0-9\-._~+/]+=*", re.IGNORECASE), r"\1[REDACTED_TOKEN]"),
            # Exchange API keys and secrets
            (
                re.compile(r"(api[_-]?key[\"']?\s*[:=]\s*[\"']?)([^\"'\s,}]+)", re.IGNORECASE),
                r"\1[REDACTED_API_KEY]",
            ),
            (
                re.compile(r"(api[_-]?secret[\"']?\s*[:=]\s*[\"']?)([^\"'\s,}]+)", re.IGNORECASE),
                r"\1[REDACTED_SECRET]",
            ),
            (
                re.compile(r"(x-mbx-apikey[\"']?\s*[:=]\s*[\"']?)([^\"'\s,}]+)", re.IGNORECASE),
                r"\1[REDACTED_API_KEY]",
            ),
            # HMAC request signatures in query strings
            (re.compile(r"(signature=)[a-fA-F0-9]+", re.IGNORECASE), r"\1[REDACTED_SIGNATURE]"),
            # Passwords
            (
                re.compile(r"(password[\"']?\s*[:=]\s*[\"']?)([^\"'\s,}]+)", re.IGNORECASE),
                r"\1[REDACTED_PASSWORD]",
            ),
        ]

    def _redact(self, value: str) -> str:
        for pattern, replacement in self.patterns:
            value = pattern.sub(replacement, value)
        return value

    def filter(self, record):
        """
        Filter log record to redact sensitive information.

        Args:
            record: LogRecord instance to filter

        Returns:
            bool: True to allow the record to be logged, False to suppress it
        """
        if hasattr(record, "msg"):
            record.msg = self._redact(str(record.msg))

        if hasattr(record, "args") and record.args:
            if isinstance(record.args, dict):
                # Preserve non-string types (floats, ints, etc.)
                record.args = {
                    key: self._redact(value) if isinstance(value, str) else value
                    for key, value in record.args.items()
                }
            elif isinstance(record.args, (list, tuple)):
                filtered_args = [
                    self._redact(arg) if isinstance(arg, str) else arg for arg in record.args
                ]
                record.args = (
                    tuple(filtered_args) if isinstance(record.args, tuple) else filtered_args
                )

        return True  # Always allow the record through (just with redacted content)


# Base logging configuration
LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "filters": {
        "sensitive_data": {
            "()": "services.core.logging.SensitiveDataFilter",
        }
    },
    "formatters": {
        "verbose": {
            "format": "{levelname} {asctime} {module} {process:d} {thread:d} {message}",
            "style": "{",
        },
        "console_dev": {
            "format": "{asctime} {levelname:8} {name:20} {message}",
            "style": "{",
            "datefmt": "%H:%M:%S",
        },
        "console_journald": {
            "format": "[{levelname:8}] {name:30} {message}",
            "style": "{",
        },
        "structured": {
            "format": (
                "{asctime} [{levelname:8}] {name:30} PID:{process:5} TID:{thread:8} {message}"
            ),
            "style": "{",
            "datefmt": "%Y-%m-%d %H:%M:%S",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "level": "DEBUG",
            "formatter": "console_dev",
            "filters": ["sensitive_data"],
        },
        "file_structured": {
            "class": "logging.handlers.RotatingFileHandler",
            "level": "DEBUG",
            "formatter": "structured",
            "filename": LOGS_DIR / "application.log",
            "maxBytes": 10 * 1024 * 1024,  # 10MB
            "backupCount": 5,
            "filters": ["sensitive_data"],
            "delay": True,
        },
        "error_file": {
            "class": "logging.handlers.RotatingFileHandler",
            "level": "ERROR",
            "formatter": "verbose",
            "filename": LOGS_DIR / "errors.log",
            "maxBytes": 10 * 1024 * 1024,  # 10MB
            "backupCount": 5,
            "filters": ["sensitive_data"],
            "delay": True,
        },
        "sync_file": {
            "class": "logging.handlers.RotatingFileHandler",
            "level": "DEBUG",
            "formatter": "structured",
            "filename": LOGS_DIR / "sync.log",
            "maxBytes": 50 * 1024 * 1024,  # 50MB
            "backupCount": 10,
            "filters": ["sensitive_data"],
            "delay": True,
        },
    },
    "root": {
        "level": "INFO",
        "handlers": ["console", "file_structured"],
    },
    "loggers": {
        "django": {
            "handlers": ["console", "file_structured"],
            "level": "INFO",
            "propagate": False,
        },
        "django.request": {
            "handlers": ["console", "file_structured", "error_file"],
            "level": "WARNING",
            "propagate": False,
        },
        "django.db.backends": {
            "handlers": ["console", "file_structured"],
            "level": "WARNING",  # Set to DEBUG to see SQL queries
            "propagate": False,
        },
        # Application-specific loggers
        "services": {
            "handlers": ["console", "file_structured", "sync_file"],
            "level": "DEBUG",
            "propagate": False,
        },
        "trading": {
            "handlers": ["console", "file_structured", "sync_file"],
            "level": "DEBUG",
            "propagate": False,
        },
        "accounts": {
            "handlers": ["console", "file_structured"],
            "level": "DEBUG",
            "propagate": False,
        },
        "celery": {
            "handlers": ["console", "file_structured"],
            "level": "INFO",
            "propagate": False,
        },
        # HTTP client library logging
        "httpcore": {
            "handlers": ["console", "file_structured"],
            "level": "WARNING",  # Suppress verbose HTTP connection logs
            "propagate": False,
        },
        "httpx": {
            "handlers": ["console", "file_structured"],
            "level": "WARNING",  # Request URLs carry signatures
            "propagate": False,
        },
    },
}


def get_development_logging():
    """Get logging configuration optimized for development."""
    LOGS_DIR.mkdir(exist_ok=True)
    config = copy.deepcopy(LOGGING)

    config["handlers"]["console"]["level"] = "DEBUG"
    config["root"]["level"] = "DEBUG"

    return config


def get_logger(name: str):
    """
    Factory function for consistent logger creation.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured logger instance
    """
    return logging.getLogger(name)
