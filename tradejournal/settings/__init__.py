"""
Settings module for Trade Journal.

This module should not set DJANGO_SETTINGS_MODULE directly as that's
handled by manage.py, wsgi.py, asgi.py and the Celery app.
"""

# Settings are loaded through explicit module paths:
# - tradejournal.settings.development
# - tradejournal.settings.production
# - tradejournal.settings.test
