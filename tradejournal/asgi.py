"""
ASGI config for tradejournal project.

For more information on this file, see
https://docs.djangoproject.com/en/5.2/howto/deployment/asgi/
"""

import faulthandler
import os
import sys

faulthandler.enable(file=sys.stderr, all_threads=True)

from django.core.asgi import get_asgi_application  # noqa: E402

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "tradejournal.settings.development")

application = get_asgi_application()
