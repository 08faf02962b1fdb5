"""
View decorators for the JSON API.

API endpoints answer unauthenticated requests with a 401 JSON body instead of
redirecting to a login page.
"""

import functools
import hmac

from django.conf import settings
from django.middleware.csrf import CsrfViewMiddleware

from services.api.error_responses import ErrorResponseBuilder
from services.core.logging import get_logger

logger = get_logger(__name__)

BEARER_PREFIX = "Bearer "


def api_login_required(view_func):
    """
    Require a logged-in session user.

    Usage:
        @api_login_required
        @require_http_methods(["POST"])
        def recalculate_pnl(request):
            ...
    """

    @functools.wraps(view_func)
    def wrapper(request, *args, **kwargs):
        if not request.user.is_authenticated:
            return ErrorResponseBuilder.unauthorized()
        return view_func(request, *args, **kwargs)

    return wrapper


def has_cron_secret(request) -> bool:
    """True when the request carries ``Authorization: Bearer <TRADE_SYNC_CRON_SECRET>``."""
    secret = settings.TRADE_SYNC_CRON_SECRET
    header = request.headers.get("Authorization", "")
    if not secret or not header.startswith(BEARER_PREFIX):
        return False
    return hmac.compare_digest(header[len(BEARER_PREFIX) :], secret)


def _csrf_failure(request):
    """Run the CSRF check the middleware skipped for a csrf_exempt view."""
    check = CsrfViewMiddleware(lambda req: None)
    check.process_request(request)
    return check.process_view(request, None, (), {})


def login_or_cron_secret_required(view_func):
    """
    Accept either a session user or the scheduler's shared secret.

    Sets ``request.sync_user`` to the user, or to ``None`` for the scheduled
    (all accounts) mode. Session requests still go through the CSRF check;
    secret-authenticated requests carry no cookies and skip it.
    """

    @functools.wraps(view_func)
    def wrapper(request, *args, **kwargs):
        if request.user.is_authenticated:
            rejected = _csrf_failure(request)
            if rejected is not None:
                return rejected
            request.sync_user = request.user
        elif has_cron_secret(request):
            logger.info("Request authorized with the scheduler secret")
            request.sync_user = None
        else:
            return ErrorResponseBuilder.unauthorized()
        return view_func(request, *args, **kwargs)

    wrapper.csrf_exempt = True
    return wrapper
