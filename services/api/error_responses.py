"""Standardized error response builder for API views.

Consolidates duplicate error response patterns across API endpoints.
Ensures consistent error handling, logging, and user-facing messages.
"""

from typing import ClassVar

from django.core.exceptions import PermissionDenied, ValidationError
from django.http import JsonResponse

from services.core.logging import get_logger

logger = get_logger(__name__)


def _get_exception_mapping():
    """Lazy-load exception classes to avoid circular imports."""
    from json import JSONDecodeError

    from django.core.exceptions import ObjectDoesNotExist

    from services.core.exceptions import (
        DataError,
        ExchangeAPIError,
        JobNotFoundError,
        JobOwnershipError,
        NoExchangeAccountsError,
    )

    return {
        # Django exceptions
        ObjectDoesNotExist: (404, "Resource not found"),
        ValidationError: (400, "Invalid request data"),
        PermissionDenied: (403, "Access denied"),
        # Domain exceptions
        JobNotFoundError: (404, "Job not found"),
        JobOwnershipError: (403, "Access denied"),
        NoExchangeAccountsError: (404, "No accounts found"),
        DataError: (400, "Invalid request data"),
        ExchangeAPIError: (502, "Exchange request failed"),
        # Generic exceptions
        JSONDecodeError: (400, "Invalid JSON in request body"),
        ValueError: (400, "Invalid value provided"),
        TypeError: (400, "Invalid type provided"),
    }


class ErrorResponseBuilder:
    """Build consistent error responses for API endpoints.

    Centralizes exception-to-response mapping, logging, and error message formatting.
    All error responses follow the pattern: {"success": False, "error": "..."}
    5xx responses also carry "message" with the underlying error text.
    """

    _exception_map: ClassVar[dict | None] = None

    @classmethod
    def _get_map(cls):
        """Get or initialize exception map with lazy loading."""
        if cls._exception_map is None:
            cls._exception_map = _get_exception_mapping()
        return cls._exception_map

    @classmethod
    def from_exception(
        cls,
        exc: Exception,
        context: str | None = None,
        log_level: str = "error",
        include_details: bool = True,
    ) -> JsonResponse:
        """Build error response from exception.

        Args:
            exc: Exception that occurred
            context: Additional context for logging (e.g., user_id, action)
            log_level: 'error', 'warning', or 'info' (default: 'error')
            include_details: Whether to include exception details in the response.
                4xx responses replace the generic error with the exception text;
                5xx responses keep the generic error and add the text as "message".

        Returns:
            JsonResponse with appropriate status code and user-safe message

        Example:
            try:
                deleted = delete_trades(user, trade_filter)
            except Exception as e:
                return ErrorResponseBuilder.from_exception(e, context=f"delete_trades user={uid}")
        """
        exc_name = exc.__class__.__name__

        log_msg = f"Exception in {context}: {exc_name}: {exc}" if context else f"{exc_name}: {exc}"

        if log_level == "error":
            logger.error(log_msg, exc_info=True)
        elif log_level == "warning":
            logger.warning(log_msg)
        else:
            logger.info(log_msg)

        exception_map = cls._get_map()
        status_code, base_message = None, None

        for exc_class, (code, msg) in exception_map.items():
            if isinstance(exc, exc_class):
                status_code, base_message = code, msg
                break

        if status_code is None:
            status_code, base_message = 500, "Internal server error"

        response_data = {"success": False, "error": base_message}

        if include_details:
            if 400 <= status_code < 500:
                response_data["error"] = str(exc)
            else:
                response_data["message"] = str(exc)

        return JsonResponse(response_data, status=status_code)

    @classmethod
    def validation_error(cls, message: str, field: str | None = None) -> JsonResponse:
        """Quick validation error response (400).

        Example:
            if not job_id:
                return ErrorResponseBuilder.validation_error("jobId is required", field="jobId")
        """
        data = {"success": False, "error": message}
        if field:
            data["field"] = field
        return JsonResponse(data, status=400)

    @classmethod
    def unauthorized(cls, message: str = "Unauthorized") -> JsonResponse:
        """Quick 401 response for requests without a resolvable identity."""
        return JsonResponse({"success": False, "error": message}, status=401)
