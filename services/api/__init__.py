"""API utilities and helpers for view endpoints."""

from services.api.error_responses import ErrorResponseBuilder

__all__ = ["ErrorResponseBuilder"]
