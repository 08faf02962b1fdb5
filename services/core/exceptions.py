"""Custom exception hierarchy for the Trade Journal application.

This module provides domain-specific exceptions for trade sync, job tracking
and trade maintenance. All exceptions include helpful attributes and clear,
user-friendly error messages.

Exception Hierarchy:
    TradeJournalError (base for all custom exceptions)
    ├── JobError (base for background job errors)
    │   ├── JobNotFoundError
    │   └── JobOwnershipError
    ├── SyncError (base for exchange sync errors)
    │   ├── NoExchangeAccountsError
    │   ├── ExchangeAccountNotFoundError
    │   └── ExchangeAPIError
    ├── DataError (base for request/filter data errors)
    │   ├── InvalidTradeFilterError
    │   └── InvalidSyncWindowError
    └── ConfigurationError (base for configuration/setup errors)
        └── MissingExchangeCredentialsError

Usage:
    from services.core.exceptions import JobNotFoundError

    if job is None:
        raise JobNotFoundError(job_id=job_id)
"""

# =============================================================================
# Base Exception
# =============================================================================


class TradeJournalError(Exception):
    """Base exception for all Trade Journal custom exceptions.

    Allows catching all application-specific exceptions with a single except clause.
    """

    pass


# =============================================================================
# Job Exceptions
# =============================================================================


class JobError(TradeJournalError):
    """Base exception for background job tracking errors."""

    pass


class JobNotFoundError(JobError):
    """Raised when a job does not exist or is not owned by the requester.

    Attributes:
        job_id: Identifier that was looked up
    """

    def __init__(self, job_id: str) -> None:
        self.job_id = job_id
        super().__init__(f"Job {job_id} not found")


class JobOwnershipError(JobError):
    """Raised when a job exists but belongs to a different owner.

    Attributes:
        job_id: Identifier that was looked up
    """

    def __init__(self, job_id: str) -> None:
        self.job_id = job_id
        super().__init__("Unauthorized access to job")


# =============================================================================
# Sync Exceptions
# =============================================================================


class SyncError(TradeJournalError):
    """Base exception for exchange synchronization errors."""

    pass


class NoExchangeAccountsError(SyncError):
    """Raised when a user has no exchange accounts to operate on.

    Attributes:
        owner_tag: Owner identity that was resolved
    """

    def __init__(self, owner_tag: str) -> None:
        self.owner_tag = owner_tag
        super().__init__("No accounts found")


class ExchangeAccountNotFoundError(SyncError):
    """Raised when the ingest step cannot load the account it was handed.

    Attributes:
        account_id: Primary key of the missing ExchangeAccount
    """

    def __init__(self, account_id: int) -> None:
        self.account_id = account_id
        super().__init__(f"Exchange account {account_id} not found")


class ExchangeAPIError(SyncError):
    """Raised when the exchange answers with a non-success status.

    Attributes:
        status_code: HTTP status returned by the exchange
        body: Raw response text (exchange error payload)
    """

    def __init__(self, status_code: int, body: str) -> None:
        self.status_code = status_code
        self.body = body
        super().__init__(f"Binance API error: {status_code} - {body}")


# =============================================================================
# Data Exceptions
# =============================================================================


class DataError(TradeJournalError):
    """Base exception for invalid request data."""

    pass


class InvalidTradeFilterError(DataError):
    """Raised when a trade filter (month, dates, market) cannot be parsed.

    Attributes:
        field: Name of the offending field
        value: Value that failed to parse
    """

    def __init__(self, field: str, value, reason: str | None = None) -> None:
        self.field = field
        self.value = value
        detail = f": {reason}" if reason else ""
        super().__init__(f"Invalid {field} '{value}'{detail}")


class InvalidSyncWindowError(DataError):
    """Raised when a sync request carries an unusable date window.

    Attributes:
        start_date: Requested window start
        end_date: Requested window end
    """

    def __init__(self, start_date, end_date, reason: str) -> None:
        self.start_date = start_date
        self.end_date = end_date
        super().__init__(f"Invalid sync window {start_date}..{end_date}: {reason}")


# =============================================================================
# Configuration Exceptions
# =============================================================================


class ConfigurationError(TradeJournalError):
    """Base exception for configuration and setup errors."""

    pass


class MissingExchangeCredentialsError(ConfigurationError):
    """Raised when an exchange account has no stored API key or secret.

    Attributes:
        account_id: Primary key of the ExchangeAccount
    """

    def __init__(self, account_id: int) -> None:
        self.account_id = account_id
        super().__init__(f"Exchange account {account_id} has no API credentials configured")
