"""
Sync orchestration: start a background sync job and drive it to completion.

``start_sync`` runs in the request: it validates the window, resolves the
accounts, persists the initial job state and enqueues the Celery task.
``SyncOrchestrator.run`` runs in the worker and ingests each account in turn.
A failing account is recorded in the job result and the remaining accounts
still run.
"""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import date, timedelta

from django.conf import settings
from django.utils import timezone

from asgiref.sync import sync_to_async

from accounts.models import ExchangeAccount
from services.core.constants import SYSTEM_OWNER_TAG
from services.core.exceptions import InvalidSyncWindowError, InvalidTradeFilterError
from services.core.logging import get_logger
from services.jobs.registry import complete_job, start_job

logger = get_logger(__name__)

IngestFn = Callable[..., Awaitable[dict]]


@dataclass
class SyncWindow:
    """Validated sync parameters."""

    start_date: date
    end_date: date
    symbols: list[str]

    @classmethod
    def from_request_data(cls, data: dict, today: date | None = None) -> "SyncWindow":
        """
        Parse ``startDate``/``endDate``/``symbols`` from a request body.

        Missing dates default to the trailing ``TRADE_SYNC_DEFAULT_WINDOW_DAYS``
        ending today (UTC); missing symbols default to
        ``TRADE_SYNC_DEFAULT_SYMBOLS``.
        """
        today = today or timezone.now().date()
        start_raw = data.get("startDate")
        end_raw = data.get("endDate")

        try:
            start_date = (
                date.fromisoformat(str(start_raw))
                if start_raw
                else today - timedelta(days=settings.TRADE_SYNC_DEFAULT_WINDOW_DAYS)
            )
            end_date = date.fromisoformat(str(end_raw)) if end_raw else today
        except ValueError as e:
            raise InvalidSyncWindowError(start_raw, end_raw, "dates must be YYYY-MM-DD") from e

        if start_date > end_date:
            raise InvalidSyncWindowError(start_date, end_date, "startDate is after endDate")

        symbols = data.get("symbols")
        if symbols is None:
            symbols = list(settings.TRADE_SYNC_DEFAULT_SYMBOLS)
        elif not isinstance(symbols, list) or not all(isinstance(s, str) for s in symbols):
            raise InvalidTradeFilterError("symbols", symbols, "expected a list of symbols")
        else:
            symbols = [s.strip().upper() for s in symbols if s.strip()]
            if not symbols:
                raise InvalidTradeFilterError("symbols", data.get("symbols"), "list is empty")

        return cls(start_date=start_date, end_date=end_date, symbols=symbols)

    def to_task_kwargs(self) -> dict:
        return {
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
            "symbols": self.symbols,
        }


@dataclass
class AccountSyncResult:
    account_id: int
    name: str
    inserted: int = 0
    updated: int = 0
    error: str | None = None

    def to_dict(self) -> dict:
        data = {
            "accountId": self.account_id,
            "name": self.name,
            "inserted": self.inserted,
            "updated": self.updated,
        }
        if self.error is not None:
            data["error"] = self.error
        return data


@dataclass
class SyncSummary:
    accounts: list[AccountSyncResult] = field(default_factory=list)

    @property
    def inserted(self) -> int:
        return sum(r.inserted for r in self.accounts)

    @property
    def updated(self) -> int:
        return sum(r.updated for r in self.accounts)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.accounts if r.error is not None)

    def to_job_result(self) -> dict:
        return {
            "inserted": self.inserted,
            "updated": self.updated,
            "accounts": [r.to_dict() for r in self.accounts],
        }


def resolve_accounts(user=None) -> list[ExchangeAccount]:
    """Active accounts of ``user``, or every active account when ``user`` is None."""
    accounts = ExchangeAccount.objects.filter(is_active=True)
    if user is not None:
        accounts = accounts.filter(user=user)
    return list(accounts.order_by("created_at", "pk"))


class SyncOrchestrator:
    """
    Runs a sync job over a list of accounts.

    Usage:
        orchestrator = SyncOrchestrator()
        summary = await orchestrator.run(job_id, owner_tag, accounts, window)
    """

    def __init__(self, ingest: IngestFn | None = None) -> None:
        if ingest is None:
            from services.exchanges.binance import sync_account

            ingest = sync_account
        self.ingest = ingest

    async def run(
        self,
        job_id: str,
        owner_tag: str,
        accounts: list[tuple[int, str]],
        window: SyncWindow,
        credential_header: str | None = None,
    ) -> SyncSummary:
        """Ingest ``accounts`` (``(pk, name)`` pairs) sequentially and complete the job."""
        summary = SyncSummary()

        for account_id, name in accounts:
            try:
                counts = await self.ingest(
                    account_id,
                    window.start_date,
                    window.end_date,
                    window.symbols,
                    credential_header,
                    job_id,
                    owner_tag,
                )
                summary.accounts.append(
                    AccountSyncResult(
                        account_id=account_id,
                        name=name,
                        inserted=counts.get("inserted", 0),
                        updated=counts.get("updated", 0),
                    )
                )
            except Exception as e:
                logger.error(f"Sync of account {account_id} in job {job_id} failed: {e}", exc_info=True)
                summary.accounts.append(
                    AccountSyncResult(account_id=account_id, name=name, error=str(e))
                )

        message = f"Sync of {len(accounts)} account(s) completed!"
        if summary.failed:
            message += f" {summary.failed} failed."
        await sync_to_async(complete_job)(job_id, owner_tag, message, summary.to_job_result())

        logger.info(
            f"Job {job_id}: {summary.inserted} inserted, {summary.updated} updated, "
            f"{summary.failed} account failures"
        )
        return summary


def start_sync(user, data: dict, credential_header: str | None = None) -> dict:
    """
    Validate a sync request and enqueue it; returns the response payload.

    ``user=None`` is the scheduled mode covering every active account.
    ``credential_header`` is the caller's ``Authorization`` header. It is put in
    the task message only when ``BINANCE_PROXY_URL`` is configured.
    """
    from trading.tasks import sync_accounts_task

    window = SyncWindow.from_request_data(data)
    accounts = resolve_accounts(user)
    if not accounts:
        return {"ok": True, "message": "No accounts found", "results": []}

    owner_tag = user.owner_tag if user is not None else SYSTEM_OWNER_TAG
    job_id = start_job(owner_tag, message="Starting sync...")

    # Only the exchange proxy reads the header
    if not settings.BINANCE_PROXY_URL:
        credential_header = None

    sync_accounts_task.delay(
        job_id=job_id,
        owner_tag=owner_tag,
        account_ids=[account.pk for account in accounts],
        credential_header=credential_header,
        **window.to_task_kwargs(),
    )
    logger.info(
        f"Queued sync job {job_id} for {len(accounts)} accounts "
        f"{window.start_date}..{window.end_date} {window.symbols}"
    )
    return {
        "ok": True,
        "message": "Sync started",
        "jobId": job_id,
        "timestamp": timezone.now().isoformat(),
    }
