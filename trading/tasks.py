"""
Trading Tasks - Celery background tasks for trade sync and maintenance jobs.

Sync and deduplication tasks are enqueued by the API with a job id that was
already persisted; their outcome is only visible through job polling. None of
the job tasks retry automatically.
"""

from datetime import date

from asgiref.sync import sync_to_async
from celery import shared_task

from accounts.models import ExchangeAccount
from services.core.logging import get_logger
from services.core.utils.async_utils import run_async
from services.jobs.registry import fail_job
from services.monitoring.task_metrics import monitor_task

logger = get_logger(__name__)


@shared_task(
    bind=True,
    soft_time_limit=3300,  # 55 minutes
    time_limit=3600,  # 1 hour hard limit
)
@monitor_task
def sync_accounts_task(
    self,
    job_id: str,
    owner_tag: str,
    account_ids: list[int],
    start_date: str,
    end_date: str,
    symbols: list[str],
    credential_header: str | None = None,
):
    """
    Pull exchange trades for each account and complete the job.

    Per-account failures are recorded in the job result; anything escaping the
    orchestrator marks the whole job as ``error``.
    """
    try:
        return run_async(
            _async_sync_accounts(
                job_id, owner_tag, account_ids, start_date, end_date, symbols, credential_header
            )
        )
    except Exception as e:
        logger.error(f"Sync job {job_id} failed: {e}", exc_info=True)
        fail_job(job_id, owner_tag, error=str(e), message="Sync failed")
        return {"status": "failed", "job_id": job_id, "error": str(e)}


async def _async_sync_accounts(
    job_id, owner_tag, account_ids, start_date, end_date, symbols, credential_header
):
    """Async implementation of the account sync task."""
    from services.sync.orchestrator import SyncOrchestrator, SyncWindow

    accounts = await sync_to_async(list)(
        ExchangeAccount.objects.filter(pk__in=account_ids)
        .order_by("created_at", "pk")
        .values_list("pk", "name")
    )
    window = SyncWindow(
        start_date=date.fromisoformat(start_date),
        end_date=date.fromisoformat(end_date),
        symbols=symbols,
    )

    summary = await SyncOrchestrator().run(
        job_id, owner_tag, accounts, window, credential_header=credential_header
    )
    return {
        "status": "success",
        "job_id": job_id,
        "accounts_processed": len(summary.accounts),
        "accounts_failed": summary.failed,
        "inserted": summary.inserted,
        "updated": summary.updated,
    }


@shared_task(
    bind=True,
    soft_time_limit=600,  # 10 minutes
    time_limit=900,  # 15 minutes hard limit
)
@monitor_task
def deduplicate_trades_task(
    self, job_id: str, owner_tag: str, account_ids: list[int], trade_filter: dict
):
    """Remove duplicate trades for a user's accounts under a job."""
    from services.trades.deduplication import run_deduplication_job
    from services.trades.filters import TradeFilter

    try:
        result = run_deduplication_job(
            job_id, owner_tag, account_ids, TradeFilter.from_request_data(trade_filter)
        )
    except Exception as e:
        logger.error(f"Deduplication job {job_id} failed: {e}", exc_info=True)
        fail_job(job_id, owner_tag, error=str(e), message="Duplicate removal failed")
        return {"status": "failed", "job_id": job_id, "error": str(e)}

    return {
        "status": "success",
        "job_id": job_id,
        "duplicates_found": result.duplicates_found,
        "deleted": result.deleted,
    }


@shared_task
@monitor_task
def scheduled_sync_task():
    """
    Daily sync of every active account over the default window.

    Runs via Celery Beat under the system owner.
    """
    from services.sync.orchestrator import start_sync

    response = start_sync(None, {})
    logger.info(f"Scheduled sync: {response['message']} ({response.get('jobId', 'no job')})")
    return response


@shared_task
@monitor_task
def fail_stuck_jobs_task():
    """Mark running jobs of every owner that stopped reporting progress as failed."""
    from services.jobs.monitor import scan_stuck_jobs

    scan = scan_stuck_jobs(owner_tag=None)
    return {"status": "success", "stuck_jobs": len(scan.jobs), "updated": scan.updated}


@shared_task
@monitor_task
def purge_finished_jobs_task():
    """Delete finished jobs past the retention window."""
    from services.jobs.registry import purge_finished_jobs

    deleted = purge_finished_jobs()
    return {"status": "success", "deleted": deleted}
