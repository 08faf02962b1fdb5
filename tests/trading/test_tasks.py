"""Tests for the Celery job tasks (run eagerly in the test settings)."""

from datetime import UTC, date, datetime, timedelta
from unittest.mock import AsyncMock, patch

from django.utils import timezone

import pytest

from services.jobs.registry import JobState, get_progress, set_progress, start_job
from trading.models import SyncJob, Trade
from trading.tasks import (
    deduplicate_trades_task,
    fail_stuck_jobs_task,
    purge_finished_jobs_task,
    scheduled_sync_task,
    sync_accounts_task,
)


@pytest.mark.django_db
class TestSyncAccountsTask:
    def run_task(self, job_id, account_ids):
        return sync_accounts_task.apply(
            kwargs={
                "job_id": job_id,
                "owner_tag": "1",
                "account_ids": account_ids,
                "start_date": "2024-01-01",
                "end_date": "2024-01-02",
                "symbols": ["BTCBRL"],
                "credential_header": "Bearer user-token",
            }
        ).get()

    def test_completes_job(self, exchange_account):
        job_id = start_job("1")
        ingest = AsyncMock(return_value={"inserted": 3, "updated": 1})

        with patch("services.exchanges.binance.sync_account", ingest):
            result = self.run_task(job_id, [exchange_account.pk])

        assert result["status"] == "success"
        assert result["inserted"] == 3
        ingest.assert_awaited_once_with(
            exchange_account.pk,
            date(2024, 1, 1),
            date(2024, 1, 2),
            ["BTCBRL"],
            "Bearer user-token",
            job_id,
            "1",
        )

        state = get_progress(job_id)
        assert state.status == "completed"
        assert state.message == "Sync of 1 account(s) completed!"
        assert state.result == {
            "inserted": 3,
            "updated": 1,
            "accounts": [
                {
                    "accountId": exchange_account.pk,
                    "name": "Main Binance",
                    "inserted": 3,
                    "updated": 1,
                }
            ],
        }

    def test_account_failure_is_recorded(self, exchange_account):
        job_id = start_job("1")
        ingest = AsyncMock(side_effect=RuntimeError("exchange down"))

        with patch("services.exchanges.binance.sync_account", ingest):
            result = self.run_task(job_id, [exchange_account.pk])

        assert result["accounts_failed"] == 1
        state = get_progress(job_id)
        assert state.status == "completed"
        assert state.result["accounts"][0]["error"] == "exchange down"

    def test_unexpected_error_fails_job(self, exchange_account):
        job_id = start_job("1")

        with patch(
            "services.sync.orchestrator.SyncOrchestrator.run",
            AsyncMock(side_effect=RuntimeError("boom")),
        ):
            result = self.run_task(job_id, [exchange_account.pk])

        assert result == {"status": "failed", "job_id": job_id, "error": "boom"}
        state = get_progress(job_id)
        assert state.status == "error"
        assert state.error == "boom"
        assert state.message == "Sync failed"


@pytest.mark.django_db
class TestDeduplicateTradesTask:
    def test_removes_duplicates(self, make_trade, exchange_account):
        make_trade(trade_id="dup")
        make_trade(trade_id="dup")
        job_id = start_job("1", total_steps=2)

        result = deduplicate_trades_task.apply(
            kwargs={
                "job_id": job_id,
                "owner_tag": "1",
                "account_ids": [exchange_account.pk],
                "trade_filter": {"month": "2024-01"},
            }
        ).get()

        assert result["deleted"] == 1
        assert Trade.objects.count() == 1
        state = get_progress(job_id)
        assert state.status == "completed"
        assert state.result == {"inserted": 0, "updated": 1}

    def test_failure_marks_job_error(self, exchange_account):
        job_id = start_job("1", total_steps=2)

        with patch(
            "services.trades.deduplication.run_deduplication_job",
            side_effect=RuntimeError("db gone"),
        ):
            result = deduplicate_trades_task.apply(
                kwargs={
                    "job_id": job_id,
                    "owner_tag": "1",
                    "account_ids": [exchange_account.pk],
                    "trade_filter": {},
                }
            ).get()

        assert result["status"] == "failed"
        assert get_progress(job_id).status == "error"


@pytest.mark.django_db
def test_scheduled_sync_runs_in_system_mode(exchange_account):
    with patch("trading.tasks.sync_accounts_task.delay") as mock_delay:
        response = scheduled_sync_task.apply().get()

    assert response["message"] == "Sync started"
    assert mock_delay.call_args.kwargs["owner_tag"] == "system"


@pytest.mark.django_db
def test_fail_stuck_jobs_covers_every_owner():
    for job_id, owner in (("a", "1"), ("b", "2")):
        set_progress(job_id, JobState(owner_tag=owner))
    SyncJob.objects.update(updated_at=timezone.now() - timedelta(hours=1))

    result = fail_stuck_jobs_task.apply().get()

    assert result == {"status": "success", "stuck_jobs": 2, "updated": 2}
    assert set(SyncJob.objects.values_list("status", flat=True)) == {"error"}


@pytest.mark.django_db
def test_purge_finished_jobs(settings):
    settings.SYNC_JOB_RETENTION_DAYS = 7
    set_progress("old-done", JobState(owner_tag="1", status="completed"))
    set_progress("old-running", JobState(owner_tag="1"))
    set_progress("new-done", JobState(owner_tag="1", status="completed"))
    SyncJob.objects.filter(job_id__startswith="old").update(
        updated_at=datetime(2024, 1, 1, tzinfo=UTC)
    )

    result = purge_finished_jobs_task.apply().get()

    assert result == {"status": "success", "deleted": 1}
    assert sorted(SyncJob.objects.values_list("job_id", flat=True)) == ["new-done", "old-running"]

