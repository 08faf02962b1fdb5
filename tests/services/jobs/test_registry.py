"""Tests for the persisted job registry."""

import re
from datetime import timedelta

from django.utils import timezone

import pytest

from services.jobs.registry import (
    JobState,
    complete_job,
    create_job_id,
    fail_job,
    get_progress,
    purge_finished_jobs,
    set_progress,
    start_job,
)
from trading.models import SyncJob


class TestJobState:
    """Pure JobState behavior (no database)."""

    @pytest.mark.parametrize(
        ("current", "total", "expected"),
        [
            (0, 0, 0),
            (5, 0, 0),
            (0, 21, 0),
            (1, 3, 33),
            (2, 3, 67),
            (1, 8, 13),  # 12.5 rounds half up
            (21, 21, 100),
        ],
    )
    def test_percent(self, current, total, expected):
        state = JobState(owner_tag="1", current_step=current, total_steps=total)
        assert state.percent == expected

    def test_status_payload_shape(self):
        state = JobState(
            owner_tag="1",
            job_id="1_1700000000000_abcdef12",
            current_step=7,
            total_steps=21,
            current_symbol="BTCBRL",
            current_date="2024-01-03",
            message="Fetching BTCBRL for 2024-01-03...",
        )

        payload = state.to_status_payload()

        assert payload == {
            "jobId": "1_1700000000000_abcdef12",
            "status": "running",
            "percent": 33,
            "currentStep": 7,
            "totalSteps": 21,
            "currentSymbol": "BTCBRL",
            "currentDate": "2024-01-03",
            "message": "Fetching BTCBRL for 2024-01-03...",
            "result": None,
            "error": None,
        }


class TestCreateJobId:
    def test_format(self):
        job_id = create_job_id("42")
        assert re.fullmatch(r"42_\d{13}_[0-9a-f]{8}", job_id)

    def test_ids_differ(self):
        assert create_job_id("system") != create_job_id("system")


@pytest.mark.django_db
class TestSetProgress:
    """Writes, reads and the terminal-state guard."""

    def test_first_write_creates_job(self):
        assert set_progress("job-1", JobState(owner_tag="1", total_steps=4, message="go")) is True

        state = get_progress("job-1")
        assert state.owner_tag == "1"
        assert state.status == "running"
        assert state.total_steps == 4
        assert state.message == "go"
        assert state.job_id == "job-1"
        assert state.updated_at is not None

    def test_running_job_is_replaced_wholesale(self):
        set_progress("job-1", JobState(owner_tag="1", current_symbol="BTCBRL", total_steps=4))
        set_progress("job-1", JobState(owner_tag="1", current_step=2, total_steps=4))

        state = get_progress("job-1")
        assert state.current_step == 2
        assert state.current_symbol == ""

    def test_updated_at_is_bumped(self):
        set_progress("job-1", JobState(owner_tag="1"))
        old = timezone.now() - timedelta(hours=1)
        SyncJob.objects.filter(job_id="job-1").update(updated_at=old)

        set_progress("job-1", JobState(owner_tag="1", current_step=1))

        assert SyncJob.objects.get(job_id="job-1").updated_at > old

    def test_terminal_job_is_not_overwritten(self):
        """A cancelled job stays cancelled when the worker reports later."""
        set_progress("job-1", JobState(owner_tag="1"))
        SyncJob.objects.filter(job_id="job-1").update(status="error", error="Manually canceled by user")

        assert set_progress("job-1", JobState(owner_tag="1", current_step=3)) is False
        assert complete_job("job-1", "1", "done", {"inserted": 1, "updated": 0}) is False

        state = get_progress("job-1")
        assert state.status == "error"
        assert state.error == "Manually canceled by user"

    def test_get_progress_unknown(self):
        assert get_progress("nope") is None


@pytest.mark.django_db
class TestJobLifecycle:
    def test_start_complete(self):
        job_id = start_job("5", total_steps=2)
        assert get_progress(job_id).status == "running"

        complete_job(job_id, "5", "Done", {"inserted": 3, "updated": 1}, 2, 2)

        state = get_progress(job_id)
        assert state.status == "completed"
        assert state.result == {"inserted": 3, "updated": 1}
        assert state.percent == 100

    def test_fail(self):
        job_id = start_job("5")

        fail_job(job_id, "5", error="boom")

        state = get_progress(job_id)
        assert state.status == "error"
        assert state.error == "boom"


@pytest.mark.django_db
class TestPurgeFinishedJobs:
    def test_only_old_terminal_jobs_are_removed(self):
        old = timezone.now() - timedelta(days=8)
        for job_id, status in [("old-done", "completed"), ("old-err", "error"), ("old-run", "running")]:
            set_progress(job_id, JobState(owner_tag="1"))
            SyncJob.objects.filter(job_id=job_id).update(status=status, updated_at=old)
        set_progress("new-done", JobState(owner_tag="1"))
        SyncJob.objects.filter(job_id="new-done").update(status="completed")

        deleted = purge_finished_jobs()

        assert deleted == 2
        assert set(SyncJob.objects.values_list("job_id", flat=True)) == {"old-run", "new-done"}
