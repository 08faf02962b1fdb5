"""
Job registry for long-running sync and deduplication jobs.

Job state lives in the ``SyncJob`` table so that status polling works across
web and worker processes and survives restarts. Writers publish the whole
state on every update; readers get a snapshot.

Terminal states are final: once a job is ``completed`` or ``error`` (including
a manual cancel) later ``set_progress`` calls from a still-running task are
ignored.
"""

import secrets
import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from services.core.logging import get_logger
from trading.models import SyncJob

logger = get_logger(__name__)

STATUS_RUNNING = SyncJob.STATUS_RUNNING
STATUS_COMPLETED = SyncJob.STATUS_COMPLETED
STATUS_ERROR = SyncJob.STATUS_ERROR


@dataclass
class JobState:
    """Snapshot of a job's progress."""

    owner_tag: str
    status: str = STATUS_RUNNING
    current_step: int = 0
    total_steps: int = 0
    current_symbol: str = ""
    current_date: str = ""
    message: str = ""
    result: dict | None = None
    error: str = ""
    job_id: str = ""
    updated_at: datetime | None = field(default=None, compare=False)

    @property
    def is_terminal(self) -> bool:
        return self.status in SyncJob.TERMINAL_STATUSES

    @property
    def percent(self) -> int:
        """Completion percentage, rounded half up; 0 when there are no steps."""
        if self.total_steps <= 0:
            return 0
        ratio = Decimal(self.current_step) * 100 / Decimal(self.total_steps)
        return int(ratio.quantize(Decimal("1"), rounding=ROUND_HALF_UP))

    def to_status_payload(self) -> dict:
        return {
            "jobId": self.job_id,
            "status": self.status,
            "percent": self.percent,
            "currentStep": self.current_step,
            "totalSteps": self.total_steps,
            "currentSymbol": self.current_symbol or None,
            "currentDate": self.current_date or None,
            "message": self.message or None,
            "result": self.result,
            "error": self.error or None,
        }

    def _model_fields(self) -> dict:
        return {
            "owner_tag": self.owner_tag,
            "status": self.status,
            "current_step": self.current_step,
            "total_steps": self.total_steps,
            "current_symbol": self.current_symbol or "",
            "current_date": self.current_date or "",
            "message": self.message or "",
            "result": self.result,
            "error": self.error or "",
        }

    @classmethod
    def from_model(cls, job: SyncJob) -> "JobState":
        return cls(
            owner_tag=job.owner_tag,
            status=job.status,
            current_step=job.current_step,
            total_steps=job.total_steps,
            current_symbol=job.current_symbol,
            current_date=job.current_date,
            message=job.message,
            result=job.result,
            error=job.error,
            job_id=job.job_id,
            updated_at=job.updated_at,
        )


def create_job_id(owner_tag: str) -> str:
    """Return ``<owner>_<epoch ms>_<8 hex chars>``."""
    return f"{owner_tag}_{int(time.time() * 1000)}_{secrets.token_hex(4)}"


def set_progress(job_id: str, state: JobState) -> bool:
    """
    Publish the full state of a job and bump its ``updated_at``.

    Creates the row on first write. Returns False when the job is already
    terminal and the write was dropped.
    """
    fields = state._model_fields()
    fields["updated_at"] = timezone.now()

    with transaction.atomic():
        updated = SyncJob.objects.filter(job_id=job_id, status=STATUS_RUNNING).update(**fields)
        if updated:
            return True

        _, created = SyncJob.objects.get_or_create(job_id=job_id, defaults=fields)
        if created:
            return True

    logger.info(f"Ignoring {state.status} update for finished job {job_id}")
    return False


def get_progress(job_id: str) -> JobState | None:
    job = SyncJob.objects.filter(job_id=job_id).first()
    if job is None:
        return None
    return JobState.from_model(job)


def start_job(owner_tag: str, total_steps: int = 0, message: str = "") -> str:
    """Allocate a job id and persist its initial ``running`` state."""
    job_id = create_job_id(owner_tag)
    set_progress(
        job_id,
        JobState(owner_tag=owner_tag, total_steps=total_steps, message=message),
    )
    logger.info(f"Job {job_id} started for owner {owner_tag}")
    return job_id


def complete_job(
    job_id: str,
    owner_tag: str,
    message: str,
    result: dict,
    current_step: int = 0,
    total_steps: int = 0,
) -> bool:
    return set_progress(
        job_id,
        JobState(
            owner_tag=owner_tag,
            status=STATUS_COMPLETED,
            current_step=current_step,
            total_steps=total_steps,
            message=message,
            result=result,
        ),
    )


def fail_job(job_id: str, owner_tag: str, error: str, message: str = "") -> bool:
    logger.error(f"Job {job_id} failed: {error}")
    return set_progress(
        job_id,
        JobState(
            owner_tag=owner_tag,
            status=STATUS_ERROR,
            message=message or "Job failed",
            error=error,
        ),
    )


def purge_finished_jobs(older_than: timedelta | None = None) -> int:
    """Delete terminal jobs whose last update is older than the retention window."""
    if older_than is None:
        older_than = timedelta(days=settings.SYNC_JOB_RETENTION_DAYS)
    cutoff = timezone.now() - older_than
    deleted, _ = SyncJob.objects.filter(
        status__in=SyncJob.TERMINAL_STATUSES, updated_at__lt=cutoff
    ).delete()
    if deleted:
        logger.info(f"Purged {deleted} finished jobs last updated before {cutoff.isoformat()}")
    return deleted
