"""
Stuck-job detection and manual cancellation.

A job is stuck when it is still ``running`` but nothing has published progress
for longer than ``STUCK_JOB_THRESHOLD_MINUTES``. Scanning marks such jobs as
``error``; listing with ``include_all`` only reports running jobs.
"""

from dataclasses import dataclass, field
from datetime import timedelta

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from services.core.exceptions import JobNotFoundError
from services.core.logging import get_logger
from trading.models import SyncJob

logger = get_logger(__name__)

CANCELED_MESSAGE = "Manually canceled by user"


def stuck_message(threshold_minutes: int) -> str:
    return f"Job stuck - timed out after {threshold_minutes} minutes without an update"


@dataclass
class StuckJobScan:
    """Result of a stuck-job scan."""

    jobs: list = field(default_factory=list)
    updated: int = 0

    def to_dict(self) -> dict:
        now = timezone.now()
        return {
            "stuckJobs": len(self.jobs),
            "jobs": [
                {
                    "jobId": job.job_id,
                    "status": job.status,
                    "message": job.message or None,
                    "currentStep": job.current_step,
                    "totalSteps": job.total_steps,
                    "updatedAt": job.updated_at.isoformat(),
                    "minutesStuck": int((now - job.updated_at).total_seconds() // 60),
                }
                for job in self.jobs
            ],
            "updated": self.updated,
        }


def scan_stuck_jobs(
    owner_tag: str | None, include_all: bool = False, threshold_minutes: int | None = None
) -> StuckJobScan:
    """
    Find running jobs of an owner, oldest update first.

    With ``include_all`` every running job is returned untouched. Otherwise
    only jobs idle past the threshold are returned and each is flipped to
    ``error``. ``owner_tag=None`` scans every owner.

    Reported jobs reflect their state at scan time.
    """
    if threshold_minutes is None:
        threshold_minutes = settings.STUCK_JOB_THRESHOLD_MINUTES

    running = SyncJob.objects.filter(status=SyncJob.STATUS_RUNNING)
    if owner_tag is not None:
        running = running.filter(owner_tag=owner_tag)

    if include_all:
        return StuckJobScan(jobs=list(running.order_by("updated_at", "pk")))

    cutoff = timezone.now() - timedelta(minutes=threshold_minutes)
    error_text = stuck_message(threshold_minutes)
    updated = 0

    with transaction.atomic():
        stuck = list(running.filter(updated_at__lt=cutoff).order_by("updated_at", "pk"))
        for job in stuck:
            # A job that finished since the read is left alone
            updated += SyncJob.objects.filter(pk=job.pk, status=SyncJob.STATUS_RUNNING).update(
                status=SyncJob.STATUS_ERROR, error=error_text, updated_at=timezone.now()
            )

    if stuck:
        logger.warning(
            f"Marked {updated} of {len(stuck)} stuck jobs as error "
            f"(owner={owner_tag or 'all'}, threshold={threshold_minutes}m)"
        )
    return StuckJobScan(jobs=stuck, updated=updated)


def cancel_job(owner_tag: str, job_id: str) -> SyncJob:
    """
    Mark one of the owner's jobs as ``error`` regardless of its state.

    The background task is not interrupted; its later writes are dropped
    by the registry because the job is now terminal.
    """
    job = SyncJob.objects.filter(job_id=job_id, owner_tag=owner_tag).first()
    if job is None:
        raise JobNotFoundError(job_id=job_id)

    job.status = SyncJob.STATUS_ERROR
    job.error = CANCELED_MESSAGE
    job.updated_at = timezone.now()
    job.save(update_fields=["status", "error", "updated_at"])
    logger.info(f"Job {job_id} canceled by owner {owner_tag}")
    return job
