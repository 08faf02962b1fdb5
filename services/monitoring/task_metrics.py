"""
Task monitoring decorator for Celery tasks.

Logs start, completion and failure of every background task with its duration.
Job tasks receive a ``job_id`` keyword; it is attached to every record so a
job's worker output can be found from the id clients poll with.
"""

import time
from collections.abc import Callable
from functools import wraps
from typing import Any

from services.core.logging import get_logger

logger = get_logger(__name__)


def _outcome(result: Any) -> str:
    """Job tasks report handled failures as ``{"status": "failed"}`` instead of raising."""
    if isinstance(result, dict) and result.get("status") == "failed":
        return "failed"
    return "success"


def monitor_task(func: Callable) -> Callable:
    """
    Decorator to monitor Celery task execution.

    Example:
        @shared_task(bind=True)
        @monitor_task
        def sync_accounts_task(self, job_id, owner_tag, ...):
            ...
    """

    @wraps(func)
    def wrapper(*args, **kwargs) -> Any:
        task_name = func.__name__
        job_id = kwargs.get("job_id")
        label = f"{task_name} [job {job_id}]" if job_id else task_name
        start_time = time.time()

        logger.info(f"Task started: {label}")
        try:
            result = func(*args, **kwargs)
        except Exception as e:
            duration = time.time() - start_time
            logger.error(
                f"Task failed: {label} after {duration:.2f}s",
                extra={
                    "task_name": task_name,
                    "job_id": job_id,
                    "duration": duration,
                    "status": "failure",
                    "error_type": type(e).__name__,
                },
                exc_info=True,
            )
            raise

        duration = time.time() - start_time
        status = _outcome(result)
        log = logger.warning if status == "failed" else logger.info
        log(
            f"Task {'completed' if status == 'success' else 'finished with failure'}: "
            f"{label} in {duration:.2f}s",
            extra={
                "task_name": task_name,
                "job_id": job_id,
                "duration": duration,
                "status": status,
            },
        )
        return result

    return wrapper
