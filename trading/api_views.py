"""
Trade journal JSON API.

Sync and deduplication return a job id immediately and continue in Celery;
clients poll ``sync-status`` with that id. Trade deletion and PnL
recalculation run inside the request.
"""

import json

from django.http import JsonResponse
from django.views.decorators.http import require_http_methods

from services.api.error_responses import ErrorResponseBuilder
from services.core.decorators import api_login_required, login_or_cron_secret_required
from services.core.exceptions import JobNotFoundError, JobOwnershipError
from services.core.logging import get_logger
from services.jobs.monitor import cancel_job, scan_stuck_jobs
from services.jobs.registry import get_progress
from services.sync.orchestrator import start_sync
from services.trades.deduplication import start_deduplication
from services.trades.filters import TradeFilter
from services.trades.maintenance import delete_trades as delete_user_trades
from services.trades.pnl import recalculate_user_pnl

logger = get_logger(__name__)


def _json_body(request) -> dict:
    """Parse a JSON object body; an empty body is an empty object."""
    if not request.body:
        return {}
    data = json.loads(request.body)
    if not isinstance(data, dict):
        raise ValueError("Request body must be a JSON object")
    return data


@login_or_cron_secret_required
@require_http_methods(["POST"])
def start_sync_job(request):
    """
    Start a trade sync for the caller's accounts (or all accounts for the scheduler).

    POST /api/jobs/sync-all/
    Body: {"startDate": "2024-01-01", "endDate": "2024-01-07", "symbols": ["BTCBRL"]}

    Returns:
    {"ok": true, "message": "Sync started", "jobId": "...", "timestamp": "..."}
    or {"ok": true, "message": "No accounts found", "results": []}
    """
    user = request.sync_user
    try:
        data = _json_body(request)
        payload = start_sync(user, data, credential_header=request.headers.get("Authorization"))
        return JsonResponse(payload)
    except Exception as e:
        owner = user.pk if user is not None else "system"
        return ErrorResponseBuilder.from_exception(
            e, context=f"start_sync_job owner={owner}", log_level="warning"
        )


@api_login_required
@require_http_methods(["GET"])
def sync_status(request):
    """
    Poll a job started by the caller.

    GET /api/jobs/sync-status/?jobId=<id>
    """
    job_id = request.GET.get("jobId")
    if not job_id:
        return ErrorResponseBuilder.validation_error("jobId is required", field="jobId")

    try:
        state = get_progress(job_id)
        if state is None:
            raise JobNotFoundError(job_id=job_id)
        if state.owner_tag != request.user.owner_tag:
            raise JobOwnershipError(job_id=job_id)
        return JsonResponse(state.to_status_payload())
    except Exception as e:
        return ErrorResponseBuilder.from_exception(
            e, context=f"sync_status user={request.user.pk}", log_level="info"
        )


@api_login_required
@require_http_methods(["GET", "POST"])
def stuck_jobs(request):
    """
    GET  /api/jobs/stuck/[?all=true]  fail (or with all=true, just list) idle running jobs
    POST /api/jobs/stuck/ {"jobId"}    cancel one of the caller's jobs
    """
    owner_tag = request.user.owner_tag

    if request.method == "GET":
        include_all = request.GET.get("all") == "true"
        try:
            scan = scan_stuck_jobs(owner_tag, include_all=include_all)
            return JsonResponse(scan.to_dict())
        except Exception as e:
            return ErrorResponseBuilder.from_exception(e, context=f"stuck_jobs owner={owner_tag}")

    try:
        job_id = _json_body(request).get("jobId")
        if not job_id:
            return ErrorResponseBuilder.validation_error("jobId is required", field="jobId")
        job = cancel_job(owner_tag, job_id)
        return JsonResponse(
            {"ok": True, "job": {"jobId": job.job_id, "status": job.status, "error": job.error}}
        )
    except Exception as e:
        return ErrorResponseBuilder.from_exception(
            e, context=f"cancel_job owner={owner_tag}", log_level="warning"
        )


@api_login_required
@require_http_methods(["POST"])
def deduplicate_trades(request):
    """
    Start duplicate removal over the caller's trades.

    POST /api/trades/deduplicate/
    Body: {"month": "2024-01"} or {"startDate", "endDate"}, plus optional "market", "symbol"
    """
    try:
        trade_filter = TradeFilter.from_request_data(_json_body(request))
        return JsonResponse(start_deduplication(request.user, trade_filter))
    except Exception as e:
        return ErrorResponseBuilder.from_exception(
            e, context=f"deduplicate_trades user={request.user.pk}", log_level="warning"
        )


@api_login_required
@require_http_methods(["POST"])
def delete_trades(request):
    """
    Delete the caller's trades matching a filter. At least one filter is required.

    POST /api/trades/delete/
    """
    try:
        trade_filter = TradeFilter.from_request_data(_json_body(request))
        deleted = delete_user_trades(request.user, trade_filter)
        return JsonResponse({"ok": True, "deleted": deleted, "message": f"{deleted} trades deleted"})
    except Exception as e:
        return ErrorResponseBuilder.from_exception(
            e, context=f"delete_trades user={request.user.pk}", log_level="warning"
        )


@api_login_required
@require_http_methods(["POST"])
def recalculate_pnl(request):
    """
    Recompute FIFO realized PnL for all of the caller's accounts.

    POST /api/jobs/recalculate-pnl/
    """
    try:
        updated = recalculate_user_pnl(request.user)
        return JsonResponse(
            {"ok": True, "message": f"PnL recalculated for {updated} trades", "updated": updated}
        )
    except Exception as e:
        return ErrorResponseBuilder.from_exception(
            e, context=f"recalculate_pnl user={request.user.pk}"
        )
