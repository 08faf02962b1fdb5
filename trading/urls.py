from django.urls import path

from . import api_views

app_name = "trading"

urlpatterns = [
    # Background jobs
    path("jobs/sync-all/", api_views.start_sync_job, name="api_sync_all"),
    path("jobs/sync-status/", api_views.sync_status, name="api_sync_status"),
    path("jobs/stuck/", api_views.stuck_jobs, name="api_stuck_jobs"),
    path("jobs/recalculate-pnl/", api_views.recalculate_pnl, name="api_recalculate_pnl"),
    # Trade maintenance
    path("trades/deduplicate/", api_views.deduplicate_trades, name="api_deduplicate_trades"),
    path("trades/delete/", api_views.delete_trades, name="api_delete_trades"),
]
