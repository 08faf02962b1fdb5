from django.contrib import admin

from .models import Cashflow, SyncJob, Trade


@admin.register(Trade)
class TradeAdmin(admin.ModelAdmin):
    list_display = (
        "symbol",
        "account",
        "market",
        "side",
        "quantity",
        "price",
        "realized_pnl",
        "executed_at",
    )
    list_filter = ("market", "side", "symbol", "executed_at")
    search_fields = ("account__user__email", "symbol", "trade_id", "order_id")
    readonly_fields = ("created_at",)


@admin.register(Cashflow)
class CashflowAdmin(admin.ModelAdmin):
    list_display = ("account", "type", "asset", "amount", "occurred_at")
    list_filter = ("type", "asset", "occurred_at")
    search_fields = ("account__user__email", "asset", "note")
    readonly_fields = ("created_at",)


@admin.register(SyncJob)
class SyncJobAdmin(admin.ModelAdmin):
    list_display = (
        "job_id",
        "owner_tag",
        "status",
        "current_step",
        "total_steps",
        "updated_at",
    )
    list_filter = ("status", "updated_at")
    search_fields = ("job_id", "owner_tag")
    readonly_fields = ("created_at", "updated_at")
