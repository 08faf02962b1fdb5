from django.core.serializers.json import DjangoJSONEncoder
from django.db import models

from accounts.models import ExchangeAccount


class Trade(models.Model):
    SIDE_CHOICES = [
        ("BUY", "Buy"),
        ("SELL", "Sell"),
    ]
    MARKET_CHOICES = [
        ("SPOT", "Spot"),
        ("FUTURES", "Futures"),
    ]
    ORDER_TYPE_CHOICES = [
        ("LIMIT", "Limit"),
        ("MARKET", "Market"),
    ]

    account = models.ForeignKey(ExchangeAccount, on_delete=models.CASCADE, related_name="trades")
    exchange = models.CharField(max_length=20, default="BINANCE")
    market = models.CharField(max_length=10, choices=MARKET_CHOICES, default="SPOT")
    symbol = models.CharField(max_length=30)
    side = models.CharField(max_length=4, choices=SIDE_CHOICES)

    quantity = models.DecimalField(max_digits=28, decimal_places=8)
    price = models.DecimalField(max_digits=28, decimal_places=8)
    fee_value = models.DecimalField(max_digits=28, decimal_places=8, default=0)
    fee_asset = models.CharField(max_length=20, blank=True)
    # Recomputed by the FIFO reconciliation; exchange value is kept until then
    realized_pnl = models.DecimalField(max_digits=28, decimal_places=8, default=0)

    order_type = models.CharField(
        max_length=10, choices=ORDER_TYPE_CHOICES, null=True, blank=True
    )
    executed_at = models.DateTimeField()

    # Exchange identifiers; not unique, duplicates are removed by deduplication
    order_id = models.CharField(max_length=64, null=True, blank=True)
    trade_id = models.CharField(max_length=64, null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=["account", "executed_at"], name="trading_tr_acct_exec_idx"),
            models.Index(fields=["account", "trade_id"], name="trading_tr_acct_tid_idx"),
            models.Index(fields=["account", "symbol"], name="trading_tr_acct_sym_idx"),
        ]

    def __str__(self):
        return f"{self.side} {self.quantity} {self.symbol} @ {self.price} ({self.executed_at})"


class Cashflow(models.Model):
    TYPE_CHOICES = [
        ("DEPOSIT", "Deposit"),
        ("WITHDRAWAL", "Withdrawal"),
        ("ADJUSTMENT", "Adjustment"),
    ]

    account = models.ForeignKey(
        ExchangeAccount, on_delete=models.CASCADE, related_name="cashflows"
    )
    type = models.CharField(max_length=12, choices=TYPE_CHOICES)
    asset = models.CharField(max_length=20)
    # Signed: withdrawals are negative
    amount = models.DecimalField(max_digits=28, decimal_places=8)
    occurred_at = models.DateTimeField()
    note = models.TextField(blank=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-occurred_at"]

    def __str__(self):
        return f"{self.type} {self.amount} {self.asset} ({self.occurred_at:%Y-%m-%d})"


class SyncJob(models.Model):
    """Persisted progress of a background sync or deduplication job.

    Rows are written by the job registry and read by status polling, so
    progress survives worker restarts and is visible across processes.
    """

    STATUS_RUNNING = "running"
    STATUS_COMPLETED = "completed"
    STATUS_ERROR = "error"
    STATUS_CHOICES = [
        (STATUS_RUNNING, "Running"),
        (STATUS_COMPLETED, "Completed"),
        (STATUS_ERROR, "Error"),
    ]
    TERMINAL_STATUSES = (STATUS_COMPLETED, STATUS_ERROR)

    job_id = models.CharField(max_length=100, unique=True)
    owner_tag = models.CharField(max_length=64, db_index=True)
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default=STATUS_RUNNING)

    current_step = models.PositiveIntegerField(default=0)
    total_steps = models.PositiveIntegerField(default=0)
    current_symbol = models.CharField(max_length=30, blank=True)
    current_date = models.CharField(max_length=10, blank=True)
    message = models.TextField(blank=True)

    result = models.JSONField(null=True, blank=True, encoder=DjangoJSONEncoder)
    error = models.TextField(blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField()

    class Meta:
        indexes = [
            models.Index(fields=["owner_tag", "status", "updated_at"], name="trading_job_owner_st_idx"),
            models.Index(fields=["status", "updated_at"], name="trading_job_status_idx"),
        ]

    def __str__(self):
        return f"{self.job_id} ({self.status})"

    @property
    def is_terminal(self) -> bool:
        return self.status in self.TERMINAL_STATUSES
