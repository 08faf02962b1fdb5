"""
Duplicate trade removal.

Re-ingesting the same exchange window can insert the same execution twice
because trades carry no unique constraint. Two passes clean this up:

1. Exchange-id pass: trades sharing ``(account, trade_id)``.
2. Synthetic-key pass: trades with neither ``order_id`` nor ``trade_id``,
   matched on account, execution second, symbol, side, price and quantity
   (price and quantity at 8 decimal places).

In every group the most recently created row survives. Deletion is by
primary key, so rerunning a pass, or racing another run, is harmless.
"""

from collections import defaultdict
from collections.abc import Callable, Iterable
from dataclasses import dataclass

from django.utils import timezone

from services.core.exceptions import NoExchangeAccountsError
from services.core.logging import get_logger
from services.core.utils.decimal_utils import quantize_trade_value
from services.jobs.registry import JobState, complete_job, set_progress, start_job
from services.trades.filters import TradeFilter, user_trades
from services.trades.maintenance import account_ids_for_user
from trading.models import Trade

logger = get_logger(__name__)


@dataclass
class DeduplicationResult:
    duplicates_found: int = 0
    deleted: int = 0

    def to_job_result(self) -> dict:
        return {"inserted": 0, "updated": self.deleted}


def synthetic_key(trade: Trade) -> tuple:
    executed_second = int(trade.executed_at.timestamp())
    return (
        trade.account_id,
        executed_second,
        trade.symbol,
        trade.side,
        quantize_trade_value(trade.price),
        quantize_trade_value(trade.quantity),
    )


def select_duplicates(trades: Iterable[Trade], key: Callable[[Trade], tuple]) -> list[int]:
    """
    Group trades by ``key`` and return the primary keys to delete.

    ``trades`` must be ordered newest first; the first trade of each group
    is kept.
    """
    groups: dict[tuple, list[int]] = defaultdict(list)
    for trade in trades:
        groups[key(trade)].append(trade.pk)
    return [pk for pks in groups.values() for pk in pks[1:]]


class TradeDeduplicator:
    """Runs both duplicate passes over the trades of a set of accounts."""

    def __init__(self, account_ids: Iterable[int], trade_filter: TradeFilter | None = None):
        self.account_ids = list(account_ids)
        self.trade_filter = trade_filter or TradeFilter()

    def _base_queryset(self):
        return user_trades(self.account_ids, self.trade_filter)

    def _delete(self, pks: list[int]) -> int:
        if not pks:
            return 0
        deleted, _ = Trade.objects.filter(pk__in=pks).delete()
        return deleted

    def remove_trade_id_duplicates(self) -> DeduplicationResult:
        trades = (
            self._base_queryset()
            .filter(trade_id__isnull=False)
            .order_by("account_id", "trade_id", "-created_at", "-pk")
            .only("pk", "account_id", "trade_id")
        )
        duplicate_pks = select_duplicates(trades, lambda t: (t.account_id, t.trade_id))
        deleted = self._delete(duplicate_pks)
        logger.info(f"Trade-id pass: {len(duplicate_pks)} duplicates, {deleted} deleted")
        return DeduplicationResult(duplicates_found=len(duplicate_pks), deleted=deleted)

    def remove_synthetic_duplicates(self) -> DeduplicationResult:
        trades = (
            self._base_queryset()
            .filter(order_id__isnull=True, trade_id__isnull=True)
            .order_by("-created_at", "-pk")
            .only("pk", "account_id", "executed_at", "symbol", "side", "price", "quantity")
        )
        duplicate_pks = select_duplicates(trades, synthetic_key)
        deleted = self._delete(duplicate_pks)
        logger.info(f"Synthetic-key pass: {len(duplicate_pks)} duplicates, {deleted} deleted")
        return DeduplicationResult(duplicates_found=len(duplicate_pks), deleted=deleted)

    def run(self, on_pass_complete: Callable[[int], None] | None = None) -> DeduplicationResult:
        """Run both passes; ``on_pass_complete(n)`` is called after pass ``n``."""
        logger.info(
            f"Deduplicating trades for accounts {self.account_ids} "
            f"({self.trade_filter.describe()})"
        )
        first = self.remove_trade_id_duplicates()
        if on_pass_complete:
            on_pass_complete(1)
        second = self.remove_synthetic_duplicates()
        if on_pass_complete:
            on_pass_complete(2)

        return DeduplicationResult(
            duplicates_found=first.duplicates_found + second.duplicates_found,
            deleted=first.deleted + second.deleted,
        )


DEDUP_TOTAL_STEPS = 2


def start_deduplication(user, trade_filter: TradeFilter) -> dict:
    """Create a deduplication job for the user's trades and enqueue it."""
    from trading.tasks import deduplicate_trades_task

    account_ids = account_ids_for_user(user)
    if not account_ids:
        raise NoExchangeAccountsError(owner_tag=user.owner_tag)

    job_id = start_job(
        user.owner_tag, total_steps=DEDUP_TOTAL_STEPS, message="Starting duplicate removal..."
    )
    deduplicate_trades_task.delay(
        job_id=job_id,
        owner_tag=user.owner_tag,
        account_ids=account_ids,
        trade_filter=trade_filter.to_request_data(),
    )
    return {
        "ok": True,
        "message": "Duplicate removal started",
        "jobId": job_id,
        "timestamp": timezone.now().isoformat(),
    }


def run_deduplication_job(
    job_id: str, owner_tag: str, account_ids: list[int], trade_filter: TradeFilter
) -> DeduplicationResult:
    """Run both passes under a job, publishing progress after the first pass."""

    def on_pass_complete(passes_done: int) -> None:
        if passes_done < DEDUP_TOTAL_STEPS:
            set_progress(
                job_id,
                JobState(
                    owner_tag=owner_tag,
                    current_step=passes_done,
                    total_steps=DEDUP_TOTAL_STEPS,
                    message="Searching for duplicates by matching characteristics...",
                ),
            )

    result = TradeDeduplicator(account_ids, trade_filter).run(on_pass_complete=on_pass_complete)
    complete_job(
        job_id,
        owner_tag,
        message=f"Duplicate removal complete! {result.deleted} trades removed",
        result=result.to_job_result(),
        current_step=DEDUP_TOTAL_STEPS,
        total_steps=DEDUP_TOTAL_STEPS,
    )
    return result
