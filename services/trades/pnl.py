"""
FIFO realized PnL reconciliation.

Each account's trades are replayed oldest first. Buys open lots per symbol;
sells consume the oldest lots and realize ``(sell_price - lot_price) * qty``
for each consumed slice. Lots are rebuilt on every run and never persisted.
Buys keep whatever ``realized_pnl`` they already carry.
"""

from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass, field
from decimal import Decimal

from services.core.exceptions import NoExchangeAccountsError
from services.core.logging import get_logger
from services.core.utils.decimal_utils import quantize_trade_value
from trading.models import Trade

logger = get_logger(__name__)

ZERO = Decimal("0")


@dataclass
class Lot:
    """Open quantity remaining from one buy."""

    quantity: Decimal
    price: Decimal


@dataclass
class FifoReplay:
    """Outcome of replaying one account's trades."""

    realized: dict = field(default_factory=dict)  # trade pk -> realized PnL of each sell
    open_lots: dict = field(default_factory=lambda: defaultdict(list))  # symbol -> [Lot]


def replay_fifo(trades: Iterable) -> FifoReplay:
    """
    Compute realized PnL for every eligible sell.

    ``trades`` need ``pk``, ``symbol``, ``side``, ``quantity``, ``price`` and
    ``executed_at``. They are sorted by ``executed_at`` with a stable sort, so
    equal timestamps keep the order they were given in. Sells with a
    non-positive quantity or price are skipped and get no entry.
    """
    replay = FifoReplay()
    for trade in sorted(trades, key=lambda t: t.executed_at):
        lots = replay.open_lots[trade.symbol]
        quantity = Decimal(trade.quantity)
        price = Decimal(trade.price)

        if trade.side == "BUY":
            lots.append(Lot(quantity=quantity, price=price))
            continue

        if trade.side != "SELL" or quantity <= ZERO or price <= ZERO:
            continue

        remaining = quantity
        pnl = ZERO
        while remaining > ZERO and lots:
            lot = lots[0]
            consumed = min(lot.quantity, remaining)
            pnl += (price - lot.price) * consumed
            lot.quantity -= consumed
            remaining -= consumed
            if lot.quantity <= ZERO:
                lots.pop(0)

        replay.realized[trade.pk] = pnl

    return replay


def recalculate_account_pnl(account_id: int) -> int:
    """Rewrite realized PnL of one account's sells; returns how many rows changed."""
    trades = list(
        Trade.objects.filter(account_id=account_id)
        .order_by("executed_at", "pk")
        .only("pk", "symbol", "side", "quantity", "price", "executed_at", "realized_pnl")
    )
    replay = replay_fifo(trades)
    current = {trade.pk: trade.realized_pnl for trade in trades}

    updated = 0
    for pk, pnl in replay.realized.items():
        new_value = quantize_trade_value(pnl)
        old_value = current[pk]
        if new_value == old_value:
            continue
        # Skip rows that changed since they were read
        updated += Trade.objects.filter(pk=pk, realized_pnl=old_value).update(
            realized_pnl=new_value
        )

    logger.debug(f"Account {account_id}: {updated} of {len(replay.realized)} sells updated")
    return updated


def recalculate_user_pnl(user) -> int:
    """Recompute realized PnL across all of the user's accounts."""
    account_ids = list(user.exchange_accounts.values_list("pk", flat=True))
    if not account_ids:
        raise NoExchangeAccountsError(owner_tag=str(user.pk))

    updated = sum(recalculate_account_pnl(account_id) for account_id in account_ids)
    logger.info(f"Recalculated PnL for user {user.pk}: {updated} trades updated")
    return updated
