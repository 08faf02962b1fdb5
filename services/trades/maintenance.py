"""Bulk trade deletion for a user's accounts."""

from services.core.exceptions import InvalidTradeFilterError, NoExchangeAccountsError
from services.core.logging import get_logger
from services.trades.filters import TradeFilter, user_trades

logger = get_logger(__name__)


def account_ids_for_user(user) -> list[int]:
    """Primary keys of every exchange account the user owns, active or not."""
    return list(user.exchange_accounts.values_list("pk", flat=True))


def delete_trades(user, trade_filter: TradeFilter) -> int:
    """
    Delete the user's trades matching ``trade_filter`` and return the count.

    An empty filter is rejected rather than wiping every trade.
    """
    if trade_filter.is_empty:
        raise InvalidTradeFilterError(
            "filter", None, "provide month, startDate/endDate, market or symbol"
        )

    account_ids = account_ids_for_user(user)
    if not account_ids:
        raise NoExchangeAccountsError(owner_tag=str(user.pk))

    deleted, _ = user_trades(account_ids, trade_filter).delete()
    logger.info(f"Deleted {deleted} trades for user {user.pk} ({trade_filter.describe()})")
    return deleted
