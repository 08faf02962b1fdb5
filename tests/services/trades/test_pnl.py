"""Tests for FIFO realized PnL reconciliation."""

from datetime import UTC, datetime, timedelta
from decimal import Decimal
from types import SimpleNamespace

import pytest

from services.core.exceptions import NoExchangeAccountsError
from services.trades.pnl import Lot, recalculate_account_pnl, recalculate_user_pnl, replay_fifo
from trading.models import Trade

T0 = datetime(2024, 1, 1, tzinfo=UTC)


def trade(pk, side, quantity, price, minutes=0, symbol="BTCBRL"):
    return SimpleNamespace(
        pk=pk,
        symbol=symbol,
        side=side,
        quantity=Decimal(str(quantity)),
        price=Decimal(str(price)),
        executed_at=T0 + timedelta(minutes=minutes),
    )


class TestReplayFifo:
    def test_sell_consumes_oldest_lots_first(self):
        """BUY 2@100, BUY 3@110, SELL 4@150 realizes 2*50 + 2*40 and leaves 1@110."""
        replay = replay_fifo(
            [
                trade(1, "BUY", 2, 100, minutes=0),
                trade(2, "BUY", 3, 110, minutes=1),
                trade(3, "SELL", 4, 150, minutes=2),
            ]
        )

        assert replay.realized == {3: Decimal("180")}
        assert replay.open_lots["BTCBRL"] == [Lot(quantity=Decimal("1"), price=Decimal("110"))]

    def test_worked_example(self):
        """BUY 10@100, BUY 5@110, SELL 12@120 realizes 200 + 20 and leaves 3@110."""
        replay = replay_fifo(
            [
                trade(1, "BUY", 10, 100, minutes=0),
                trade(2, "BUY", 5, 110, minutes=1),
                trade(3, "SELL", 12, 120, minutes=2),
            ]
        )

        assert replay.realized[3] == Decimal("220")
        assert replay.open_lots["BTCBRL"] == [Lot(quantity=Decimal("3"), price=Decimal("110"))]

    def test_sell_without_buys_realizes_zero(self):
        replay = replay_fifo([trade(1, "SELL", 1, 100)])

        assert replay.realized == {1: Decimal("0")}

    def test_oversell_stops_when_lots_run_out(self):
        replay = replay_fifo([trade(1, "BUY", 1, 100), trade(2, "SELL", 5, 120, minutes=1)])

        assert replay.realized[2] == Decimal("20")
        assert replay.open_lots["BTCBRL"] == []

    def test_non_positive_sells_are_skipped(self):
        replay = replay_fifo(
            [
                trade(1, "BUY", 1, 100),
                trade(2, "SELL", 0, 150, minutes=1),
                trade(3, "SELL", 1, 0, minutes=2),
            ]
        )

        assert replay.realized == {}
        assert replay.open_lots["BTCBRL"] == [Lot(quantity=Decimal("1"), price=Decimal("100"))]

    def test_symbols_have_separate_lots(self):
        replay = replay_fifo(
            [
                trade(1, "BUY", 1, 100, symbol="BTCBRL"),
                trade(2, "BUY", 1, 10, symbol="ETHBRL", minutes=1),
                trade(3, "SELL", 1, 20, symbol="ETHBRL", minutes=2),
            ]
        )

        assert replay.realized[3] == Decimal("10")
        assert replay.open_lots["BTCBRL"][0].price == Decimal("100")

    def test_input_is_sorted_by_execution_time(self):
        replay = replay_fifo(
            [trade(2, "SELL", 1, 150, minutes=5), trade(1, "BUY", 1, 100, minutes=0)]
        )

        assert replay.realized[2] == Decimal("50")

    def test_equal_timestamps_keep_given_order(self):
        """A sell listed before a buy at the same instant does not see that buy."""
        replay = replay_fifo([trade(1, "SELL", 1, 150), trade(2, "BUY", 1, 100)])

        assert replay.realized[1] == Decimal("0")

    def test_decimal_precision(self):
        replay = replay_fifo(
            [trade(1, "BUY", "0.1", "0.2"), trade(2, "SELL", "0.1", "0.3", minutes=1)]
        )

        assert replay.realized[2] == Decimal("0.01")


@pytest.mark.django_db
class TestRecalculatePnl:
    def test_writes_only_changed_sells(self, make_trade, exchange_account):
        buy = make_trade(side="BUY", quantity=Decimal("2"), price=Decimal("100"), executed_at=T0)
        sell = make_trade(
            side="SELL",
            quantity=Decimal("1"),
            price=Decimal("130"),
            executed_at=T0 + timedelta(hours=1),
        )
        already_right = make_trade(
            side="SELL",
            quantity=Decimal("1"),
            price=Decimal("120"),
            executed_at=T0 + timedelta(hours=2),
            realized_pnl=Decimal("20"),
        )

        updated = recalculate_account_pnl(exchange_account.pk)

        assert updated == 1
        sell.refresh_from_db()
        already_right.refresh_from_db()
        buy.refresh_from_db()
        assert sell.realized_pnl == Decimal("30")
        assert already_right.realized_pnl == Decimal("20")
        assert buy.realized_pnl == Decimal("0")

    def test_second_run_updates_nothing(self, make_trade, exchange_account):
        make_trade(side="BUY", executed_at=T0)
        make_trade(side="SELL", price=Decimal("150"), executed_at=T0 + timedelta(minutes=1))

        assert recalculate_account_pnl(exchange_account.pk) == 1
        assert recalculate_account_pnl(exchange_account.pk) == 0

    def test_user_totals_across_accounts(self, test_user, make_trade, exchange_account):
        second = test_user.exchange_accounts.create(name="Second")
        make_trade(side="SELL", price=Decimal("150"), realized_pnl=Decimal("5"))
        make_trade(account=second, side="SELL", price=Decimal("150"), realized_pnl=Decimal("7"))

        assert recalculate_user_pnl(test_user) == 2
        assert set(Trade.objects.values_list("realized_pnl", flat=True)) == {Decimal("0")}

    def test_user_without_accounts(self, test_user):
        with pytest.raises(NoExchangeAccountsError):
            recalculate_user_pnl(test_user)
