"""Tests for duplicate trade removal."""

from datetime import UTC, datetime
from decimal import Decimal
from unittest.mock import patch

import pytest

from accounts.models import ExchangeAccount
from services.core.exceptions import NoExchangeAccountsError
from services.jobs.registry import get_progress, start_job
from services.trades.deduplication import (
    TradeDeduplicator,
    run_deduplication_job,
    start_deduplication,
)
from services.trades.filters import TradeFilter
from trading.models import Trade

T0 = datetime(2024, 1, 15, 12, 0, 0, 100000, tzinfo=UTC)


@pytest.mark.django_db
class TestTradeIdPass:
    def test_keeps_newest_of_each_trade_id(self, make_trade, exchange_account):
        make_trade(trade_id="1001")
        make_trade(trade_id="1001")
        newest = make_trade(trade_id="1001")
        single = make_trade(trade_id="1002")

        result = TradeDeduplicator([exchange_account.pk]).remove_trade_id_duplicates()

        assert result.duplicates_found == 2
        assert result.deleted == 2
        assert set(Trade.objects.values_list("pk", flat=True)) == {newest.pk, single.pk}

    def test_newest_is_by_created_at(self, make_trade, exchange_account):
        """A later pk with an older created_at loses."""
        older_row = make_trade(trade_id="1001")
        newer_row = make_trade(trade_id="1001")
        Trade.objects.filter(pk=newer_row.pk).update(created_at=datetime(2020, 1, 1, tzinfo=UTC))

        TradeDeduplicator([exchange_account.pk]).remove_trade_id_duplicates()

        assert list(Trade.objects.values_list("pk", flat=True)) == [older_row.pk]

    def test_same_trade_id_on_different_accounts_is_kept(self, make_trade, exchange_account):
        second = ExchangeAccount.objects.create(user=exchange_account.user, name="Futures")
        make_trade(trade_id="1001")
        make_trade(trade_id="1001", account=second)

        result = TradeDeduplicator([exchange_account.pk, second.pk]).remove_trade_id_duplicates()

        assert result.deleted == 0
        assert Trade.objects.count() == 2


@pytest.mark.django_db
class TestSyntheticKeyPass:
    def test_collapses_matching_trades_within_a_second(self, make_trade, exchange_account):
        """Trades sharing the synthetic key collapse to the newest row."""
        make_trade(executed_at=T0, price=Decimal("100.5"), quantity=Decimal("0.25"))
        keep = make_trade(
            executed_at=T0.replace(microsecond=900000),
            price=Decimal("100.50000000"),
            quantity=Decimal("0.25000000"),
        )

        result = TradeDeduplicator([exchange_account.pk]).remove_synthetic_duplicates()

        assert result.deleted == 1
        assert list(Trade.objects.values_list("pk", flat=True)) == [keep.pk]

    def test_different_second_or_side_is_not_duplicate(self, make_trade, exchange_account):
        make_trade(executed_at=T0)
        make_trade(executed_at=T0.replace(second=1))
        make_trade(executed_at=T0, side="SELL")

        result = TradeDeduplicator([exchange_account.pk]).remove_synthetic_duplicates()

        assert result.deleted == 0

    def test_trades_with_any_id_are_excluded(self, make_trade, exchange_account):
        make_trade(executed_at=T0, order_id="55")
        make_trade(executed_at=T0, order_id="56")
        make_trade(executed_at=T0)

        result = TradeDeduplicator([exchange_account.pk]).remove_synthetic_duplicates()

        assert result.deleted == 0


@pytest.mark.django_db
class TestDeduplicatorRun:
    def test_idempotent(self, make_trade, exchange_account):
        """A second run finds nothing."""
        make_trade(trade_id="1")
        make_trade(trade_id="1")
        make_trade(executed_at=T0)
        make_trade(executed_at=T0)

        first = TradeDeduplicator([exchange_account.pk]).run()
        second = TradeDeduplicator([exchange_account.pk]).run()

        assert first.deleted == 2
        assert second.duplicates_found == 0
        assert second.deleted == 0
        assert Trade.objects.count() == 2

    def test_filter_limits_scope(self, make_trade, exchange_account):
        make_trade(trade_id="1", symbol="ETHBRL")
        make_trade(trade_id="1", symbol="ETHBRL")

        result = TradeDeduplicator([exchange_account.pk], TradeFilter(symbol="BTCBRL")).run()

        assert result.deleted == 0

    def test_pass_callback(self, exchange_account):
        calls = []
        TradeDeduplicator([exchange_account.pk]).run(on_pass_complete=calls.append)
        assert calls == [1, 2]


@pytest.mark.django_db
class TestDeduplicationJob:
    def test_job_reports_deleted_count(self, make_trade, exchange_account):
        make_trade(trade_id="1")
        make_trade(trade_id="1")
        job_id = start_job("1", total_steps=2)

        run_deduplication_job(job_id, "1", [exchange_account.pk], TradeFilter())

        state = get_progress(job_id)
        assert state.status == "completed"
        assert (state.current_step, state.total_steps) == (2, 2)
        assert state.result == {"inserted": 0, "updated": 1}

    def test_start_requires_accounts(self, test_user):
        with pytest.raises(NoExchangeAccountsError):
            start_deduplication(test_user, TradeFilter())

    def test_start_enqueues_task(self, test_user, exchange_account):
        with patch("trading.tasks.deduplicate_trades_task.delay") as mock_delay:
            response = start_deduplication(test_user, TradeFilter(month="2024-01"))

        assert response["ok"] is True
        state = get_progress(response["jobId"])
        assert state.status == "running"
        assert (state.current_step, state.total_steps) == (0, 2)
        kwargs = mock_delay.call_args.kwargs
        assert kwargs["account_ids"] == [exchange_account.pk]
        assert kwargs["trade_filter"]["month"] == "2024-01"
