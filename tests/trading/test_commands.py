"""Tests for the trading management commands."""

from datetime import UTC, datetime
from decimal import Decimal
from io import StringIO
from unittest.mock import AsyncMock, patch

from django.core.management import CommandError, call_command

import pytest

from trading.models import SyncJob


@pytest.mark.django_db
class TestRecalculatePnlCommand:
    def test_single_user(self, test_user, make_trade):
        make_trade(trade_id="b", side="BUY", quantity=Decimal("1"), price=Decimal("100"))
        sell = make_trade(
            trade_id="s",
            side="SELL",
            quantity=Decimal("1"),
            price=Decimal("130"),
            executed_at=datetime(2024, 1, 20, tzinfo=UTC),
        )
        out = StringIO()

        call_command("recalculate_pnl", user=test_user.email, stdout=out)

        sell.refresh_from_db()
        assert sell.realized_pnl == Decimal("30")
        assert "PnL recalculated for 1 trades" in out.getvalue()

    def test_unknown_user(self):
        with pytest.raises(CommandError, match="User not found"):
            call_command("recalculate_pnl", user="nobody@example.com", stdout=StringIO())

    def test_all_users(self, make_trade, other_user):
        make_trade(side="SELL")
        out = StringIO()

        call_command("recalculate_pnl", "--all", stdout=out)

        assert "test@example.com: 0 trades updated" in out.getvalue()
        assert "other@example.com" not in out.getvalue()


@pytest.mark.django_db
class TestSyncTradesCommand:
    def test_runs_in_foreground(self, test_user, exchange_account):
        ingest = AsyncMock(return_value={"inserted": 2, "updated": 0})
        out = StringIO()

        with patch("services.exchanges.binance.sync_account", ingest):
            call_command(
                "sync_trades",
                user=test_user.email,
                start_date="2024-01-01",
                end_date="2024-01-03",
                symbols="btcbrl,ethbrl",
                stdout=out,
            )

        args = ingest.await_args.args
        assert args[0] == exchange_account.pk
        assert args[3] == ["BTCBRL", "ETHBRL"]
        job = SyncJob.objects.get()
        assert job.status == "completed"
        assert job.owner_tag == test_user.owner_tag
        assert "Done: 2 inserted, 0 updated" in out.getvalue()

    def test_invalid_window(self, test_user):
        with pytest.raises(CommandError, match="startDate is after endDate"):
            call_command(
                "sync_trades",
                user=test_user.email,
                start_date="2024-02-01",
                end_date="2024-01-01",
                stdout=StringIO(),
            )

    def test_no_accounts(self):
        out = StringIO()

        call_command("sync_trades", "--all", stdout=out)

        assert "No accounts found" in out.getvalue()
        assert not SyncJob.objects.exists()
