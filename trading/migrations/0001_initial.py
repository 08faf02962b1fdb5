import django.core.serializers.json
import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        ("accounts", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="SyncJob",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True, primary_key=True, serialize=False, verbose_name="ID"
                    ),
                ),
                ("job_id", models.CharField(max_length=100, unique=True)),
                ("owner_tag", models.CharField(db_index=True, max_length=64)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("running", "Running"),
                            ("completed", "Completed"),
                            ("error", "Error"),
                        ],
                        default="running",
                        max_length=10,
                    ),
                ),
                ("current_step", models.PositiveIntegerField(default=0)),
                ("total_steps", models.PositiveIntegerField(default=0)),
                ("current_symbol", models.CharField(blank=True, max_length=30)),
                ("current_date", models.CharField(blank=True, max_length=10)),
                ("message", models.TextField(blank=True)),
                (
                    "result",
                    models.JSONField(
                        blank=True,
                        encoder=django.core.serializers.json.DjangoJSONEncoder,
                        null=True,
                    ),
                ),
                ("error", models.TextField(blank=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField()),
            ],
            options={
                "indexes": [
                    models.Index(
                        fields=["owner_tag", "status", "updated_at"],
                        name="trading_job_owner_st_idx",
                    ),
                    models.Index(fields=["status", "updated_at"], name="trading_job_status_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Trade",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True, primary_key=True, serialize=False, verbose_name="ID"
                    ),
                ),
                ("exchange", models.CharField(default="BINANCE", max_length=20)),
                (
                    "market",
                    models.CharField(
                        choices=[("SPOT", "Spot"), ("FUTURES", "Futures")],
                        default="SPOT",
                        max_length=10,
                    ),
                ),
                ("symbol", models.CharField(max_length=30)),
                (
                    "side",
                    models.CharField(choices=[("BUY", "Buy"), ("SELL", "Sell")], max_length=4),
                ),
                ("quantity", models.DecimalField(decimal_places=8, max_digits=28)),
                ("price", models.DecimalField(decimal_places=8, max_digits=28)),
                ("fee_value", models.DecimalField(decimal_places=8, default=0, max_digits=28)),
                ("fee_asset", models.CharField(blank=True, max_length=20)),
                ("realized_pnl", models.DecimalField(decimal_places=8, default=0, max_digits=28)),
                (
                    "order_type",
                    models.CharField(
                        blank=True,
                        choices=[("LIMIT", "Limit"), ("MARKET", "Market")],
                        max_length=10,
                        null=True,
                    ),
                ),
                ("executed_at", models.DateTimeField()),
                ("order_id", models.CharField(blank=True, max_length=64, null=True)),
                ("trade_id", models.CharField(blank=True, max_length=64, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "account",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="trades",
                        to="accounts.exchangeaccount",
                    ),
                ),
            ],
            options={
                "indexes": [
                    models.Index(
                        fields=["account", "executed_at"], name="trading_tr_acct_exec_idx"
                    ),
                    models.Index(fields=["account", "trade_id"], name="trading_tr_acct_tid_idx"),
                    models.Index(fields=["account", "symbol"], name="trading_tr_acct_sym_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Cashflow",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True, primary_key=True, serialize=False, verbose_name="ID"
                    ),
                ),
                (
                    "type",
                    models.CharField(
                        choices=[
                            ("DEPOSIT", "Deposit"),
                            ("WITHDRAWAL", "Withdrawal"),
                            ("ADJUSTMENT", "Adjustment"),
                        ],
                        max_length=12,
                    ),
                ),
                ("asset", models.CharField(max_length=20)),
                ("amount", models.DecimalField(decimal_places=8, max_digits=28)),
                ("occurred_at", models.DateTimeField()),
                ("note", models.TextField(blank=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "account",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="cashflows",
                        to="accounts.exchangeaccount",
                    ),
                ),
            ],
            options={
                "ordering": ["-occurred_at"],
            },
        ),
    ]
