"""
Recompute FIFO realized PnL from the command line.

Usage:
    # One user
    python manage.py recalculate_pnl --user=user@example.com

    # Every user with exchange accounts
    python manage.py recalculate_pnl --all
"""

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand, CommandError

from services.core.exceptions import NoExchangeAccountsError
from services.trades.pnl import recalculate_user_pnl

User = get_user_model()


class Command(BaseCommand):
    help = "Recalculate realized PnL of sell trades using FIFO lot matching"

    def add_arguments(self, parser):
        user_group = parser.add_mutually_exclusive_group(required=True)
        user_group.add_argument("--user", type=str, help="Email address of user to recalculate")
        user_group.add_argument(
            "--all", action="store_true", help="Recalculate every user with exchange accounts"
        )

    def handle(self, *args, **options):  # noqa: ARG002
        if options.get("user"):
            try:
                users = [User.objects.get(email=options["user"])]
            except User.DoesNotExist as exc:
                raise CommandError(f"User not found: {options['user']}") from exc
        else:
            users = list(User.objects.filter(exchange_accounts__isnull=False).distinct())

        total = 0
        for user in users:
            try:
                updated = recalculate_user_pnl(user)
            except NoExchangeAccountsError:
                self.stdout.write(self.style.WARNING(f"{user.email}: no exchange accounts"))
                continue
            total += updated
            self.stdout.write(f"{user.email}: {updated} trades updated")

        self.stdout.write(self.style.SUCCESS(f"PnL recalculated for {total} trades"))
