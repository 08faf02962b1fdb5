"""
Run a trade sync in the foreground, without Celery.

Usage:
    python manage.py sync_trades --user=user@example.com --start-date=2024-01-01 --end-date=2024-01-07
    python manage.py sync_trades --all --symbols=BTCBRL,ETHBRL
"""

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand, CommandError

from services.core.constants import SYSTEM_OWNER_TAG
from services.core.exceptions import DataError
from services.core.utils.async_utils import run_async
from services.jobs.registry import start_job
from services.sync.orchestrator import SyncOrchestrator, SyncWindow, resolve_accounts

User = get_user_model()


class Command(BaseCommand):
    help = "Fetch exchange trades for one user or all active accounts"

    def add_arguments(self, parser):
        user_group = parser.add_mutually_exclusive_group(required=True)
        user_group.add_argument("--user", type=str, help="Email address of user to sync")
        user_group.add_argument("--all", action="store_true", help="Sync every active account")
        parser.add_argument("--start-date", type=str, help="First day (YYYY-MM-DD)")
        parser.add_argument("--end-date", type=str, help="Last day (YYYY-MM-DD)")
        parser.add_argument("--symbols", type=str, help="Comma-separated symbols")

    def handle(self, *args, **options):  # noqa: ARG002
        user = None
        if options.get("user"):
            try:
                user = User.objects.get(email=options["user"])
            except User.DoesNotExist as exc:
                raise CommandError(f"User not found: {options['user']}") from exc

        data = {"startDate": options.get("start_date"), "endDate": options.get("end_date")}
        if options.get("symbols"):
            data["symbols"] = [s for s in options["symbols"].split(",") if s.strip()]
        try:
            window = SyncWindow.from_request_data(data)
        except DataError as exc:
            raise CommandError(str(exc)) from exc

        accounts = resolve_accounts(user)
        if not accounts:
            self.stdout.write(self.style.WARNING("No accounts found"))
            return

        owner_tag = user.owner_tag if user is not None else SYSTEM_OWNER_TAG
        job_id = start_job(owner_tag, message="Starting sync...")
        self.stdout.write(
            f"Job {job_id}: {len(accounts)} accounts, "
            f"{window.start_date}..{window.end_date}, {', '.join(window.symbols)}"
        )

        summary = run_async(
            SyncOrchestrator().run(
                job_id, owner_tag, [(account.pk, account.name) for account in accounts], window
            )
        )

        for result in summary.accounts:
            line = f"  {result.name}: {result.inserted} inserted, {result.updated} updated"
            if result.error:
                self.stdout.write(self.style.ERROR(f"{line} ({result.error})"))
            else:
                self.stdout.write(line)
        self.stdout.write(
            self.style.SUCCESS(f"Done: {summary.inserted} inserted, {summary.updated} updated")
        )
