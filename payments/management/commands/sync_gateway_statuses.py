"""
Management command to pull payment statuses from ASAAS for every open
invoice linked to the gateway.

Run periodically via cron/scheduler:
    python manage.py sync_gateway_statuses
    python manage.py sync_gateway_statuses --from 2025-01-01 --to 2025-01-31
"""
from datetime import datetime

from django.core.management.base import BaseCommand, CommandError

from payments.services.sync import sync_all_statuses


class Command(BaseCommand):
    help = "Sync open invoice statuses with the ASAAS payment gateway"

    def add_arguments(self, parser):
        parser.add_argument(
            "--from",
            dest="due_from",
            type=str,
            help="Only invoices due on or after this date (YYYY-MM-DD)",
        )
        parser.add_argument(
            "--to",
            dest="due_to",
            type=str,
            help="Only invoices due on or before this date (YYYY-MM-DD)",
        )

    def _parse_date(self, value):
        if not value:
            return None
        try:
            return datetime.strptime(value, "%Y-%m-%d").date()
        except ValueError:
            raise CommandError("Invalid date format. Use YYYY-MM-DD")

    def handle(self, *args, **options):
        due_from = self._parse_date(options.get("due_from"))
        due_to = self._parse_date(options.get("due_to"))

        summary = sync_all_statuses(due_from=due_from, due_to=due_to)

        self.stdout.write(f"Checked: {summary['checked']}")
        self.stdout.write(self.style.SUCCESS(f"Updated: {summary['updated']}"))
        if summary["failed"]:
            self.stdout.write(self.style.ERROR(f"Failed: {summary['failed']}"))
