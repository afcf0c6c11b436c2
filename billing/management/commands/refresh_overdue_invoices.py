"""
Management command to recalculate interest and penalties on overdue
invoices with the current billing configuration.

Run daily via cron/scheduler:
    python manage.py refresh_overdue_invoices
"""
from datetime import datetime

from django.core.management.base import BaseCommand, CommandError

from billing.services import refresh_overdue_invoices


class Command(BaseCommand):
    help = "Recalculate overdue invoices and escalate them to legal when needed"

    def add_arguments(self, parser):
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Show what would be updated without saving",
        )
        parser.add_argument(
            "--date",
            type=str,
            help="Reference date (YYYY-MM-DD), defaults to today",
        )

    def handle(self, *args, **options):
        dry_run = options.get("dry_run", False)
        date_str = options.get("date")

        as_of = None
        if date_str:
            try:
                as_of = datetime.strptime(date_str, "%Y-%m-%d").date()
            except ValueError:
                raise CommandError("Invalid date format. Use YYYY-MM-DD")

        summary = refresh_overdue_invoices(as_of=as_of, dry_run=dry_run)

        prefix = "DRY-RUN: would update" if dry_run else "Updated"
        self.stdout.write(f"Reference date: {summary['as_of']}")
        self.stdout.write(f"Checked: {summary['checked']}")
        self.stdout.write(self.style.SUCCESS(f"{prefix}: {summary['updated']}"))
        self.stdout.write(self.style.WARNING(f"Sent to legal: {summary['escalated']}"))
        if summary["failed"]:
            self.stdout.write(self.style.ERROR(f"Failed: {summary['failed']}"))
