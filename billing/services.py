import logging
from datetime import timedelta
from decimal import Decimal

from django.db import DatabaseError
from django.db.models import Sum
from django.utils import timezone

from .calculator import calculate_adjustment
from .constants import OPEN_STATUSES, PREVIEW_AMOUNT, PREVIEW_DAYS
from .exceptions import InvalidCalculationInput
from .models import BillingConfiguration, Invoice

logger = logging.getLogger(__name__)


# -------------------------
# Configuration
# -------------------------
def get_configuration():
    return BillingConfiguration.load()


def update_configuration(data, updated_by=None):
    """
    Apply a partial update to the billing configuration.

    `data` is expected to be already validated (see
    BillingConfigurationSerializer).
    """
    configuration = get_configuration()
    for field, value in data.items():
        setattr(configuration, field, value)
    configuration.updated_by = updated_by
    configuration.clean()
    configuration.save()

    logger.info(
        f"Billing configuration updated by {updated_by or 'SYSTEM'}: "
        f"{', '.join(sorted(data)) or 'no fields'}"
    )
    return configuration


def preview_configuration(amount=PREVIEW_AMOUNT, days=PREVIEW_DAYS, configuration=None):
    """
    Simulate an invoice due today, evaluated `days` later, with the
    current (or given) configuration.
    """
    configuration = configuration or get_configuration()
    due_date = timezone.localdate()
    return calculate_adjustment(
        amount,
        due_date,
        configuration,
        as_of_date=due_date + timedelta(days=days),
    )


# -------------------------
# Overdue refresh
# -------------------------
def status_for_days_overdue(days_overdue, configuration, current_status):
    if days_overdue <= 0:
        return current_status
    if days_overdue <= configuration.legal_escalation_days:
        return "OVERDUE"
    return "LEGAL"


def refresh_overdue_invoices(as_of=None, dry_run=False):
    """
    Recalculate interest, penalty and updated amount for every open invoice
    past its due date, moving it to OVERDUE or LEGAL as needed.

    Returns a summary dict with the number of invoices updated, escalated to
    legal and failed.
    """
    as_of = as_of or timezone.localdate()
    configuration = get_configuration()

    overdue_invoices = Invoice.objects.filter(
        due_date__lt=as_of,
        status__in=OPEN_STATUSES,
    )

    summary = {"as_of": as_of, "checked": 0, "updated": 0, "escalated": 0, "failed": 0}

    for invoice in overdue_invoices:
        summary["checked"] += 1
        try:
            result = invoice.calculate_adjustment(configuration, as_of_date=as_of)
        except InvalidCalculationInput as e:
            summary["failed"] += 1
            logger.error(f"Skipping invoice {invoice.id}: {str(e)}")
            continue

        new_status = status_for_days_overdue(
            result.days_overdue, configuration, invoice.status
        )

        if new_status == "LEGAL":
            summary["escalated"] += 1

        if dry_run:
            summary["updated"] += 1
            continue

        invoice.updated_amount = result.total_amount
        invoice.interest_applied = result.interest_amount
        invoice.penalty_applied = result.penalty_amount
        invoice.days_overdue = result.days_overdue
        invoice.status = new_status

        try:
            invoice.save(
                update_fields=[
                    "updated_amount",
                    "interest_applied",
                    "penalty_applied",
                    "days_overdue",
                    "status",
                    "updated_at",
                ]
            )
            summary["updated"] += 1
        except DatabaseError as e:
            summary["failed"] += 1
            logger.error(f"Failed to update invoice {invoice.id}: {str(e)}")

    logger.info(
        f"Overdue refresh as of {as_of}: checked={summary['checked']} "
        f"updated={summary['updated']} escalated={summary['escalated']} "
        f"failed={summary['failed']}"
    )
    return summary


# -------------------------
# Statistics
# -------------------------
class InvoiceStatisticsService:
    @staticmethod
    def get_statistics(queryset=None, today=None):
        """
        Totals over a set of invoices (all invoices by default).
        """
        queryset = Invoice.objects.all() if queryset is None else queryset
        today = today or timezone.localdate()

        unpaid = queryset.exclude(status="PAID")
        overdue = unpaid.filter(due_date__lt=today)

        return {
            "total_invoices": queryset.count(),
            "open_amount": InvoiceStatisticsService._sum(unpaid),
            "overdue_amount": InvoiceStatisticsService._sum(overdue),
            "overdue_invoices": overdue.count(),
            "paid_invoices": queryset.filter(status="PAID").count(),
        }

    @staticmethod
    def _sum(queryset):
        return queryset.aggregate(Sum("updated_amount"))["updated_amount__sum"] or Decimal("0.00")
