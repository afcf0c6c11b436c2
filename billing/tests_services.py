from datetime import date, timedelta
from decimal import Decimal
from io import StringIO
from unittest.mock import patch

from django.core.exceptions import ValidationError
from django.core.management import call_command
from django.core.management.base import CommandError
from django.db import DatabaseError
from django.test import TestCase
from django.contrib.auth import get_user_model

from .models import BillingConfiguration, Invoice
from .services import (
    get_configuration,
    preview_configuration,
    refresh_overdue_invoices,
    update_configuration,
)

User = get_user_model()

AS_OF = date(2025, 6, 30)


class BillingServiceTestCase(TestCase):
    def setUp(self):
        configuration = BillingConfiguration.load()
        configuration.daily_interest_rate = Decimal("0.001")
        configuration.late_penalty_rate = Decimal("2")
        configuration.max_accumulated_interest_rate = Decimal("10")
        configuration.grace_period_days = 0
        configuration.legal_escalation_days = 30
        configuration.save()
        self.configuration = configuration

    def create_invoice(self, days_before_as_of, **kwargs):
        values = {
            "unit_code": 10,
            "charge_type": "ROYALTIES",
            "original_amount": Decimal("1000.00"),
            "due_date": AS_OF - timedelta(days=days_before_as_of),
        }
        values.update(kwargs)
        return Invoice.objects.create(**values)


class ConfigurationServiceTests(BillingServiceTestCase):
    def test_configuration_is_a_singleton(self):
        BillingConfiguration().save()
        self.assertEqual(BillingConfiguration.objects.count(), 1)
        self.assertEqual(get_configuration().pk, 1)

    def test_configuration_cannot_be_deleted(self):
        with self.assertRaises(ValidationError):
            get_configuration().delete()

    def test_defaults_are_created_when_missing(self):
        BillingConfiguration.objects.all().delete()
        configuration = get_configuration()
        self.assertEqual(configuration.legal_escalation_days, 30)
        self.assertEqual(configuration.daily_interest_rate, Decimal("0.0033"))

    def test_update_configuration_stamps_user(self):
        admin = User.objects.create_user(email="admin@franquia.test", password="x", role="ADMIN")

        configuration = update_configuration({"grace_period_days": 5}, updated_by=admin)

        self.assertEqual(configuration.grace_period_days, 5)
        self.assertEqual(configuration.updated_by, admin)

    def test_update_configuration_rejects_half_configured_discount(self):
        with self.assertRaises(ValidationError):
            update_configuration({"early_payment_discount_rate": Decimal("5")})

    def test_model_rates_feed_the_calculator(self):
        rates = self.configuration.as_rates()
        self.assertEqual(rates.daily_interest_rate, Decimal("0.001"))
        self.assertFalse(rates.has_early_payment_discount)

    def test_preview(self):
        result = preview_configuration(amount=Decimal("500"), days=5)
        self.assertEqual(result.days_overdue, 5)
        self.assertEqual(result.interest_amount, Decimal("2.50"))
        self.assertEqual(result.penalty_amount, Decimal("10.00"))


class RefreshOverdueInvoicesTests(BillingServiceTestCase):
    def test_recent_overdue_invoice_becomes_overdue(self):
        invoice = self.create_invoice(10)

        summary = refresh_overdue_invoices(as_of=AS_OF)

        invoice.refresh_from_db()
        self.assertEqual(invoice.status, "OVERDUE")
        self.assertEqual(invoice.days_overdue, 10)
        self.assertEqual(invoice.interest_applied, Decimal("10.00"))
        self.assertEqual(invoice.penalty_applied, Decimal("20.00"))
        self.assertEqual(invoice.updated_amount, Decimal("1030.00"))
        self.assertEqual(summary["updated"], 1)
        self.assertEqual(summary["escalated"], 0)

    def test_escalation_threshold(self):
        at_threshold = self.create_invoice(30)
        past_threshold = self.create_invoice(31)

        summary = refresh_overdue_invoices(as_of=AS_OF)

        at_threshold.refresh_from_db()
        past_threshold.refresh_from_db()
        self.assertEqual(at_threshold.status, "OVERDUE")
        self.assertEqual(past_threshold.status, "LEGAL")
        self.assertEqual(summary["escalated"], 1)

    def test_invoice_within_grace_keeps_status(self):
        self.configuration.grace_period_days = 5
        self.configuration.save()
        invoice = self.create_invoice(3, status="OPEN")

        refresh_overdue_invoices(as_of=AS_OF)

        invoice.refresh_from_db()
        self.assertEqual(invoice.status, "OPEN")
        self.assertEqual(invoice.days_overdue, 0)
        self.assertEqual(invoice.updated_amount, Decimal("1000.00"))

    def test_closed_and_future_invoices_are_ignored(self):
        paid = self.create_invoice(10, status="PAID")
        negotiated = self.create_invoice(10, status="NEGOTIATED")
        future = self.create_invoice(-5)

        summary = refresh_overdue_invoices(as_of=AS_OF)

        self.assertEqual(summary["checked"], 0)
        for invoice in (paid, negotiated, future):
            invoice.refresh_from_db()
            self.assertEqual(invoice.updated_amount, Decimal("1000.00"))

    def test_dry_run_saves_nothing(self):
        invoice = self.create_invoice(40)

        summary = refresh_overdue_invoices(as_of=AS_OF, dry_run=True)

        invoice.refresh_from_db()
        self.assertEqual(invoice.status, "PENDING")
        self.assertEqual(summary["updated"], 1)
        self.assertEqual(summary["escalated"], 1)

    def test_failed_save_is_counted_and_skipped(self):
        self.create_invoice(10)
        self.create_invoice(12)

        original_save = Invoice.save
        calls = {"count": 0}

        def flaky_save(instance, *args, **kwargs):
            calls["count"] += 1
            if calls["count"] == 1:
                raise DatabaseError("locked")
            return original_save(instance, *args, **kwargs)

        with patch.object(Invoice, "save", flaky_save):
            summary = refresh_overdue_invoices(as_of=AS_OF)

        self.assertEqual(summary["failed"], 1)
        self.assertEqual(summary["updated"], 1)

    def test_invalid_invoice_does_not_stop_the_batch(self):
        broken = self.create_invoice(10, original_amount=Decimal("0.00"))
        valid = self.create_invoice(10, original_amount=Decimal("100.00"))

        summary = refresh_overdue_invoices(as_of=AS_OF)

        self.assertEqual(summary["checked"], 2)
        self.assertEqual(summary["failed"], 1)
        self.assertEqual(summary["updated"], 1)

        valid.refresh_from_db()
        self.assertEqual(valid.status, "OVERDUE")
        self.assertEqual(valid.updated_amount, Decimal("103.00"))

        broken.refresh_from_db()
        self.assertEqual(broken.status, "PENDING")

    def test_invoice_amount_must_be_positive(self):
        invoice = Invoice(
            unit_code=10,
            charge_type="RENT",
            original_amount=Decimal("0.00"),
            due_date=AS_OF,
        )
        with self.assertRaises(ValidationError) as ctx:
            invoice.full_clean()
        self.assertIn("original_amount", ctx.exception.message_dict)

    def test_rerun_is_stable(self):
        invoice = self.create_invoice(15)

        refresh_overdue_invoices(as_of=AS_OF)
        invoice.refresh_from_db()
        first = (invoice.updated_amount, invoice.interest_applied, invoice.status)

        refresh_overdue_invoices(as_of=AS_OF)
        invoice.refresh_from_db()
        self.assertEqual((invoice.updated_amount, invoice.interest_applied, invoice.status), first)


class RefreshOverdueCommandTests(BillingServiceTestCase):
    def test_command_updates_invoices(self):
        invoice = self.create_invoice(45)
        out = StringIO()

        call_command("refresh_overdue_invoices", "--date", AS_OF.isoformat(), stdout=out)

        invoice.refresh_from_db()
        self.assertEqual(invoice.status, "LEGAL")
        self.assertIn("Updated: 1", out.getvalue())
        self.assertIn("Sent to legal: 1", out.getvalue())

    def test_command_dry_run(self):
        invoice = self.create_invoice(45)
        out = StringIO()

        call_command("refresh_overdue_invoices", "--date", AS_OF.isoformat(), "--dry-run", stdout=out)

        invoice.refresh_from_db()
        self.assertEqual(invoice.status, "PENDING")
        self.assertIn("DRY-RUN", out.getvalue())

    def test_command_rejects_bad_date(self):
        with self.assertRaises(CommandError):
            call_command("refresh_overdue_invoices", "--date", "30/06/2025", stdout=StringIO())
