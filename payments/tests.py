import json
from datetime import date
from decimal import Decimal
from io import StringIO
from unittest.mock import patch

import requests
from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import TestCase, override_settings
from django.urls import reverse

from accounts.models import User
from billing.exceptions import GatewayNotLinked
from billing.models import BillingConfiguration, Invoice
from notifications.models import Notification
from .models import GatewayWebhookLog
from .services import asaas_client, sync
from .services.status_mapping import map_gateway_status

WEBHOOK_TOKEN = "webhook-secret"


@override_settings(ASAAS_WEBHOOK_TOKEN=WEBHOOK_TOKEN)
class AsaasWebhookTests(TestCase):
    def setUp(self):
        self.url = reverse("asaas-webhook")
        self.franchisee = User.objects.create_user(
            email="unidade7@franquia.test",
            password="password123",
            role="FRANCHISEE",
            unit_code=7,
        )
        self.invoice = Invoice.objects.create(
            unit_code=7,
            franchisee=self.franchisee,
            charge_type="ROYALTIES",
            original_amount=Decimal("1500.00"),
            due_date=date(2025, 5, 10),
            asaas_payment_id="pay_123",
        )

    def post(self, payload, token=WEBHOOK_TOKEN):
        extra = {"HTTP_ASAAS_ACCESS_TOKEN": token} if token else {}
        body = payload if isinstance(payload, str) else json.dumps(payload)
        return self.client.post(self.url, data=body, content_type="application/json", **extra)

    def test_rejects_missing_token(self):
        response = self.post({"event": "PAYMENT_RECEIVED"}, token=None)

        self.assertEqual(response.status_code, 401)
        self.assertFalse(GatewayWebhookLog.objects.exists())

    def test_rejects_wrong_token(self):
        response = self.post({"event": "PAYMENT_RECEIVED"}, token="guess")
        self.assertEqual(response.status_code, 401)

    @override_settings(ASAAS_WEBHOOK_TOKEN="")
    def test_rejects_everything_when_token_not_configured(self):
        response = self.post({"event": "PAYMENT_RECEIVED"}, token="")
        self.assertEqual(response.status_code, 401)

    def test_rejects_invalid_json(self):
        response = self.post("{not json")
        self.assertEqual(response.status_code, 400)

        response = self.post("[1, 2, 3]")
        self.assertEqual(response.status_code, 400)

    def test_only_accepts_post(self):
        response = self.client.get(self.url)
        self.assertEqual(response.status_code, 405)

    def test_payment_received_marks_invoice_paid(self):
        payload = {
            "event": "PAYMENT_RECEIVED",
            "payment": {"id": "pay_123", "status": "RECEIVED", "value": 1512.40},
        }

        response = self.post(payload)

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"success": True})

        self.invoice.refresh_from_db()
        self.assertEqual(self.invoice.status, "PAID")
        self.assertEqual(self.invoice.updated_amount, Decimal("1512.40"))

        log = GatewayWebhookLog.objects.get()
        self.assertEqual(log.processing_status, "SUCCESS")
        self.assertEqual(log.invoice, self.invoice)
        self.assertEqual(log.event_type, "PAYMENT_RECEIVED")
        self.assertEqual(log.payment_id, "pay_123")

        self.assertTrue(
            Notification.objects.filter(
                recipient=self.franchisee, title="Payment Confirmed"
            ).exists()
        )

    def test_unknown_gateway_status_falls_back_to_pending(self):
        self.invoice.status = "OVERDUE"
        self.invoice.save()

        response = self.post({"event": "PAYMENT_UPDATED", "payment": {"id": "pay_123", "status": "SOMETHING_NEW"}})

        self.assertEqual(response.status_code, 200)
        self.invoice.refresh_from_db()
        self.assertEqual(self.invoice.status, "PENDING")
        self.assertEqual(self.invoice.updated_amount, Decimal("1500.00"))

    def test_unknown_payment_is_logged_as_error(self):
        response = self.post({"event": "PAYMENT_RECEIVED", "payment": {"id": "pay_missing", "status": "RECEIVED"}})

        self.assertEqual(response.status_code, 404)
        log = GatewayWebhookLog.objects.get()
        self.assertEqual(log.processing_status, "ERROR")
        self.assertIn("pay_missing", log.error_message)

    def test_payload_without_payment(self):
        response = self.post({"event": "PAYMENT_RECEIVED", "payment": None})

        self.assertEqual(response.status_code, 400)
        log = GatewayWebhookLog.objects.get()
        self.assertEqual(log.processing_status, "ERROR")
        self.assertEqual(log.payment_id, "")


class StatusMappingTests(TestCase):
    def test_known_statuses(self):
        self.assertEqual(map_gateway_status("RECEIVED"), "PAID")
        self.assertEqual(map_gateway_status("CONFIRMED"), "PAID")
        self.assertEqual(map_gateway_status("OVERDUE"), "OVERDUE")
        self.assertEqual(map_gateway_status("REFUNDED"), "CANCELLED")
        self.assertEqual(map_gateway_status("PENDING"), "PENDING")

    def test_unknown_status_uses_default(self):
        self.assertIsNone(map_gateway_status("CHARGEBACK_DISPUTE"))
        self.assertEqual(map_gateway_status(None, default="PENDING"), "PENDING")


@override_settings(
    ASAAS_API_KEY="test-key",
    ASAAS_SANDBOX_URL="https://sandbox.test/v3",
    ASAAS_PRODUCTION_URL="https://live.test/v3",
    ASAAS_TIMEOUT=5,
)
class AsaasClientTests(TestCase):
    def test_base_url_follows_configured_environment(self):
        self.assertEqual(asaas_client.get_base_url(), "https://sandbox.test/v3")

        configuration = BillingConfiguration.load()
        configuration.asaas_environment = "production"
        configuration.save()

        self.assertEqual(asaas_client.get_base_url(), "https://live.test/v3")

    @patch("payments.services.asaas_client.requests.request")
    def test_get_payment_sends_access_token(self, mock_request):
        mock_request.return_value.json.return_value = {"id": "pay_1", "status": "PENDING"}

        result = asaas_client.get_payment("pay_1")

        self.assertEqual(result["status"], "PENDING")
        args, kwargs = mock_request.call_args
        self.assertEqual(args, ("GET", "https://sandbox.test/v3/payments/pay_1"))
        self.assertEqual(kwargs["headers"]["access_token"], "test-key")
        self.assertEqual(kwargs["timeout"], 5)

    @patch("payments.services.asaas_client.requests.request")
    def test_http_errors_propagate(self, mock_request):
        mock_request.return_value.raise_for_status.side_effect = requests.HTTPError("404")

        with self.assertRaises(requests.HTTPError):
            asaas_client.delete_payment("pay_1")

    def test_document_urls(self):
        self.assertEqual(
            asaas_client.get_bank_slip_url("pay_9"),
            "https://sandbox.test/v3/payments/pay_9/bankSlipUrl",
        )
        self.assertEqual(
            asaas_client.get_payment_url("pay_9"),
            "https://sandbox.test/v3/payments/pay_9/invoiceUrl",
        )


class GatewaySyncTests(TestCase):
    def setUp(self):
        self.invoice = Invoice.objects.create(
            unit_code=3,
            charge_type="RENT",
            original_amount=Decimal("800.00"),
            due_date=date(2025, 4, 1),
            asaas_payment_id="pay_sync",
        )
        self.unlinked = Invoice.objects.create(
            unit_code=3,
            charge_type="RENT",
            original_amount=Decimal("800.00"),
            due_date=date(2025, 4, 1),
        )

    @patch("payments.services.sync.asaas_client.get_payment")
    def test_sync_updates_changed_status(self, mock_get_payment):
        mock_get_payment.return_value = {"id": "pay_sync", "status": "CONFIRMED"}

        sync.sync_invoice_status(self.invoice)

        self.invoice.refresh_from_db()
        self.assertEqual(self.invoice.status, "PAID")

    @patch("payments.services.sync.asaas_client.get_payment")
    def test_sync_ignores_unknown_status(self, mock_get_payment):
        mock_get_payment.return_value = {"id": "pay_sync", "status": "CHARGEBACK_DISPUTE"}

        sync.sync_invoice_status(self.invoice)

        self.invoice.refresh_from_db()
        self.assertEqual(self.invoice.status, "PENDING")

    def test_unlinked_invoice_cannot_sync(self):
        with self.assertRaises(GatewayNotLinked):
            sync.sync_invoice_status(self.unlinked)
        with self.assertRaises(GatewayNotLinked):
            sync.generate_bank_slip(self.unlinked)

    @patch("payments.services.sync.asaas_client.update_payment")
    def test_push_changes_builds_gateway_payload(self, mock_update):
        pushed = sync.push_invoice_changes(
            self.invoice,
            {"original_amount": Decimal("850.50"), "due_date": date(2025, 4, 15), "notes": "Ajuste"},
        )

        self.assertTrue(pushed)
        mock_update.assert_called_once_with(
            "pay_sync",
            {"value": 850.5, "dueDate": "2025-04-15", "description": "Ajuste"},
        )

    @patch("payments.services.sync.asaas_client.update_payment")
    def test_push_changes_swallows_gateway_errors(self, mock_update):
        mock_update.side_effect = requests.ConnectionError("down")

        self.assertFalse(sync.push_invoice_changes(self.invoice, {"notes": "x"}))

    @patch("payments.services.sync.asaas_client.delete_payment")
    def test_remove_skips_unlinked_invoices(self, mock_delete):
        self.assertFalse(sync.remove_from_gateway(self.unlinked))
        mock_delete.assert_not_called()

        self.assertTrue(sync.remove_from_gateway(self.invoice))
        mock_delete.assert_called_once_with("pay_sync")


class BulkGatewaySyncTests(TestCase):
    def create_invoice(self, payment_id, **kwargs):
        values = {
            "unit_code": 3,
            "charge_type": "ROYALTIES",
            "original_amount": Decimal("500.00"),
            "due_date": date(2025, 4, 10),
            "asaas_payment_id": payment_id,
        }
        values.update(kwargs)
        return Invoice.objects.create(**values)

    @patch("payments.services.sync.asaas_client.get_payment")
    def test_gateway_error_does_not_stop_the_run(self, mock_get_payment):
        statuses = {"pay_down": requests.ConnectionError("timeout"), "pay_ok": {"status": "RECEIVED"}}

        def fake_get_payment(payment_id):
            value = statuses[payment_id]
            if isinstance(value, Exception):
                raise value
            return value

        mock_get_payment.side_effect = fake_get_payment
        failing = self.create_invoice("pay_down")
        paid = self.create_invoice("pay_ok")

        summary = sync.sync_all_statuses()

        self.assertEqual(summary, {"checked": 2, "updated": 1, "failed": 1})
        paid.refresh_from_db()
        failing.refresh_from_db()
        self.assertEqual(paid.status, "PAID")
        self.assertEqual(failing.status, "PENDING")

    @patch("payments.services.sync.asaas_client.get_payment")
    def test_only_open_linked_invoices_are_checked(self, mock_get_payment):
        mock_get_payment.return_value = {"status": "PENDING"}
        self.create_invoice("pay_open")
        self.create_invoice("pay_paid", status="PAID")
        self.create_invoice("")

        summary = sync.sync_all_statuses()

        self.assertEqual(summary, {"checked": 1, "updated": 0, "failed": 0})
        mock_get_payment.assert_called_once_with("pay_open")

    @patch("payments.services.sync.asaas_client.get_payment")
    def test_due_date_range(self, mock_get_payment):
        mock_get_payment.return_value = {"status": "OVERDUE"}
        self.create_invoice("pay_march", due_date=date(2025, 3, 10))
        april = self.create_invoice("pay_april", due_date=date(2025, 4, 10))

        summary = sync.sync_all_statuses(due_from=date(2025, 4, 1), due_to=date(2025, 4, 30))

        self.assertEqual(summary["checked"], 1)
        mock_get_payment.assert_called_once_with("pay_april")
        april.refresh_from_db()
        self.assertEqual(april.status, "OVERDUE")

    @patch("payments.services.sync.asaas_client.get_payment")
    def test_command(self, mock_get_payment):
        mock_get_payment.return_value = {"status": "CONFIRMED"}
        self.create_invoice("pay_cmd")
        out = StringIO()

        call_command("sync_gateway_statuses", "--from", "2025-04-01", stdout=out)

        self.assertIn("Checked: 1", out.getvalue())
        self.assertIn("Updated: 1", out.getvalue())

    def test_command_rejects_bad_date(self):
        with self.assertRaises(CommandError):
            call_command("sync_gateway_statuses", "--to", "31/04/2025", stdout=StringIO())
