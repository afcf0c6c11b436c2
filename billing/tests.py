from datetime import date, timedelta
from decimal import Decimal
from unittest.mock import patch

import requests
from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APITestCase
from rest_framework_simplejwt.tokens import RefreshToken
from django.contrib.auth import get_user_model

from .models import BillingConfiguration, Invoice, Negotiation

User = get_user_model()


class BillingAPITestCase(APITestCase):
    def setUp(self):
        self.admin = User.objects.create_user(
            email="admin@franquia.test",
            password="AdminPass123!",
            role="ADMIN",
        )
        self.staff = User.objects.create_user(
            email="staff@franquia.test",
            password="StaffPass123!",
            role="STAFF",
        )
        self.franchisee = User.objects.create_user(
            email="unidade42@franquia.test",
            password="UnitPass123!",
            role="FRANCHISEE",
            unit_code=42,
        )

        configuration = BillingConfiguration.load()
        configuration.daily_interest_rate = Decimal("0.001")
        configuration.late_penalty_rate = Decimal("2")
        configuration.max_accumulated_interest_rate = Decimal("10")
        configuration.grace_period_days = 0
        configuration.early_payment_discount_rate = Decimal("5")
        configuration.early_payment_discount_days = 5
        configuration.save()

        self.authenticate(self.admin)

    def authenticate(self, user):
        refresh = RefreshToken.for_user(user)
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {refresh.access_token}")

    def create_invoice(self, **kwargs):
        values = {
            "unit_code": 42,
            "charge_type": "ROYALTIES",
            "original_amount": Decimal("1000.00"),
            "due_date": date(2025, 3, 10),
        }
        values.update(kwargs)
        return Invoice.objects.create(**values)


# -------------------------
# Configuration
# -------------------------
class BillingConfigurationAPITests(BillingAPITestCase):
    def test_admin_reads_configuration(self):
        response = self.client.get(reverse("billing-configuration"))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(Decimal(response.data["late_penalty_rate"]), Decimal("2"))
        self.assertEqual(response.data["grace_period_days"], 0)

    def test_admin_updates_configuration(self):
        response = self.client.patch(
            reverse("billing-configuration"),
            {"grace_period_days": 3, "late_penalty_rate": "2.50"},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        configuration = BillingConfiguration.load()
        self.assertEqual(configuration.grace_period_days, 3)
        self.assertEqual(configuration.late_penalty_rate, Decimal("2.50"))
        self.assertEqual(configuration.updated_by, self.admin)
        self.assertEqual(BillingConfiguration.objects.count(), 1)

    def test_negative_rate_is_rejected(self):
        response = self.client.patch(
            reverse("billing-configuration"),
            {"daily_interest_rate": "-0.01"},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(BillingConfiguration.load().daily_interest_rate, Decimal("0.001"))

    def test_discount_rate_without_days_is_rejected(self):
        response = self.client.patch(
            reverse("billing-configuration"),
            {"early_payment_discount_days": None},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_staff_cannot_update_configuration(self):
        self.authenticate(self.staff)
        response = self.client.patch(
            reverse("billing-configuration"),
            {"grace_period_days": 10},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_franchisee_cannot_read_configuration(self):
        self.authenticate(self.franchisee)
        response = self.client.get(reverse("billing-configuration"))
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_preview_uses_current_configuration(self):
        response = self.client.post(
            reverse("billing-configuration-preview"),
            {"amount": "1000.00", "days": 10},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["days_overdue"], 10)
        self.assertEqual(Decimal(response.data["total_amount"]), Decimal("1030.00"))

    def test_preview_defaults(self):
        response = self.client.post(reverse("billing-configuration-preview"), {}, format="json")

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["days_overdue"], 30)
        self.assertEqual(Decimal(response.data["interest_amount"]), Decimal("30.00"))

    def test_preview_days_out_of_range_are_rejected(self):
        for days in (-1, 36501, 1000000000):
            response = self.client.post(
                reverse("billing-configuration-preview"),
                {"days": days},
                format="json",
            )
            self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
            self.assertIn("days", response.data)

    def test_preview_largest_amount_over_longest_period(self):
        response = self.client.post(
            reverse("billing-configuration-preview"),
            {"amount": "9999999999.99", "days": 36500},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(Decimal(response.data["interest_amount"]), Decimal("1000000000.00"))


# -------------------------
# Standalone calculation
# -------------------------
class AdjustmentCalculationAPITests(BillingAPITestCase):
    def test_calculate_overdue(self):
        response = self.client.post(
            reverse("billing-calculate"),
            {
                "original_amount": "1000.00",
                "due_date": "2025-03-10",
                "as_of_date": "2025-09-26",
            },
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["days_overdue"], 200)
        self.assertEqual(Decimal(response.data["interest_amount"]), Decimal("100.00"))
        self.assertEqual(Decimal(response.data["uncapped_interest_amount"]), Decimal("200.00"))
        self.assertEqual(Decimal(response.data["total_amount"]), Decimal("1120.00"))

    def test_calculate_early_payment(self):
        response = self.client.post(
            reverse("billing-calculate"),
            {
                "original_amount": "1000.00",
                "due_date": "2025-03-10",
                "as_of_date": "2025-03-07",
            },
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data["discount_applied"])
        self.assertEqual(Decimal(response.data["final_amount_with_discount"]), Decimal("950.00"))

    def test_large_amount_over_a_century(self):
        response = self.client.post(
            reverse("billing-calculate"),
            {
                "original_amount": "9999999999.99",
                "due_date": "2000-01-01",
                "as_of_date": "2099-01-01",
            },
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["days_overdue"], 36160)
        # 9999999999.99 * 0.001 * 36160
        self.assertEqual(
            Decimal(response.data["uncapped_interest_amount"]), Decimal("361599999999.64")
        )
        self.assertEqual(Decimal(response.data["interest_amount"]), Decimal("1000000000.00"))
        self.assertEqual(Decimal(response.data["total_amount"]), Decimal("11199999999.99"))

    def test_zero_amount_is_rejected(self):
        response = self.client.post(
            reverse("billing-calculate"),
            {"original_amount": "0", "due_date": "2025-03-10"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_requires_authentication(self):
        self.client.credentials()
        response = self.client.post(
            reverse("billing-calculate"),
            {"original_amount": "100", "due_date": "2025-03-10"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


# -------------------------
# Invoices
# -------------------------
class InvoiceAPITests(BillingAPITestCase):
    def test_create_invoice_starts_pending_with_original_amount(self):
        response = self.client.post(
            reverse("invoice-list"),
            {
                "unit_code": 42,
                "charge_type": "RENT",
                "original_amount": "1500.00",
                "due_date": "2025-04-05",
                "franchisee": self.franchisee.id,
            },
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        invoice = Invoice.objects.get(id=response.data["id"])
        self.assertEqual(invoice.status, "PENDING")
        self.assertEqual(invoice.updated_amount, Decimal("1500.00"))
        self.assertEqual(invoice.interest_applied, Decimal("0.00"))
        self.assertEqual(invoice.days_overdue, 0)
        self.assertEqual(invoice.created_by, self.admin)

    def test_create_rejects_non_positive_amount(self):
        response = self.client.post(
            reverse("invoice-list"),
            {
                "unit_code": 42,
                "charge_type": "RENT",
                "original_amount": "-5.00",
                "due_date": "2025-04-05",
            },
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_list_filters(self):
        self.create_invoice(unit_code=42, charge_type="ROYALTIES")
        self.create_invoice(unit_code=7, charge_type="RENT", due_date=date(2025, 5, 1))
        self.create_invoice(unit_code=7, charge_type="RENT", original_amount=Decimal("50.00"))

        response = self.client.get(reverse("invoice-list"), {"unit_code": 7})
        self.assertEqual(len(response.data), 2)

        response = self.client.get(reverse("invoice-list"), {"due_from": "2025-04-01"})
        self.assertEqual(len(response.data), 1)

        response = self.client.get(reverse("invoice-list"), {"min_amount": "100"})
        self.assertEqual(len(response.data), 2)

        response = self.client.get(reverse("invoice-list"), {"charge_type": "ROYALTIES"})
        self.assertEqual(len(response.data), 1)

    def test_invalid_filter_is_rejected(self):
        response = self.client.get(reverse("invoice-list"), {"due_from": "yesterday"})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_franchisee_sees_only_own_unit(self):
        own = self.create_invoice(unit_code=42)
        self.create_invoice(unit_code=7)

        self.authenticate(self.franchisee)
        response = self.client.get(reverse("invoice-list"))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([item["id"] for item in response.data], [own.id])

    def test_franchisee_cannot_create_invoice(self):
        self.authenticate(self.franchisee)
        response = self.client.post(
            reverse("invoice-list"),
            {"unit_code": 42, "charge_type": "RENT", "original_amount": "10.00", "due_date": "2025-04-05"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_adjustment_action_does_not_persist(self):
        invoice = self.create_invoice()

        response = self.client.get(
            reverse("invoice-adjustment", args=[invoice.id]),
            {"as_of": "2025-03-20"},
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(Decimal(response.data["total_amount"]), Decimal("1030.00"))
        invoice.refresh_from_db()
        self.assertEqual(invoice.updated_amount, Decimal("1000.00"))
        self.assertEqual(invoice.days_overdue, 0)

    def test_adjustment_action_rejects_bad_date(self):
        invoice = self.create_invoice()
        response = self.client.get(
            reverse("invoice-adjustment", args=[invoice.id]),
            {"as_of": "20/03/2025"},
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["field"], "as_of_date")

    def test_set_status(self):
        invoice = self.create_invoice()
        response = self.client.post(
            reverse("invoice-set-status", args=[invoice.id]),
            {"status": "CANCELLED"},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        invoice.refresh_from_db()
        self.assertEqual(invoice.status, "CANCELLED")

    def test_set_unknown_status_is_rejected(self):
        invoice = self.create_invoice()
        response = self.client.post(
            reverse("invoice-set-status", args=[invoice.id]),
            {"status": "WHATEVER"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_statistics(self):
        today = timezone.localdate()
        self.create_invoice(due_date=today - timedelta(days=5), original_amount=Decimal("100.00"))
        self.create_invoice(due_date=today + timedelta(days=5), original_amount=Decimal("200.00"))
        self.create_invoice(due_date=today - timedelta(days=5), original_amount=Decimal("400.00"), status="PAID")

        response = self.client.get(reverse("invoice-statistics"))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["total_invoices"], 3)
        self.assertEqual(response.data["paid_invoices"], 1)
        self.assertEqual(response.data["overdue_invoices"], 1)
        self.assertEqual(response.data["open_amount"], Decimal("300.00"))
        self.assertEqual(response.data["overdue_amount"], Decimal("100.00"))

    def test_refresh_overdue_action_requires_internal_user(self):
        self.authenticate(self.franchisee)
        response = self.client.post(reverse("invoice-refresh-overdue"))
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_refresh_overdue_action(self):
        invoice = self.create_invoice(due_date=timezone.localdate() - timedelta(days=10))

        response = self.client.post(reverse("invoice-refresh-overdue"))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["updated"], 1)
        invoice.refresh_from_db()
        self.assertEqual(invoice.status, "OVERDUE")
        self.assertEqual(invoice.updated_amount, Decimal("1030.00"))


# -------------------------
# Gateway-linked invoices
# -------------------------
class InvoiceGatewayAPITests(BillingAPITestCase):
    @patch("payments.services.sync.asaas_client.update_payment")
    def test_edit_pushes_changes_to_gateway(self, mock_update):
        invoice = self.create_invoice(asaas_payment_id="pay_123")

        response = self.client.patch(
            reverse("invoice-detail", args=[invoice.id]),
            {"original_amount": "1200.00", "due_date": "2025-04-10"},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        mock_update.assert_called_once_with(
            "pay_123", {"value": 1200.0, "dueDate": "2025-04-10"}
        )

    @patch("payments.services.sync.asaas_client.update_payment")
    def test_edit_survives_gateway_failure(self, mock_update):
        mock_update.side_effect = requests.ConnectionError("gateway down")
        invoice = self.create_invoice(asaas_payment_id="pay_123")

        response = self.client.patch(
            reverse("invoice-detail", args=[invoice.id]),
            {"notes": "Renegotiated by phone"},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        invoice.refresh_from_db()
        self.assertEqual(invoice.notes, "Renegotiated by phone")

    @patch("payments.services.sync.asaas_client.update_payment")
    def test_edit_unlinked_invoice_skips_gateway(self, mock_update):
        invoice = self.create_invoice()
        self.client.patch(
            reverse("invoice-detail", args=[invoice.id]),
            {"notes": "local only"},
            format="json",
        )
        mock_update.assert_not_called()

    @patch("payments.services.sync.asaas_client.delete_payment")
    def test_delete_removes_gateway_payment_first(self, mock_delete):
        mock_delete.side_effect = requests.HTTPError("404")
        invoice = self.create_invoice(asaas_payment_id="pay_999")

        response = self.client.delete(reverse("invoice-detail", args=[invoice.id]))

        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        mock_delete.assert_called_once_with("pay_999")
        self.assertFalse(Invoice.objects.filter(id=invoice.id).exists())

    @patch("payments.services.sync.asaas_client.get_payment")
    def test_sync_updates_status(self, mock_get_payment):
        mock_get_payment.return_value = {"id": "pay_123", "status": "RECEIVED"}
        invoice = self.create_invoice(asaas_payment_id="pay_123")

        response = self.client.post(reverse("invoice-sync-status", args=[invoice.id]))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        invoice.refresh_from_db()
        self.assertEqual(invoice.status, "PAID")

    @patch("payments.services.sync.asaas_client.get_payment")
    def test_sync_all_action(self, mock_get_payment):
        mock_get_payment.return_value = {"status": "CONFIRMED"}
        invoice = self.create_invoice(asaas_payment_id="pay_123")
        self.create_invoice(asaas_payment_id="pay_456", due_date=date(2025, 5, 10))

        response = self.client.post(
            reverse("invoice-sync-all"), {"due_to": "2025-03-31"}, format="json"
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data, {"checked": 1, "updated": 1, "failed": 0})
        mock_get_payment.assert_called_once_with("pay_123")
        invoice.refresh_from_db()
        self.assertEqual(invoice.status, "PAID")

    def test_sync_all_action_requires_internal_user(self):
        self.authenticate(self.franchisee)
        response = self.client.post(reverse("invoice-sync-all"))
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_sync_without_gateway_link_fails(self):
        invoice = self.create_invoice()
        response = self.client.post(reverse("invoice-sync-status", args=[invoice.id]))
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    @patch("payments.services.sync.asaas_client.get_payment")
    def test_sync_gateway_error_returns_502(self, mock_get_payment):
        mock_get_payment.side_effect = requests.Timeout("slow")
        invoice = self.create_invoice(asaas_payment_id="pay_123")

        response = self.client.post(reverse("invoice-sync-status", args=[invoice.id]))

        self.assertEqual(response.status_code, status.HTTP_502_BAD_GATEWAY)

    def test_bank_slip_stores_urls(self):
        invoice = self.create_invoice(asaas_payment_id="pay_123")

        response = self.client.post(reverse("invoice-bank-slip", args=[invoice.id]))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data["bank_slip_url"].endswith("/payments/pay_123/bankSlipUrl"))
        invoice.refresh_from_db()
        self.assertTrue(invoice.payment_link.endswith("/payments/pay_123/invoiceUrl"))


# -------------------------
# Negotiations
# -------------------------
class NegotiationAPITests(BillingAPITestCase):
    def test_create_and_list_negotiations(self):
        invoice = self.create_invoice()
        url = reverse("invoice-negotiations", args=[invoice.id])

        response = self.client.post(
            url,
            {"negotiation_type": "INSTALLMENTS", "negotiated_amount": "1050.00", "installments": 3},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data["status"], "PROPOSED")

        self.client.post(
            url,
            {"negotiation_type": "DISCOUNT", "negotiated_amount": "900.00"},
            format="json",
        )

        response = self.client.get(url)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 2)
        self.assertEqual(response.data[0]["negotiation_type"], "DISCOUNT")

    def test_installments_required_for_installment_negotiation(self):
        invoice = self.create_invoice()
        response = self.client.post(
            reverse("invoice-negotiations", args=[invoice.id]),
            {"negotiation_type": "INSTALLMENTS", "negotiated_amount": "1050.00"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_new_due_date_required_for_extension(self):
        invoice = self.create_invoice()
        response = self.client.post(
            reverse("invoice-negotiations", args=[invoice.id]),
            {"negotiation_type": "EXTENSION", "negotiated_amount": "1000.00"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_update_negotiation_status(self):
        invoice = self.create_invoice()
        negotiation = Negotiation.objects.create(
            invoice=invoice,
            negotiation_type="DISCOUNT",
            negotiated_amount=Decimal("900.00"),
        )

        response = self.client.post(
            reverse("negotiation-set-status", args=[negotiation.id]),
            {"status": "ACCEPTED"},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        negotiation.refresh_from_db()
        self.assertEqual(negotiation.status, "ACCEPTED")

    def test_franchisee_cannot_update_negotiation(self):
        invoice = self.create_invoice()
        negotiation = Negotiation.objects.create(
            invoice=invoice,
            negotiation_type="DISCOUNT",
            negotiated_amount=Decimal("900.00"),
        )

        self.authenticate(self.franchisee)
        response = self.client.post(
            reverse("negotiation-set-status", args=[negotiation.id]),
            {"status": "ACCEPTED"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
