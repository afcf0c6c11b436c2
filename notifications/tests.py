from datetime import date
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from billing.models import Invoice, Negotiation
from .models import Notification

User = get_user_model()


class NotificationTests(APITestCase):
    def setUp(self):
        self.user = User.objects.create_user(
            email="unidade12@franquia.test",
            password="pass123",
            first_name="Test",
            last_name="Franchisee",
            role="FRANCHISEE",
            unit_code=12,
        )
        self.client.force_authenticate(user=self.user)

    def test_list_notifications(self):
        Notification.objects.create(recipient=self.user, title="Notification 1", message="Message 1")
        Notification.objects.create(recipient=self.user, title="Notification 2", message="Message 2")

        url = reverse("notification-list")
        response = self.client.get(url)

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        titles = [item["title"] for item in response.data]
        self.assertIn("Notification 1", titles)
        self.assertIn("Notification 2", titles)

    def test_only_own_notifications_are_listed(self):
        other = User.objects.create_user(email="other@franquia.test", password="pass123")
        Notification.objects.create(recipient=other, title="Not yours", message="-")

        response = self.client.get(reverse("notification-list"))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data, [])

    def test_mark_as_read(self):
        notification = Notification.objects.create(
            recipient=self.user,
            title="Unread",
            message="Read me",
            is_read=False,
        )

        url = reverse("notification-mark-read", args=[notification.id])
        response = self.client.post(url)

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        notification.refresh_from_db()
        self.assertTrue(notification.is_read)

    def test_mark_all_as_read(self):
        Notification.objects.create(recipient=self.user, title="1", message="1")
        Notification.objects.create(recipient=self.user, title="2", message="2")

        url = reverse("notification-mark-all-read")
        response = self.client.post(url)

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(
            Notification.objects.filter(recipient=self.user, is_read=False).exists()
        )

    def test_requires_authentication(self):
        self.client.force_authenticate(user=None)
        response = self.client.get(reverse("notification-list"))
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


class InvoiceNotificationSignalTests(APITestCase):
    def setUp(self):
        self.franchisee = User.objects.create_user(
            email="unidade12@franquia.test",
            password="pass123",
            role="FRANCHISEE",
            unit_code=12,
        )
        self.invoice = Invoice.objects.create(
            unit_code=12,
            franchisee=self.franchisee,
            charge_type="ROYALTIES",
            original_amount=Decimal("2000.00"),
            due_date=date(2025, 1, 15),
        )

    def notifications(self):
        return Notification.objects.filter(recipient=self.franchisee)

    def test_no_notification_on_creation(self):
        self.assertEqual(self.notifications().count(), 0)

    def test_paid_invoice_notifies_franchisee(self):
        self.invoice.status = "PAID"
        self.invoice.save()

        notification = self.notifications().get()
        self.assertEqual(notification.type, "SUCCESS")
        self.assertEqual(notification.title, "Payment Confirmed")
        self.assertIn("R$ 2000.00", notification.message)
        self.assertIn("15/01/2025", notification.message)
        self.assertEqual(notification.link, f"/billing/invoices/{self.invoice.id}")

    def test_legal_escalation_notifies_franchisee(self):
        self.invoice.status = "LEGAL"
        self.invoice.days_overdue = 45
        self.invoice.updated_amount = Decimal("2130.00")
        self.invoice.save()

        notification = self.notifications().get()
        self.assertEqual(notification.type, "ERROR")
        self.assertIn("45 days overdue", notification.message)
        self.assertIn("R$ 2130.00", notification.message)

    def test_unchanged_status_does_not_notify_again(self):
        self.invoice.status = "PAID"
        self.invoice.save()
        self.invoice.notes = "Receipt attached"
        self.invoice.save()

        self.assertEqual(self.notifications().count(), 1)

    def test_other_statuses_do_not_notify(self):
        self.invoice.status = "OVERDUE"
        self.invoice.save()
        self.assertEqual(self.notifications().count(), 0)

    def test_invoice_without_franchisee_does_not_notify(self):
        invoice = Invoice.objects.create(
            unit_code=99,
            charge_type="RENT",
            original_amount=Decimal("100.00"),
            due_date=date(2025, 1, 15),
        )
        invoice.status = "PAID"
        invoice.save()

        self.assertFalse(Notification.objects.exists())

    def test_new_negotiation_notifies_franchisee(self):
        negotiation = Negotiation.objects.create(
            invoice=self.invoice,
            negotiation_type="INSTALLMENTS",
            negotiated_amount=Decimal("1900.00"),
            installments=3,
        )

        notification = self.notifications().get()
        self.assertEqual(notification.title, "Negotiation Proposed")
        self.assertIn("R$ 1900.00", notification.message)

        negotiation.status = "ACCEPTED"
        negotiation.save()
        self.assertEqual(self.notifications().count(), 1)
