import logging

from django.db.models.signals import post_save, pre_save
from django.dispatch import receiver

from billing.models import Invoice, Negotiation
from .models import Notification

logger = logging.getLogger(__name__)


INVOICE_STATUS_MESSAGES = {
    "PAID": (
        "SUCCESS",
        "Payment Confirmed",
        "Payment of R$ {amount} for your {charge_type} invoice due {due_date} was confirmed.",
    ),
    "LEGAL": (
        "ERROR",
        "Invoice Sent to Legal",
        "Your {charge_type} invoice due {due_date} is {days} days overdue and "
        "was sent to legal collection. Updated amount: R$ {amount}.",
    ),
}


@receiver(pre_save, sender=Invoice)
def remember_previous_invoice_status(sender, instance, **kwargs):
    if instance.pk:
        instance._previous_status = (
            Invoice.objects.filter(pk=instance.pk)
            .values_list("status", flat=True)
            .first()
        )
    else:
        instance._previous_status = None


@receiver(post_save, sender=Invoice)
def notify_invoice_status_change(sender, instance, created, **kwargs):
    """
    Tell the franchisee when an invoice is paid or escalated to legal.
    """
    if not instance.franchisee_id:
        return

    if instance.status == getattr(instance, "_previous_status", None):
        return

    template = INVOICE_STATUS_MESSAGES.get(instance.status)
    if not template:
        return

    notification_type, title, message = template
    Notification.objects.create(
        recipient_id=instance.franchisee_id,
        title=title,
        message=message.format(
            amount=instance.updated_amount,
            charge_type=instance.get_charge_type_display().lower(),
            due_date=instance.due_date.strftime("%d/%m/%Y"),
            days=instance.days_overdue,
        ),
        type=notification_type,
        link=f"/billing/invoices/{instance.id}",
    )
    logger.info(f"Franchisee notified: invoice {instance.id} is now {instance.status}")


@receiver(post_save, sender=Negotiation)
def notify_negotiation_proposed(sender, instance, created, **kwargs):
    if not created:
        return

    invoice = instance.invoice
    if not invoice.franchisee_id:
        return

    Notification.objects.create(
        recipient_id=invoice.franchisee_id,
        title="Negotiation Proposed",
        message=(
            f"A {instance.get_negotiation_type_display().lower()} proposal of "
            f"R$ {instance.negotiated_amount} was registered for your invoice "
            f"due {invoice.due_date.strftime('%d/%m/%Y')}."
        ),
        type="INFO",
        link=f"/billing/invoices/{invoice.id}/negotiations",
    )
