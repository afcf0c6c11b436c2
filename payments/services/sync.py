import logging

import requests

from billing.constants import OPEN_STATUSES
from billing.exceptions import GatewayNotLinked
from billing.models import Invoice
from . import asaas_client
from .status_mapping import map_gateway_status

logger = logging.getLogger(__name__)


def sync_invoice_status(invoice):
    """
    Pull the payment status from ASAAS and store it on the invoice if it
    changed. Gateway errors propagate to the caller.
    """
    if not invoice.is_linked_to_gateway:
        raise GatewayNotLinked(invoice.id)

    payment = asaas_client.get_payment(invoice.asaas_payment_id)
    new_status = map_gateway_status(payment.get("status"))

    if new_status and new_status != invoice.status:
        logger.info(
            f"Invoice {invoice.id}: status {invoice.status} -> {new_status} "
            f"(gateway {payment.get('status')})"
        )
        invoice.status = new_status
        invoice.save(update_fields=["status", "updated_at"])

    return invoice


def generate_bank_slip(invoice):
    """Store and return the bank slip and payment URLs of a linked invoice."""
    if not invoice.is_linked_to_gateway:
        raise GatewayNotLinked(invoice.id)

    invoice.bank_slip_url = asaas_client.get_bank_slip_url(invoice.asaas_payment_id)
    invoice.payment_link = asaas_client.get_payment_url(invoice.asaas_payment_id)
    invoice.save(update_fields=["bank_slip_url", "payment_link", "updated_at"])

    return {
        "bank_slip_url": invoice.bank_slip_url,
        "payment_link": invoice.payment_link,
    }


def push_invoice_changes(invoice, changes):
    """
    Mirror local edits (value, due date, description) to the gateway.
    Failures are logged; the local edit stands.
    """
    if not invoice.is_linked_to_gateway:
        return False

    payload = {}
    if changes.get("original_amount") is not None:
        payload["value"] = float(changes["original_amount"])
    if changes.get("due_date") is not None:
        payload["dueDate"] = changes["due_date"].isoformat()
    if changes.get("notes"):
        payload["description"] = changes["notes"]

    if not payload:
        return False

    try:
        asaas_client.update_payment(invoice.asaas_payment_id, payload)
    except requests.RequestException as e:
        logger.error(f"Error updating ASAAS payment {invoice.asaas_payment_id}: {str(e)}")
        return False
    return True


def remove_from_gateway(invoice):
    """
    Delete the gateway payment of an invoice about to be deleted locally.
    Failures are logged; the local delete goes ahead.
    """
    if not invoice.is_linked_to_gateway:
        return False

    try:
        asaas_client.delete_payment(invoice.asaas_payment_id)
    except requests.RequestException as e:
        logger.error(f"Error deleting ASAAS payment {invoice.asaas_payment_id}: {str(e)}")
        return False
    return True


def sync_all_statuses(due_from=None, due_to=None):
    """
    Reconcile every open invoice linked to ASAAS with its gateway status,
    optionally limited to a due date range.

    Gateway errors are logged per invoice and the run continues. Returns a
    summary with the number of invoices checked, updated and failed.
    """
    invoices = Invoice.objects.filter(status__in=OPEN_STATUSES).exclude(asaas_payment_id="")
    if due_from:
        invoices = invoices.filter(due_date__gte=due_from)
    if due_to:
        invoices = invoices.filter(due_date__lte=due_to)

    summary = {"checked": 0, "updated": 0, "failed": 0}

    for invoice in invoices:
        summary["checked"] += 1
        previous_status = invoice.status
        try:
            sync_invoice_status(invoice)
        except requests.RequestException as e:
            summary["failed"] += 1
            logger.error(f"Error syncing invoice {invoice.id} with ASAAS: {str(e)}")
            continue

        if invoice.status != previous_status:
            summary["updated"] += 1

    logger.info(
        f"ASAAS status sync: checked={summary['checked']} "
        f"updated={summary['updated']} failed={summary['failed']}"
    )
    return summary
