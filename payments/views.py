import json
import logging
from decimal import Decimal, InvalidOperation

from django.conf import settings
from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_POST

from billing.models import Invoice
from .models import GatewayWebhookLog
from .services.status_mapping import map_gateway_status

logger = logging.getLogger(__name__)


def _fail(log, message, status):
    log.processing_status = "ERROR"
    log.error_message = message
    log.save(update_fields=["processing_status", "error_message"])
    return JsonResponse({"error": message}, status=status)


@csrf_exempt
@require_POST
def asaas_webhook(request):
    expected_token = settings.ASAAS_WEBHOOK_TOKEN
    if not expected_token or request.headers.get("asaas-access-token") != expected_token:
        logger.error("ASAAS webhook rejected: invalid access token")
        return JsonResponse({"error": "Unauthorized"}, status=401)

    try:
        data = json.loads(request.body)
    except (json.JSONDecodeError, UnicodeDecodeError):
        data = None
    if not isinstance(data, dict):
        logger.error("ASAAS webhook rejected: body is not a JSON object")
        return JsonResponse({"error": "Invalid JSON"}, status=400)

    payment = data.get("payment")
    if not isinstance(payment, dict):
        payment = {}
    log = GatewayWebhookLog.objects.create(
        event_type=data.get("event") or "",
        payment_id=str(payment.get("id") or ""),
        payload=data,
    )
    logger.info(f"--- ASAAS WEBHOOK RECEIVED: {log.event_type} ({log.payment_id}) ---")

    try:
        if not payment.get("id"):
            logger.error("Invalid webhook data: 'payment.id' missing")
            return _fail(log, "Payload has no payment object", 400)

        invoice = Invoice.objects.filter(asaas_payment_id=payment["id"]).first()
        if invoice is None:
            logger.error(f"Invoice with asaas_payment_id {payment['id']} not found in database.")
            return _fail(log, f"Invoice for payment {payment['id']} not found", 404)

        invoice.status = map_gateway_status(payment.get("status"), default="PENDING")
        update_fields = ["status", "updated_at"]

        if payment.get("value") is not None:
            try:
                invoice.updated_amount = Decimal(str(payment["value"]))
                update_fields.append("updated_amount")
            except InvalidOperation:
                logger.warning(f"Ignoring invalid payment value {payment['value']!r}")

        invoice.save(update_fields=update_fields)

        log.invoice = invoice
        log.processing_status = "SUCCESS"
        log.save(update_fields=["invoice", "processing_status"])
        logger.info(f"Invoice {invoice.id} updated to {invoice.status} from webhook")

        return JsonResponse({"success": True})

    except Exception as e:
        logger.exception(f"Unexpected error in asaas_webhook: {str(e)}")
        return _fail(log, str(e), 500)
