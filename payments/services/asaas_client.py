import logging

import requests
from django.conf import settings

from billing.models import BillingConfiguration

logger = logging.getLogger(__name__)


def get_base_url():
    environment = BillingConfiguration.load().asaas_environment
    if environment == "production":
        return settings.ASAAS_PRODUCTION_URL
    return settings.ASAAS_SANDBOX_URL


def _request(method, endpoint, payload=None):
    url = f"{get_base_url()}{endpoint}"
    logger.info(f"ASAAS {method} {endpoint}")

    response = requests.request(
        method,
        url,
        json=payload,
        headers={
            "Content-Type": "application/json",
            "access_token": settings.ASAAS_API_KEY,
        },
        timeout=settings.ASAAS_TIMEOUT,
    )

    response.raise_for_status()
    return response.json()


def get_payment(payment_id):
    return _request("GET", f"/payments/{payment_id}")


def update_payment(payment_id, payload):
    return _request("POST", f"/payments/{payment_id}", payload)


def delete_payment(payment_id):
    return _request("DELETE", f"/payments/{payment_id}")


def get_payment_url(payment_id):
    return f"{get_base_url()}/payments/{payment_id}/invoiceUrl"


def get_bank_slip_url(payment_id):
    return f"{get_base_url()}/payments/{payment_id}/bankSlipUrl"
