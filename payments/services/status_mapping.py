GATEWAY_STATUS_MAP = {
    "PENDING": "PENDING",
    "AWAITING_RISK_ANALYSIS": "PENDING",
    "AWAITING_CHARGEBACK_REVERSAL": "PENDING",
    "RECEIVED": "PAID",
    "CONFIRMED": "PAID",
    "RECEIVED_IN_CASH": "PAID",
    "DUNNING_RECEIVED": "PAID",
    "OVERDUE": "OVERDUE",
    "REFUNDED": "CANCELLED",
    "REFUND_REQUESTED": "CANCELLED",
    "REFUND_IN_PROGRESS": "CANCELLED",
}


def map_gateway_status(gateway_status, default=None):
    """
    Translate an ASAAS payment status into an invoice status.
    Unknown statuses return `default`.
    """
    return GATEWAY_STATUS_MAP.get(gateway_status, default)
