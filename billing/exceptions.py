"""Exceptions raised by the billing app."""


class BillingError(Exception):
    """Base exception for billing errors."""

    def __init__(self, message, details=None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self):
        if self.details:
            return f"{self.message} - {self.details}"
        return self.message


class InvalidCalculationInput(BillingError, ValueError):
    """Raised when the adjustment calculator receives input it cannot use."""

    def __init__(self, message, field=None, value=None):
        details = {}
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = str(value)
        super().__init__(message, details)
        self.field = field


class GatewayNotLinked(BillingError):
    """Raised when an invoice has no payment on the gateway."""

    def __init__(self, invoice_id):
        super().__init__(
            "Invoice is not linked to a gateway payment",
            {"invoice_id": invoice_id},
        )
