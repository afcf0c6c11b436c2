from django.db import models


class GatewayWebhookLog(models.Model):
    """Every webhook call received from ASAAS, with its processing outcome."""

    PROCESSING_STATUS_CHOICES = [
        ("RECEIVED", "Received"),
        ("SUCCESS", "Success"),
        ("ERROR", "Error"),
    ]

    invoice = models.ForeignKey(
        "billing.Invoice",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="webhook_logs",
    )
    event_type = models.CharField(max_length=100, blank=True)
    payment_id = models.CharField(max_length=100, blank=True, db_index=True)
    payload = models.JSONField(null=True, blank=True)

    processing_status = models.CharField(
        max_length=20,
        choices=PROCESSING_STATUS_CHOICES,
        default="RECEIVED",
    )
    error_message = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        return f"{self.event_type} - {self.payment_id} - {self.processing_status}"
