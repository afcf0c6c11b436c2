from django.contrib import admin
from .models import GatewayWebhookLog


@admin.register(GatewayWebhookLog)
class GatewayWebhookLogAdmin(admin.ModelAdmin):
    list_display = ("event_type", "payment_id", "processing_status", "created_at")
    list_filter = ("processing_status", "event_type")
    search_fields = ("payment_id",)
