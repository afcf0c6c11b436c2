from django.contrib import admin
from .models import BillingConfiguration, Invoice, Negotiation


@admin.register(BillingConfiguration)
class BillingConfigurationAdmin(admin.ModelAdmin):
    list_display = (
        "daily_interest_rate",
        "late_penalty_rate",
        "max_accumulated_interest_rate",
        "grace_period_days",
        "asaas_environment",
        "updated_at",
    )

    def has_add_permission(self, request):
        return not BillingConfiguration.objects.exists()

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(Invoice)
class InvoiceAdmin(admin.ModelAdmin):
    list_display = (
        "unit_code",
        "charge_type",
        "original_amount",
        "updated_amount",
        "status",
        "due_date",
        "days_overdue",
    )
    list_filter = ("status", "charge_type")
    search_fields = ("unit_code", "asaas_payment_id")


@admin.register(Negotiation)
class NegotiationAdmin(admin.ModelAdmin):
    list_display = ("invoice", "negotiation_type", "negotiated_amount", "status", "created_at")
    list_filter = ("negotiation_type", "status")
