from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models

from .calculator import AdjustmentRates, calculate_adjustment
from .constants import (
    DEFAULT_DAILY_INTEREST_RATE,
    DEFAULT_GRACE_PERIOD_DAYS,
    DEFAULT_LATE_PENALTY_RATE,
    DEFAULT_LEGAL_ESCALATION_DAYS,
    DEFAULT_MAX_ACCUMULATED_INTEREST_RATE,
)

User = settings.AUTH_USER_MODEL


# =========================
# BillingConfiguration Model
# =========================
class BillingConfiguration(models.Model):
    """Single-row table with the rates used for overdue adjustments."""

    ENVIRONMENT_CHOICES = [
        ("sandbox", "Sandbox"),
        ("production", "Production"),
    ]

    daily_interest_rate = models.DecimalField(
        max_digits=8,
        decimal_places=6,
        default=DEFAULT_DAILY_INTEREST_RATE,
        help_text="Fraction charged per day overdue (0.0033 = 0.33%/day)",
    )
    late_penalty_rate = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        default=DEFAULT_LATE_PENALTY_RATE,
        help_text="One-time penalty, percent of the original amount",
    )
    max_accumulated_interest_rate = models.DecimalField(
        max_digits=6,
        decimal_places=2,
        default=DEFAULT_MAX_ACCUMULATED_INTEREST_RATE,
        help_text="Interest ceiling, percent of the original amount",
    )
    grace_period_days = models.PositiveIntegerField(default=DEFAULT_GRACE_PERIOD_DAYS)
    early_payment_discount_rate = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        null=True,
        blank=True,
        help_text="Percent off for paying before the due date",
    )
    early_payment_discount_days = models.PositiveIntegerField(
        null=True,
        blank=True,
        help_text="How many days before the due date the discount still applies",
    )

    asaas_environment = models.CharField(
        max_length=20,
        choices=ENVIRONMENT_CHOICES,
        default="sandbox",
    )
    asaas_webhook_url = models.URLField(blank=True, null=True)
    reminder_days_before = models.PositiveIntegerField(null=True, blank=True)
    legal_escalation_days = models.PositiveIntegerField(
        default=DEFAULT_LEGAL_ESCALATION_DAYS,
        help_text="Days overdue after which an invoice is sent to legal",
    )

    updated_by = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="billing_configuration_updates",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = "billing configuration"
        verbose_name_plural = "billing configuration"

    def __str__(self):
        return (
            f"Interest {self.daily_interest_rate}/day, "
            f"penalty {self.late_penalty_rate}%, cap {self.max_accumulated_interest_rate}%"
        )

    def save(self, *args, **kwargs):
        # Singleton: always row 1
        self.pk = 1
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError("The billing configuration cannot be deleted.")

    @classmethod
    def load(cls):
        configuration, _ = cls.objects.get_or_create(pk=1)
        return configuration

    def clean(self):
        has_rate = self.early_payment_discount_rate is not None
        has_days = self.early_payment_discount_days is not None
        if has_rate != has_days:
            raise ValidationError(
                "Early payment discount rate and days must be set together."
            )
        if has_rate and self.early_payment_discount_rate > Decimal("100"):
            raise ValidationError("Early payment discount cannot exceed 100%.")

    def as_rates(self):
        return AdjustmentRates.from_configuration(self)


# =========================
# Invoice Model
# =========================
class Invoice(models.Model):
    """A charge ("cobrança") owed by a franchise unit."""

    CHARGE_TYPE_CHOICES = [
        ("ROYALTIES", "Royalties"),
        ("SUPPLIES", "Supplies"),
        ("RENT", "Rent"),
        ("OCCASIONAL", "Occasional"),
        ("FRANCHISE_FEE", "Franchise fee"),
    ]

    STATUS_CHOICES = [
        ("PENDING", "Pending"),
        ("OPEN", "Open"),
        ("OVERDUE", "Overdue"),
        ("PAID", "Paid"),
        ("CANCELLED", "Cancelled"),
        ("NEGOTIATED", "Negotiated"),
        ("LEGAL", "Legal"),
        ("INSTALLMENTS", "Installments"),
    ]

    unit_code = models.PositiveIntegerField(db_index=True)
    franchisee = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="invoices",
    )
    charge_type = models.CharField(max_length=20, choices=CHARGE_TYPE_CHOICES)

    original_amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.01"))],
    )
    updated_amount = models.DecimalField(max_digits=12, decimal_places=2)
    due_date = models.DateField()

    status = models.CharField(
        max_length=20,
        choices=STATUS_CHOICES,
        default="PENDING",
    )

    interest_applied = models.DecimalField(
        max_digits=12, decimal_places=2, default=Decimal("0.00")
    )
    penalty_applied = models.DecimalField(
        max_digits=12, decimal_places=2, default=Decimal("0.00")
    )
    days_overdue = models.PositiveIntegerField(default=0)
    notes = models.TextField(blank=True)

    asaas_customer_id = models.CharField(max_length=100, blank=True)
    asaas_payment_id = models.CharField(max_length=100, blank=True, db_index=True)
    bank_slip_url = models.URLField(max_length=500, blank=True)
    payment_link = models.URLField(max_length=500, blank=True)

    created_by = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="invoices_created",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        return f"Unit {self.unit_code} - {self.original_amount} ({self.status})"

    def save(self, *args, **kwargs):
        if self.updated_amount is None:
            self.updated_amount = self.original_amount
        super().save(*args, **kwargs)

    @property
    def is_linked_to_gateway(self):
        return bool(self.asaas_payment_id)

    def calculate_adjustment(self, configuration=None, as_of_date=None):
        """Run the calculator for this invoice without persisting anything."""
        configuration = configuration or BillingConfiguration.load()
        return calculate_adjustment(
            self.original_amount,
            self.due_date,
            configuration,
            as_of_date=as_of_date,
        )


# =========================
# Negotiation Model
# =========================
class Negotiation(models.Model):
    TYPE_CHOICES = [
        ("INSTALLMENTS", "Installments"),
        ("EXTENSION", "Extension"),
        ("DISCOUNT", "Discount"),
    ]

    STATUS_CHOICES = [
        ("PROPOSED", "Proposed"),
        ("ACCEPTED", "Accepted"),
        ("REJECTED", "Rejected"),
    ]

    invoice = models.ForeignKey(
        Invoice,
        on_delete=models.CASCADE,
        related_name="negotiations",
    )
    negotiation_type = models.CharField(max_length=20, choices=TYPE_CHOICES)
    negotiated_amount = models.DecimalField(max_digits=12, decimal_places=2)
    installments = models.PositiveSmallIntegerField(null=True, blank=True)
    new_due_date = models.DateField(null=True, blank=True)
    notes = models.TextField(blank=True)
    status = models.CharField(
        max_length=20,
        choices=STATUS_CHOICES,
        default="PROPOSED",
    )
    created_by = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="negotiations_created",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at", "-id"]

    def __str__(self):
        return f"{self.get_negotiation_type_display()} on invoice {self.invoice_id} ({self.status})"
