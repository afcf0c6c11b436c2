from decimal import Decimal

from rest_framework import serializers

from .constants import MAX_PREVIEW_DAYS, PREVIEW_AMOUNT, PREVIEW_DAYS
from .models import BillingConfiguration, Invoice, Negotiation


class BillingConfigurationSerializer(serializers.ModelSerializer):
    class Meta:
        model = BillingConfiguration
        fields = (
            "daily_interest_rate",
            "late_penalty_rate",
            "max_accumulated_interest_rate",
            "grace_period_days",
            "early_payment_discount_rate",
            "early_payment_discount_days",
            "asaas_environment",
            "asaas_webhook_url",
            "reminder_days_before",
            "legal_escalation_days",
            "updated_by",
            "created_at",
            "updated_at",
        )
        read_only_fields = ("updated_by", "created_at", "updated_at")
        extra_kwargs = {
            "daily_interest_rate": {"min_value": Decimal("0")},
            "late_penalty_rate": {"min_value": Decimal("0")},
            "max_accumulated_interest_rate": {"min_value": Decimal("0")},
            "early_payment_discount_rate": {
                "min_value": Decimal("0"),
                "max_value": Decimal("100"),
            },
        }

    def validate(self, attrs):
        instance = self.instance

        def current(name):
            if name in attrs:
                return attrs[name]
            return getattr(instance, name, None)

        has_rate = current("early_payment_discount_rate") is not None
        has_days = current("early_payment_discount_days") is not None
        if has_rate != has_days:
            raise serializers.ValidationError(
                "Early payment discount rate and days must be set together."
            )
        return attrs


class ConfigurationPreviewSerializer(serializers.Serializer):
    amount = serializers.DecimalField(
        max_digits=12,
        decimal_places=2,
        required=False,
        default=PREVIEW_AMOUNT,
    )
    days = serializers.IntegerField(
        required=False,
        default=PREVIEW_DAYS,
        min_value=0,
        max_value=MAX_PREVIEW_DAYS,
    )

    def validate_amount(self, value):
        if value <= 0:
            raise serializers.ValidationError("Amount must be greater than zero.")
        return value


class AdjustmentRequestSerializer(serializers.Serializer):
    original_amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    due_date = serializers.DateField()
    as_of_date = serializers.DateField(required=False)

    def validate_original_amount(self, value):
        if value <= 0:
            raise serializers.ValidationError("Amount must be greater than zero.")
        return value


class AdjustmentResultSerializer(serializers.Serializer):
    days_overdue = serializers.IntegerField()
    interest_amount = serializers.DecimalField(max_digits=None, decimal_places=2)
    uncapped_interest_amount = serializers.DecimalField(max_digits=None, decimal_places=2)
    penalty_amount = serializers.DecimalField(max_digits=None, decimal_places=2)
    total_amount = serializers.DecimalField(max_digits=None, decimal_places=2)
    discount_applied = serializers.BooleanField()
    discount_amount = serializers.DecimalField(max_digits=None, decimal_places=2)
    final_amount_with_discount = serializers.DecimalField(max_digits=None, decimal_places=2)


class InvoiceSerializer(serializers.ModelSerializer):
    class Meta:
        model = Invoice
        fields = "__all__"
        read_only_fields = (
            "updated_amount",
            "status",
            "interest_applied",
            "penalty_applied",
            "days_overdue",
            "bank_slip_url",
            "payment_link",
            "created_by",
            "created_at",
            "updated_at",
        )

    def validate_original_amount(self, value):
        if value <= 0:
            raise serializers.ValidationError("Amount must be greater than zero.")
        return value

    def create(self, validated_data):
        validated_data["updated_amount"] = validated_data["original_amount"]
        return super().create(validated_data)


class InvoiceStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Invoice.STATUS_CHOICES)


class NegotiationSerializer(serializers.ModelSerializer):
    class Meta:
        model = Negotiation
        fields = (
            "id",
            "invoice",
            "negotiation_type",
            "negotiated_amount",
            "installments",
            "new_due_date",
            "notes",
            "status",
            "created_by",
            "created_at",
        )
        read_only_fields = ("invoice", "status", "created_by", "created_at")

    def validate_negotiated_amount(self, value):
        if value <= 0:
            raise serializers.ValidationError("Amount must be greater than zero.")
        return value

    def validate(self, attrs):
        negotiation_type = attrs.get("negotiation_type")
        if negotiation_type == "INSTALLMENTS" and not attrs.get("installments"):
            raise serializers.ValidationError(
                {"installments": "Number of installments is required."}
            )
        if negotiation_type == "EXTENSION" and not attrs.get("new_due_date"):
            raise serializers.ValidationError(
                {"new_due_date": "A new due date is required for an extension."}
            )
        return attrs


class NegotiationStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Negotiation.STATUS_CHOICES)
