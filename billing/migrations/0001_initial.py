from decimal import Decimal

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="BillingConfiguration",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("daily_interest_rate", models.DecimalField(decimal_places=6, default=Decimal("0.0033"), help_text="Fraction charged per day overdue (0.0033 = 0.33%/day)", max_digits=8)),
                ("late_penalty_rate", models.DecimalField(decimal_places=2, default=Decimal("2.00"), help_text="One-time penalty, percent of the original amount", max_digits=5)),
                ("max_accumulated_interest_rate", models.DecimalField(decimal_places=2, default=Decimal("20.00"), help_text="Interest ceiling, percent of the original amount", max_digits=6)),
                ("grace_period_days", models.PositiveIntegerField(default=0)),
                ("early_payment_discount_rate", models.DecimalField(blank=True, decimal_places=2, help_text="Percent off for paying before the due date", max_digits=5, null=True)),
                ("early_payment_discount_days", models.PositiveIntegerField(blank=True, help_text="How many days before the due date the discount still applies", null=True)),
                ("asaas_environment", models.CharField(choices=[("sandbox", "Sandbox"), ("production", "Production")], default="sandbox", max_length=20)),
                ("asaas_webhook_url", models.URLField(blank=True, null=True)),
                ("reminder_days_before", models.PositiveIntegerField(blank=True, null=True)),
                ("legal_escalation_days", models.PositiveIntegerField(default=30, help_text="Days overdue after which an invoice is sent to legal")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("updated_by", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="billing_configuration_updates", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "verbose_name": "billing configuration",
                "verbose_name_plural": "billing configuration",
            },
        ),
        migrations.CreateModel(
            name="Invoice",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("unit_code", models.PositiveIntegerField(db_index=True)),
                ("charge_type", models.CharField(choices=[("ROYALTIES", "Royalties"), ("SUPPLIES", "Supplies"), ("RENT", "Rent"), ("OCCASIONAL", "Occasional"), ("FRANCHISE_FEE", "Franchise fee")], max_length=20)),
                ("original_amount", models.DecimalField(decimal_places=2, max_digits=12)),
                ("updated_amount", models.DecimalField(decimal_places=2, max_digits=12)),
                ("due_date", models.DateField()),
                ("status", models.CharField(choices=[("PENDING", "Pending"), ("OPEN", "Open"), ("OVERDUE", "Overdue"), ("PAID", "Paid"), ("CANCELLED", "Cancelled"), ("NEGOTIATED", "Negotiated"), ("LEGAL", "Legal"), ("INSTALLMENTS", "Installments")], default="PENDING", max_length=20)),
                ("interest_applied", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=12)),
                ("penalty_applied", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=12)),
                ("days_overdue", models.PositiveIntegerField(default=0)),
                ("notes", models.TextField(blank=True)),
                ("asaas_customer_id", models.CharField(blank=True, max_length=100)),
                ("asaas_payment_id", models.CharField(blank=True, db_index=True, max_length=100)),
                ("bank_slip_url", models.URLField(blank=True, max_length=500)),
                ("payment_link", models.URLField(blank=True, max_length=500)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("created_by", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="invoices_created", to=settings.AUTH_USER_MODEL)),
                ("franchisee", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="invoices", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="Negotiation",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("negotiation_type", models.CharField(choices=[("INSTALLMENTS", "Installments"), ("EXTENSION", "Extension"), ("DISCOUNT", "Discount")], max_length=20)),
                ("negotiated_amount", models.DecimalField(decimal_places=2, max_digits=12)),
                ("installments", models.PositiveSmallIntegerField(blank=True, null=True)),
                ("new_due_date", models.DateField(blank=True, null=True)),
                ("notes", models.TextField(blank=True)),
                ("status", models.CharField(choices=[("PROPOSED", "Proposed"), ("ACCEPTED", "Accepted"), ("REJECTED", "Rejected")], default="PROPOSED", max_length=20)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("created_by", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="negotiations_created", to=settings.AUTH_USER_MODEL)),
                ("invoice", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="negotiations", to="billing.invoice")),
            ],
            options={
                "ordering": ["-created_at", "-id"],
            },
        ),
    ]
