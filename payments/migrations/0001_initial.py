import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("billing", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="GatewayWebhookLog",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("event_type", models.CharField(blank=True, max_length=100)),
                ("payment_id", models.CharField(blank=True, db_index=True, max_length=100)),
                ("payload", models.JSONField(blank=True, null=True)),
                ("processing_status", models.CharField(choices=[("RECEIVED", "Received"), ("SUCCESS", "Success"), ("ERROR", "Error")], default="RECEIVED", max_length=20)),
                ("error_message", models.TextField(blank=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("invoice", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="webhook_logs", to="billing.invoice")),
            ],
            options={
                "ordering": ["-created_at"],
            },
        ),
    ]
