import django.core.validators
from django.db import migrations, models
import django.db.models.deletion

EVENT_TYPE_CHOICES = [
    ("document_upload", "Document Upload"),
    ("document_download", "Document Download"),
    ("api_call", "API Call"),
    ("user_creation", "User Creation"),
    ("storage_usage", "Storage Usage"),
    ("compliance_check", "Compliance Check"),
]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("tenants", "0001_initial"),
        ("billing", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="UsageEvent",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("event_type", models.CharField(choices=EVENT_TYPE_CHOICES, db_index=True, max_length=32)),
                ("resource_id", models.CharField(blank=True, max_length=255, null=True)),
                ("quantity", models.PositiveIntegerField(default=1, validators=[django.core.validators.MinValueValidator(1)])),
                ("metadata", models.JSONField(blank=True, default=dict)),
                ("billing_period_start", models.DateTimeField()),
                ("billing_period_end", models.DateTimeField()),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("tenant", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="usage_events", to="tenants.tenant")),
                ("user", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="usage_events", to="tenants.tenantuser")),
            ],
            options={
                "db_table": "usage_events",
                "indexes": [
                    models.Index(fields=["tenant", "event_type", "billing_period_start"], name="usage_ev_tenant_type_per_idx"),
                    models.Index(fields=["tenant", "created_at"], name="usage_ev_tenant_created_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="UsageSummary",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("event_type", models.CharField(choices=EVENT_TYPE_CHOICES, max_length=32)),
                ("billing_period_start", models.DateTimeField()),
                ("billing_period_end", models.DateTimeField()),
                ("total_quantity", models.PositiveBigIntegerField(default=0)),
                ("unit_price", models.DecimalField(decimal_places=4, default=0, max_digits=10)),
                ("total_amount", models.DecimalField(decimal_places=2, default=0, max_digits=12)),
                ("status", models.CharField(choices=[("pending", "Pending"), ("calculated", "Calculated"), ("billed", "Billed"), ("failed", "Failed")], default="pending", max_length=16)),
                ("billed_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("invoice", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="usage_summaries", to="billing.invoice")),
                ("tenant", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="usage_summaries", to="tenants.tenant")),
            ],
            options={
                "db_table": "usage_summaries",
            },
        ),
        migrations.AddConstraint(
            model_name="usagesummary",
            constraint=models.UniqueConstraint(fields=("tenant", "event_type", "billing_period_start"), name="uniq_usage_summary_period"),
        ),
    ]
