from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("tenants", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="UsageLimit",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("event_type", models.CharField(choices=[("document_upload", "Document Upload"), ("document_download", "Document Download"), ("api_call", "API Call"), ("user_creation", "User Creation"), ("storage_usage", "Storage Usage"), ("compliance_check", "Compliance Check")], max_length=32)),
                ("limit_quantity", models.PositiveIntegerField(blank=True, null=True)),
                ("unit_price", models.DecimalField(decimal_places=4, default=0, max_digits=10)),
                ("overage_price", models.DecimalField(blank=True, decimal_places=4, max_digits=10, null=True)),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("plan", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="usage_limits", to="tenants.plan")),
            ],
            options={
                "db_table": "usage_limits",
                "ordering": ["plan_id", "event_type"],
            },
        ),
        migrations.AddConstraint(
            model_name="usagelimit",
            constraint=models.UniqueConstraint(fields=("plan", "event_type"), name="uniq_usage_limit_plan_event"),
        ),
    ]
