from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("tenants", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Subscription",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("status", models.CharField(choices=[("active", "Active"), ("cancelled", "Cancelled"), ("expired", "Expired")], db_index=True, default="active", max_length=16)),
                ("current_period_start", models.DateTimeField()),
                ("current_period_end", models.DateTimeField()),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("plan", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="subscriptions", to="tenants.plan")),
                ("tenant", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="subscriptions", to="tenants.tenant")),
            ],
            options={
                "db_table": "subscriptions",
                "indexes": [models.Index(fields=["tenant", "status"], name="subscriptions_tenant_st_idx")],
            },
        ),
        migrations.CreateModel(
            name="PlanChange",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("amount", models.PositiveIntegerField(default=0)),
                ("currency", models.CharField(default="usd", max_length=8)),
                ("status", models.CharField(choices=[("requested", "Requested"), ("awaiting_payment", "Awaiting payment"), ("applied", "Applied"), ("failed", "Failed")], db_index=True, default="requested", max_length=20)),
                ("payment_intent_id", models.CharField(blank=True, max_length=128, null=True, unique=True)),
                ("failure_reason", models.TextField(blank=True, default="")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("applied_at", models.DateTimeField(blank=True, null=True)),
                ("from_plan", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="+", to="tenants.plan")),
                ("subscription", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="plan_changes", to="subscriptions.subscription")),
                ("tenant", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="plan_changes", to="tenants.tenant")),
                ("to_plan", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="+", to="tenants.plan")),
            ],
            options={
                "db_table": "plan_changes",
                "ordering": ["-created_at"],
            },
        ),
    ]
