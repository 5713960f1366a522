from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("tenants", "0001_initial"),
        ("subscriptions", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Invoice",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("invoice_number", models.CharField(max_length=64, unique=True)),
                ("amount", models.DecimalField(decimal_places=2, default=0, max_digits=12)),
                ("tax_amount", models.DecimalField(decimal_places=2, default=0, max_digits=12)),
                ("total_amount", models.DecimalField(decimal_places=2, default=0, max_digits=12)),
                ("status", models.CharField(choices=[("draft", "Draft"), ("sent", "Sent"), ("paid", "Paid"), ("void", "Void")], default="sent", max_length=16)),
                ("issue_date", models.DateTimeField()),
                ("due_date", models.DateTimeField()),
                ("billing_period_start", models.DateTimeField()),
                ("billing_period_end", models.DateTimeField()),
                ("items", models.JSONField(blank=True, default=list)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("subscription", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="invoices", to="subscriptions.subscription")),
                ("tenant", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="invoices", to="tenants.tenant")),
            ],
            options={
                "db_table": "invoices",
                "ordering": ["-issue_date"],
                "indexes": [models.Index(fields=["tenant", "issue_date"], name="invoices_tenant_issue_idx")],
            },
        ),
    ]
