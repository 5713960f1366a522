from django.contrib import admin
from .models import Invoice


@admin.register(Invoice)
class InvoiceAdmin(admin.ModelAdmin):
    list_display = ("id", "invoice_number", "tenant", "total_amount", "status", "issue_date", "due_date")
    list_filter = ("status",)
    search_fields = ("invoice_number", "tenant__name")
    readonly_fields = ("created_at", "items")
