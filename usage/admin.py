from django.contrib import admin
from .models import UsageEvent, UsageSummary


@admin.register(UsageEvent)
class UsageEventAdmin(admin.ModelAdmin):
    list_display = ("id", "tenant", "event_type", "quantity", "billing_period_start", "created_at")
    list_filter = ("event_type",)
    search_fields = ("tenant__name", "resource_id")

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(UsageSummary)
class UsageSummaryAdmin(admin.ModelAdmin):
    list_display = ("id", "tenant", "event_type", "billing_period_start", "total_quantity", "total_amount", "status")
    list_filter = ("event_type", "status")
