from django.contrib import admin
from .models import UsageLimit


@admin.register(UsageLimit)
class UsageLimitAdmin(admin.ModelAdmin):
    list_display = ("id", "plan", "event_type", "limit_quantity", "unit_price", "overage_price", "is_active")
    list_filter = ("event_type", "is_active", "plan")
