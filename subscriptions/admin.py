from django.contrib import admin
from .models import Subscription, PlanChange


@admin.register(Subscription)
class SubscriptionAdmin(admin.ModelAdmin):
    list_display = ("id", "tenant", "plan", "status", "current_period_start", "current_period_end")
    list_filter = ("status", "plan")


@admin.register(PlanChange)
class PlanChangeAdmin(admin.ModelAdmin):
    list_display = ("id", "tenant", "from_plan", "to_plan", "amount", "status", "payment_intent_id", "created_at")
    list_filter = ("status",)
    readonly_fields = ("payment_intent_id", "applied_at")
