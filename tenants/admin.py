from django.contrib import admin
from .models import Tenant, Plan, TenantUser


@admin.register(Plan)
class PlanAdmin(admin.ModelAdmin):
    list_display = ("id", "name", "slug", "price", "max_users", "active", "created_at")
    list_filter = ("active",)
    search_fields = ("name", "slug")
    readonly_fields = ("created_at",)


@admin.register(Tenant)
class TenantAdmin(admin.ModelAdmin):
    list_display = ("id", "name", "status", "support_email", "stripe_customer_id", "created_at", "last_usage_at")
    list_filter = ("status",)
    search_fields = ("name", "support_email")
    readonly_fields = ("created_at", "updated_at", "last_usage_at")


@admin.register(TenantUser)
class TenantUserAdmin(admin.ModelAdmin):
    list_display = ("id", "tenant", "email", "role", "is_active", "created_at")
    list_filter = ("role", "is_active")
    search_fields = ("email", "tenant__name")
