from django.contrib import admin
from .models import WebhookConfig, WebhookDelivery


@admin.register(WebhookConfig)
class WebhookConfigAdmin(admin.ModelAdmin):
    list_display = ("id", "tenant", "url", "active", "max_retries", "updated_at")
    exclude = ("secret",)


@admin.register(WebhookDelivery)
class WebhookDeliveryAdmin(admin.ModelAdmin):
    list_display = ("id", "tenant", "event", "attempt", "ok", "status_code", "created_at")
    list_filter = ("event", "ok")
