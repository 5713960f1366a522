from django.contrib import admin

from .models import ApiKey


@admin.register(ApiKey)
class ApiKeyAdmin(admin.ModelAdmin):
    """Le secret n'est jamais affiché ; création/rotation via l'API d'administration."""
    list_display = ("id", "tenant", "user", "key_id", "name", "active", "is_expired", "last_used_at", "created_at")
    list_filter = ("active",)
    list_select_related = ("tenant", "user")
    search_fields = ("key_id", "tenant__name", "name")
    readonly_fields = ("key_id", "created_at", "last_used_at")
    exclude = ("key_secret_enc",)
    actions = ("deactivate",)

    @admin.action(description="Deactivate selected keys")
    def deactivate(self, request, queryset):
        queryset.update(active=False)
