from rest_framework import serializers

from webhooks.models import WebhookConfig, WebhookDelivery, EVENT_NAMES


class WebhookConfigOutSerializer(serializers.ModelSerializer):
    class Meta:
        model = WebhookConfig
        fields = ("id", "tenant", "url", "events", "active", "timeout_s", "max_retries", "backoff_s",
                  "created_at", "updated_at")
        read_only_fields = fields


class WebhookConfigUpsertSerializer(serializers.ModelSerializer):
    """Le secret est reçu en clair puis chiffré ; il n'est jamais réaffiché."""
    secret = serializers.CharField(write_only=True, min_length=8)
    events = serializers.ListField(child=serializers.ChoiceField(choices=EVENT_NAMES), required=False)

    class Meta:
        model = WebhookConfig
        fields = ("tenant", "url", "secret", "events", "active", "timeout_s", "max_retries", "backoff_s")

    def create(self, validated_data):
        raw = validated_data.pop("secret", None)
        cfg = WebhookConfig(**validated_data)
        cfg.set_secret(raw)
        cfg.save()
        return cfg

    def update(self, instance, validated_data):
        raw = validated_data.pop("secret", None)
        if raw:
            instance.set_secret(raw)
        return super().update(instance, validated_data)

    def to_representation(self, instance):
        return WebhookConfigOutSerializer(instance).data


class WebhookDeliveryOutSerializer(serializers.ModelSerializer):
    class Meta:
        model = WebhookDelivery
        fields = (
            "id", "tenant", "config", "event", "url", "attempt", "headers",
            "payload", "status_code", "ok", "error", "duration_ms", "created_at"
        )
        read_only_fields = fields
