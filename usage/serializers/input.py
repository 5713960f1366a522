import re
from datetime import date

from rest_framework import serializers

from usage.models import UsageEventType
from usage.services.periods import end_of_day

DATE_INPUT_FORMATS = ["iso-8601", "%Y-%m-%d"]
DATE_ONLY = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class PeriodEndField(serializers.DateTimeField):
    """
    Fin de fenêtre: une date seule (YYYY-MM-DD) couvre toute la journée,
    sinon les events du dernier jour seraient exclus.
    """

    def to_internal_value(self, value):
        if isinstance(value, str) and DATE_ONLY.match(value):
            try:
                return end_of_day(date.fromisoformat(value))
            except ValueError:
                pass
        return super().to_internal_value(value)


class TrackUsageInputSerializer(serializers.Serializer):
    eventType = serializers.ChoiceField(choices=UsageEventType.choices)
    resourceId = serializers.CharField(max_length=255, required=False, allow_null=True, allow_blank=True)
    quantity = serializers.IntegerField(min_value=1, required=False, default=1)
    metadata = serializers.DictField(required=False, default=dict)


class AuthorizeUsageInputSerializer(serializers.Serializer):
    eventType = serializers.ChoiceField(choices=UsageEventType.choices)
    quantity = serializers.IntegerField(min_value=1, required=False, default=1)


class DateRangeQuerySerializer(serializers.Serializer):
    """startDate / endDate optionnels mais indissociables."""
    startDate = serializers.DateTimeField(input_formats=DATE_INPUT_FORMATS, required=False)
    endDate = PeriodEndField(input_formats=DATE_INPUT_FORMATS, required=False)
    eventType = serializers.ChoiceField(choices=UsageEventType.choices, required=False)

    def validate(self, attrs):
        start, end = attrs.get("startDate"), attrs.get("endDate")
        if (start is None) != (end is None):
            raise serializers.ValidationError("startDate and endDate go together")
        if start and end and end < start:
            raise serializers.ValidationError({"endDate": "Must not be before startDate"})
        return attrs


class ExportQuerySerializer(DateRangeQuerySerializer):
    format = serializers.ChoiceField(choices=["csv", "json"], required=False, default="csv")
    includeDetails = serializers.BooleanField(required=False, default=True)
