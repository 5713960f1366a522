from rest_framework import serializers

from usage.serializers.input import DATE_INPUT_FORMATS, PeriodEndField
from ..models import Invoice


class CalculateUsageInputSerializer(serializers.Serializer):
    billingPeriodStart = serializers.DateTimeField(input_formats=DATE_INPUT_FORMATS)
    billingPeriodEnd = PeriodEndField(input_formats=DATE_INPUT_FORMATS)
    generateInvoice = serializers.BooleanField(required=False, default=False)

    def validate(self, attrs):
        if attrs["billingPeriodEnd"] <= attrs["billingPeriodStart"]:
            raise serializers.ValidationError({"billingPeriodEnd": "Must be after billingPeriodStart"})
        return attrs


class BillingSummaryQuerySerializer(serializers.Serializer):
    billingPeriodStart = serializers.DateTimeField(input_formats=DATE_INPUT_FORMATS, required=False)
    billingPeriodEnd = PeriodEndField(input_formats=DATE_INPUT_FORMATS, required=False)

    def validate(self, attrs):
        start, end = attrs.get("billingPeriodStart"), attrs.get("billingPeriodEnd")
        if (start is None) != (end is None):
            raise serializers.ValidationError("billingPeriodStart and billingPeriodEnd go together")
        if start and end and end <= start:
            raise serializers.ValidationError({"billingPeriodEnd": "Must be after billingPeriodStart"})
        return attrs


class InvoicePublicSerializer(serializers.ModelSerializer):
    invoiceNumber = serializers.CharField(source="invoice_number")
    taxAmount = serializers.DecimalField(source="tax_amount", max_digits=12, decimal_places=2)
    totalAmount = serializers.DecimalField(source="total_amount", max_digits=12, decimal_places=2)
    issueDate = serializers.DateTimeField(source="issue_date")
    dueDate = serializers.DateTimeField(source="due_date")
    billingPeriodStart = serializers.DateTimeField(source="billing_period_start")
    billingPeriodEnd = serializers.DateTimeField(source="billing_period_end")

    class Meta:
        model = Invoice
        fields = ("id", "invoiceNumber", "amount", "taxAmount", "totalAmount", "status", "issueDate",
                  "dueDate", "billingPeriodStart", "billingPeriodEnd", "items")
        read_only_fields = fields


class InvoiceAdminSerializer(serializers.ModelSerializer):
    class Meta:
        model = Invoice
        fields = ("id", "tenant", "subscription", "invoice_number", "amount", "tax_amount", "total_amount",
                  "status", "issue_date", "due_date", "billing_period_start", "billing_period_end",
                  "items", "created_at")
        read_only_fields = tuple(f for f in fields if f != "status")
