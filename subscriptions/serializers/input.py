from rest_framework import serializers


class CreatePaymentIntentInputSerializer(serializers.Serializer):
    planId = serializers.IntegerField(min_value=1)


class VerifyPaymentInputSerializer(serializers.Serializer):
    paymentIntentId = serializers.CharField(max_length=128)
    planId = serializers.IntegerField(min_value=1)
