from django.urls import path

from .views.subscription import (
    CurrentSubscriptionView, AvailablePlansView, SubscriptionAnalyticsView,
    CreatePaymentIntentView, VerifyPaymentView,
)

urlpatterns = [
    path("", CurrentSubscriptionView.as_view(), name="subscription-current"),
    path("plans", AvailablePlansView.as_view(), name="subscription-plans"),
    path("analytics", SubscriptionAnalyticsView.as_view(), name="subscription-analytics"),
    path("create-payment-intent", CreatePaymentIntentView.as_view(), name="subscription-create-payment-intent"),
    path("verify-payment", VerifyPaymentView.as_view(), name="subscription-verify-payment"),
]
