from django.urls import path

from .views.usage_billing import CalculateUsageBillingView, BillingSummaryView, TenantInvoiceListView

urlpatterns = [
    path("calculate-usage", CalculateUsageBillingView.as_view(), name="billing-calculate-usage"),
    path("summary", BillingSummaryView.as_view(), name="billing-summary"),
    path("invoices", TenantInvoiceListView.as_view(), name="billing-invoices"),
]
