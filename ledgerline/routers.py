from rest_framework.routers import DefaultRouter

router = DefaultRouter()

# Admin API keys
from apikeys.views.apikey import ApiKeyAdminViewSet
router.register(r"admin/apikeys", ApiKeyAdminViewSet, basename="admin-apikeys")

# Admin Tenants & Plans
from tenants.views.tenant import TenantAdminViewSet, PlanAdminViewSet
router.register(r"admin/tenants", TenantAdminViewSet, basename="admin-tenants")
router.register(r"admin/plans", PlanAdminViewSet, basename="admin-plans")

# Admin Subscriptions
from subscriptions.views.admin import SubscriptionAdminViewSet
router.register(r"admin/subscriptions", SubscriptionAdminViewSet, basename="admin-subscriptions")

# Admin quotas / prix unitaires par plan
from limits.views import UsageLimitAdminViewSet
router.register(r"admin/usage-limits", UsageLimitAdminViewSet, basename="admin-usage-limits")

# Admin Usage events
from usage.views.admin import UsageEventAdminViewSet
router.register(r"admin/usage", UsageEventAdminViewSet, basename="admin-usage")

# Admin Invoices
from billing.views.admin import InvoiceAdminViewSet
router.register(r"admin/invoices", InvoiceAdminViewSet, basename="admin-invoices")

# Admin Webhooks
from webhooks.views import WebhookConfigAdminViewSet, WebhookDeliveryAdminViewSet
router.register(r"admin/webhooks/configs", WebhookConfigAdminViewSet, basename="admin-webhook-configs")
router.register(r"admin/webhooks/deliveries", WebhookDeliveryAdminViewSet, basename="admin-webhook-deliveries")
