from django.conf import settings
from django.contrib import admin
from django.urls import path, include, re_path
from django.http import JsonResponse
from drf_spectacular.views import SpectacularAPIView, SpectacularSwaggerView, SpectacularRedocView
from rest_framework.permissions import AllowAny

from subscriptions.views.stripe_webhook import StripeWebhookView
from .routers import router as api_router

API_ROOT = f"{settings.API_PREFIX}/{settings.API_VERSION}"


def health_view(_request):
    return JsonResponse({"status": "ok", **settings.HEALTH_INFO()})


urlpatterns = [
    path("health/", health_view, name="health"),
    path("admin/", admin.site.urls),

    # OpenAPI
    path(f"{API_ROOT}/schema/", SpectacularAPIView.as_view(), name="schema"),
    path(
        f"{API_ROOT}/docs/",
        SpectacularSwaggerView.as_view(
            url_name="schema",
            permission_classes=[AllowAny],
            authentication_classes=[],
        ),
        name="swagger-ui",
    ),
    path(
        f"{API_ROOT}/redoc/",
        SpectacularRedocView.as_view(
            url_name="schema",
            permission_classes=[AllowAny],
            authentication_classes=[],
        ),
        name="redoc",
    ),

    path(f"{API_ROOT}/", include(api_router.urls)),
    path(f"{API_ROOT}/usage/", include("usage.urls")),
    path(f"{API_ROOT}/billing/", include("billing.urls")),
    path(f"{API_ROOT}/admin-subscription/", include("subscriptions.urls")),
    path(f"{API_ROOT}/payments/stripe/webhook", StripeWebhookView.as_view(), name="stripe-webhook"),
]


urlpatterns += [
    re_path(
        r"^$",
        SpectacularSwaggerView.as_view(
            url_name="schema",
            permission_classes=[AllowAny],
            authentication_classes=[],
        ),
    ),
]
