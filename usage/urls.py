from django.urls import path

from .views.track import UsageTrackView, UsageLimitsView, UsageAuthorizeView
from .views.reporting import UsageEventsView, UsageAnalyticsView, UsageExportView, UsageAnalyticsExportView

urlpatterns = [
    path("track", UsageTrackView.as_view(), name="usage-track"),
    path("limits", UsageLimitsView.as_view(), name="usage-limits"),
    path("authorize", UsageAuthorizeView.as_view(), name="usage-authorize"),
    path("events", UsageEventsView.as_view(), name="usage-events"),
    path("analytics", UsageAnalyticsView.as_view(), name="usage-analytics"),
    path("export", UsageExportView.as_view(), name="usage-export"),
    path("export/analytics", UsageAnalyticsExportView.as_view(), name="usage-export-analytics"),
]
