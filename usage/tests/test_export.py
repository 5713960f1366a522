import csv
import io
import json
from datetime import timedelta

from django.test import TestCase
from django.utils import timezone

from apikeys.testing import SignedClientMixin
from subscriptions.testing import make_plan, make_limit, make_tenant, subscribe
from usage.models import UsageEvent, UsageEventType
from usage.services.export import EVENT_HEADERS, SUMMARY_HEADERS, export_usage, usage_analytics
from usage.services.metering import record_usage

UPLOAD = UsageEventType.DOCUMENT_UPLOAD
CHECK = UsageEventType.COMPLIANCE_CHECK


class ExportTest(TestCase):
    def setUp(self):
        plan = make_plan()
        make_limit(plan, UPLOAD, limit=100, unit_price="0.10")
        self.tenant = make_tenant()
        subscribe(self.tenant, plan)
        record_usage(self.tenant, UPLOAD, 2, resource_id="doc_1", metadata={"size": 10})
        record_usage(self.tenant, UPLOAD, 4)
        record_usage(self.tenant, CHECK, 1)
        other = make_tenant(name="Other")
        record_usage(other, UPLOAD, 50)

    def test_csv_details(self):
        export = export_usage(self.tenant, "csv")
        self.assertEqual(export.content_type, "text/csv")
        self.assertTrue(export.filename.startswith("usage-data-"))
        rows = list(csv.reader(io.StringIO(export.content)))
        self.assertEqual(rows[0], EVENT_HEADERS)
        self.assertEqual(len(rows), 4)
        first = {r[2]: r for r in rows[1:]}["doc_1"]
        self.assertEqual(first[3], "2")
        self.assertEqual(first[8], '{"size": 10}')

    def test_csv_filtered_by_type(self):
        rows = list(csv.reader(io.StringIO(export_usage(self.tenant, "csv", event_type=CHECK).content)))
        self.assertEqual([r[1] for r in rows[1:]], [CHECK])

    def test_json_summaries(self):
        export = export_usage(self.tenant, "json", include_details=False)
        body = json.loads(export.content)
        self.assertEqual(body["tenantId"], self.tenant.id)
        self.assertFalse(body["includeDetails"])
        self.assertEqual(body["eventType"], "all")
        totals = {d["eventType"]: (d["totalQuantity"], d["totalAmount"]) for d in body["data"]}
        self.assertEqual(totals, {CHECK: (1, "0.00"), UPLOAD: (6, "0.60")})

    def test_csv_summaries(self):
        rows = list(csv.reader(io.StringIO(export_usage(self.tenant, "csv", include_details=False).content)))
        self.assertEqual(rows[0], SUMMARY_HEADERS)
        self.assertEqual(len(rows), 3)

    def test_analytics_by_month(self):
        # hors fenêtre par défaut (mois courant + 2 précédents)
        UsageEvent.objects.filter(tenant=self.tenant, event_type=CHECK).update(
            created_at=timezone.now() - timedelta(days=200))
        report = usage_analytics(self.tenant)
        self.assertEqual(report["tenantId"], self.tenant.id)
        self.assertEqual(len(report["analytics"]), 1)
        row = report["analytics"][0]
        self.assertEqual(row["eventType"], UPLOAD)
        self.assertEqual(row["month"], timezone.localtime().strftime("%Y-%m"))
        self.assertEqual(row["totalEvents"], 2)
        self.assertEqual(row["totalQuantity"], 6)
        self.assertEqual(row["averageQuantityPerEvent"], 3.0)


class ExportApiTest(SignedClientMixin, TestCase):
    def setUp(self):
        self.tenant = make_tenant()
        subscribe(self.tenant, make_plan())
        self.make_api_key(self.tenant)
        record_usage(self.tenant, UPLOAD, 3)

    def test_csv_attachment(self):
        res = self.signed_get("/api/v1/usage/export", {"format": "csv"})
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res["Content-Type"], "text/csv")
        self.assertIn('attachment; filename="usage-data-', res["Content-Disposition"])
        self.assertTrue(res.content.decode().startswith("ID,Event Type,Resource ID"))

    def test_json_analytics_attachment(self):
        res = self.signed_get("/api/v1/usage/export/analytics", {"format": "json"})
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res["Content-Type"], "application/json")
        self.assertEqual(res.json()["analytics"][0]["totalQuantity"], 3)

    def test_unknown_format(self):
        res = self.signed_get("/api/v1/usage/export", {"format": "xml"})
        self.assertEqual(res.status_code, 400)

    def test_events_listing(self):
        res = self.signed_get("/api/v1/usage/events")
        self.assertEqual(res.status_code, 200)
        body = res.json()
        self.assertEqual(body["count"], 1)
        self.assertEqual(body["summaries"][0]["totalQuantity"], 3)

    def test_half_open_range_rejected(self):
        res = self.signed_get("/api/v1/usage/events", {"startDate": "2024-01-01"})
        self.assertEqual(res.status_code, 400)
