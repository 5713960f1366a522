from django.test import TestCase

from apikeys.testing import SignedClientMixin
from billing.models import Invoice
from subscriptions.testing import make_plan, make_limit, make_tenant, subscribe
from usage.models import UsageEventType, UsageSummary
from usage.services.periods import current_billing_period

API = "/api/v1"
UPLOAD = UsageEventType.DOCUMENT_UPLOAD


class UsageBillingApiTest(SignedClientMixin, TestCase):
    """
    Quota 10 uploads, 0.10 inclus, 0.25 au-delà: 5 + 4 + 3 = 12 unités.
    """

    def setUp(self):
        plan = make_plan(price="29.99")
        make_limit(plan, UPLOAD, limit=10, unit_price="0.10", overage_price="0.25")
        self.tenant = make_tenant()
        subscribe(self.tenant, plan)
        self.make_api_key(self.tenant)
        self.period = current_billing_period()

    def _track(self, quantity):
        res = self.signed_post(f"{API}/usage/track", {"eventType": UPLOAD, "quantity": quantity})
        self.assertEqual(res.status_code, 201, res.content)
        return res.json()

    def test_track_limits_and_billing(self):
        first = self._track(5)
        self.assertEqual(first["eventType"], UPLOAD)
        self.assertEqual(first["quantity"], 5)
        self._track(4)

        res = self.signed_get(f"{API}/usage/limits")
        self.assertEqual(res.status_code, 200)
        body = res.json()
        self.assertFalse(body["hasOverLimits"])
        self.assertTrue(body["hasNearLimits"])
        self.assertEqual(body["limitChecks"][0]["currentUsage"], 9)

        self._track(3)
        summary = UsageSummary.objects.get(tenant=self.tenant, event_type=UPLOAD)
        self.assertEqual(summary.total_quantity, 12)

        res = self.signed_get(f"{API}/usage/limits")
        self.assertEqual(res.status_code, 400)
        err = res.json()["error"]
        self.assertEqual(err["code"], "USAGE_LIMIT_EXCEEDED")
        self.assertEqual(err["details"]["overLimits"][0]["eventType"], UPLOAD)
        over = err["details"]["overLimits"][0]
        self.assertEqual((over["currentUsage"], over["isOverLimit"], over["remaining"]), (12, True, 0))
        self.assertEqual(err["details"]["upgradePath"], "/api/v1/admin-subscription/plans")

        res = self.signed_post(f"{API}/billing/calculate-usage", {
            "billingPeriodStart": self.period.start.isoformat(),
            "billingPeriodEnd": self.period.end.isoformat(),
        })
        self.assertEqual(res.status_code, 200, res.content)
        charge = res.json()["usageCharges"][0]
        self.assertEqual(charge["totalUsage"], 12)
        self.assertEqual(charge["includedUsage"], 10)
        self.assertEqual(charge["overageUsage"], 2)
        self.assertEqual(charge["baseCharge"], "1.00")
        self.assertEqual(charge["overageCharge"], "0.50")
        self.assertEqual(charge["totalCharge"], "1.50")
        self.assertEqual(res.json()["totalAmount"], "31.49")
        self.assertIsNone(res.json()["invoice"])
        self.assertFalse(Invoice.objects.exists())

    def test_generate_invoice_then_list(self):
        self._track(5)
        res = self.signed_post(f"{API}/billing/calculate-usage", {
            "billingPeriodStart": self.period.start.isoformat(),
            "billingPeriodEnd": self.period.end.isoformat(),
            "generateInvoice": True,
        })
        self.assertEqual(res.status_code, 200, res.content)
        invoice = res.json()["invoice"]
        self.assertEqual(invoice["amount"], "30.49")

        res = self.signed_get(f"{API}/billing/invoices")
        self.assertEqual(res.status_code, 200)
        numbers = [i["invoiceNumber"] for i in res.json()["results"]]
        self.assertEqual(numbers, [invoice["invoiceNumber"]])

    def test_date_only_period_covers_last_day(self):
        self._track(4)
        res = self.signed_post(f"{API}/billing/calculate-usage", {
            "billingPeriodStart": self.period.start.date().isoformat(),
            "billingPeriodEnd": self.period.end.date().isoformat(),
        })
        self.assertEqual(res.status_code, 200, res.content)
        self.assertEqual(res.json()["usageCharges"][0]["totalUsage"], 4)
        self.assertEqual(res.json()["totalAmount"], "30.39")

    def test_authorize_refuses_overflow(self):
        self._track(8)
        res = self.signed_post(f"{API}/usage/authorize", {"eventType": UPLOAD, "quantity": 2})
        self.assertEqual(res.status_code, 200)
        self.assertTrue(res.json()["allowed"])

        res = self.signed_post(f"{API}/usage/authorize", {"eventType": UPLOAD, "quantity": 3})
        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.json()["error"]["code"], "USAGE_LIMIT_EXCEEDED")

    def test_invalid_period(self):
        res = self.signed_post(f"{API}/billing/calculate-usage", {
            "billingPeriodStart": self.period.end.isoformat(),
            "billingPeriodEnd": self.period.start.isoformat(),
        })
        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.json()["error"]["code"], "VALIDATION_ERROR")

    def test_track_rejects_unknown_type(self):
        res = self.signed_post(f"{API}/usage/track", {"eventType": "teleport", "quantity": 1})
        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.json()["error"]["code"], "VALIDATION_ERROR")
        self.assertFalse(UsageSummary.objects.exists())

    def test_no_subscription(self):
        other = make_tenant(name="Orphan")
        self.make_api_key(other)
        res = self.signed_post(f"{API}/billing/calculate-usage", {
            "billingPeriodStart": self.period.start.isoformat(),
            "billingPeriodEnd": self.period.end.isoformat(),
        })
        self.assertEqual(res.status_code, 404)
        self.assertEqual(res.json()["error"]["code"], "NOT_FOUND")
