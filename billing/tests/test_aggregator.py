from datetime import timedelta
from decimal import Decimal
from unittest import mock

from django.test import TestCase

from billing.models import Invoice
from billing.services.aggregator import calculate_usage_billing, billing_summary, compute_charge
from core.exceptions import NotFound
from subscriptions.testing import make_plan, make_limit, make_tenant, subscribe
from usage.models import UsageEventType, UsageSummary
from usage.services.metering import record_usage
from usage.services.periods import current_billing_period

UPLOAD = UsageEventType.DOCUMENT_UPLOAD
API_CALL = UsageEventType.API_CALL


class ComputeChargeTest(TestCase):

    def test_overage_split(self):
        c = compute_charge("api_call", 150, 100, Decimal("0.01"), Decimal("0.05"))
        self.assertEqual((c.included_usage, c.overage_usage), (100, 50))
        self.assertEqual(c.base_charge, Decimal("1.00"))
        self.assertEqual(c.overage_charge, Decimal("2.50"))
        self.assertEqual(c.total_charge, Decimal("3.50"))

    def test_unlimited_bills_every_unit(self):
        c = compute_charge("api_call", 1234, None, Decimal("0.01"), Decimal("0.05"))
        self.assertEqual((c.included_usage, c.overage_usage), (1234, 0))
        self.assertEqual(c.total_charge, Decimal("12.34"))
        self.assertEqual(c.overage_charge, Decimal("0.00"))

    def test_no_overage_price(self):
        c = compute_charge("api_call", 12, 10, Decimal("0.10"), None)
        self.assertEqual(c.overage_charge, Decimal("0.00"))
        self.assertEqual(c.total_charge, Decimal("1.00"))


class UsageBillingTest(TestCase):
    def setUp(self):
        self.plan = make_plan(name="Starter", price="29.99")
        make_limit(self.plan, UPLOAD, limit=10, unit_price="0.10", overage_price="0.25")
        make_limit(self.plan, API_CALL, limit=None, unit_price="0.01")
        self.tenant = make_tenant()
        self.sub = subscribe(self.tenant, self.plan)
        self.period = current_billing_period()

    def _track(self):
        for q in (5, 4, 3):
            record_usage(self.tenant, UPLOAD, q)
        record_usage(self.tenant, API_CALL, 250)

    def test_preview_breakdown(self):
        self._track()
        b = calculate_usage_billing(self.tenant, *self.period)
        charges = {c.event_type: c for c in b.usage_charges}
        up = charges[UPLOAD]
        self.assertEqual((up.total_usage, up.included_usage, up.overage_usage), (12, 10, 2))
        self.assertEqual((up.base_charge, up.overage_charge, up.total_charge),
                         (Decimal("1.00"), Decimal("0.50"), Decimal("1.50")))
        self.assertEqual(charges[API_CALL].total_charge, Decimal("2.50"))
        self.assertEqual(b.subscription_fee, Decimal("29.99"))
        self.assertEqual(b.total_usage_charges, Decimal("4.00"))
        self.assertEqual(b.total_amount, Decimal("33.99"))
        self.assertIsNone(b.invoice)
        self.assertFalse(Invoice.objects.exists())
        self.assertEqual(set(UsageSummary.objects.values_list("status", flat=True)), {UsageSummary.STATUS_CALCULATED})

    def test_generate_invoice(self):
        self._track()
        with self.captureOnCommitCallbacks(execute=True):
            b = calculate_usage_billing(self.tenant, *self.period, generate_invoice=True)
        inv = b.invoice
        self.assertIsNotNone(inv)
        self.assertTrue(inv.invoice_number.startswith("INV-"))
        self.assertTrue(inv.invoice_number.endswith(f"-{self.tenant.id}"))
        self.assertEqual(inv.total_amount, Decimal("33.99"))
        self.assertEqual(inv.amount, Decimal("4.00"))
        self.assertEqual(inv.status, Invoice.STATUS_SENT)
        self.assertEqual(inv.due_date - inv.issue_date, timedelta(days=30))
        descriptions = [i["description"] for i in inv.items]
        self.assertEqual(descriptions[0], "Starter Subscription")
        self.assertIn("Document Upload Usage (12 units)", descriptions)
        self.assertIn("API Call Usage (250 units)", descriptions)

        s = UsageSummary.objects.get(tenant=self.tenant, event_type=UPLOAD)
        self.assertEqual(s.status, UsageSummary.STATUS_BILLED)
        self.assertEqual(s.invoice_id, inv.id)
        self.assertEqual(s.total_amount, Decimal("1.50"))
        self.assertIsNotNone(s.billed_at)

    def test_preview_keeps_billed_summaries(self):
        self._track()
        with self.captureOnCommitCallbacks(execute=True):
            inv = calculate_usage_billing(self.tenant, *self.period, generate_invoice=True).invoice

        calculate_usage_billing(self.tenant, *self.period)

        s = UsageSummary.objects.get(tenant=self.tenant, event_type=UPLOAD)
        self.assertEqual(s.status, UsageSummary.STATUS_BILLED)
        self.assertEqual(s.invoice_id, inv.id)
        self.assertIsNotNone(s.billed_at)

    def test_no_invoice_for_zero_total(self):
        free = make_plan(slug="free", price="0")
        make_limit(free, UPLOAD, limit=100, unit_price="0")
        t = make_tenant(name="Freeloader")
        subscribe(t, free)
        record_usage(t, UPLOAD, 3)
        b = calculate_usage_billing(t, *self.period, generate_invoice=True)
        self.assertEqual(b.total_amount, Decimal("0.00"))
        self.assertIsNone(b.invoice)
        self.assertFalse(Invoice.objects.exists())

    def test_events_outside_period_ignored(self):
        self._track()
        nxt = self.period.end + timedelta(days=1)
        b = calculate_usage_billing(self.tenant, nxt, nxt + timedelta(days=30))
        self.assertTrue(all(c.total_usage == 0 for c in b.usage_charges))
        self.assertEqual(b.total_amount, Decimal("29.99"))

    def test_summary_update_failure_is_not_fatal(self):
        from django.db import DatabaseError
        self._track()
        with mock.patch("billing.services.aggregator.UsageSummary.objects.filter",
                        side_effect=DatabaseError("locked")):
            b = calculate_usage_billing(self.tenant, *self.period, generate_invoice=True)
        self.assertIsNotNone(b.invoice)

    def test_no_subscription(self):
        with self.assertRaises(NotFound):
            calculate_usage_billing(make_tenant(name="Nobody"), *self.period)

    def test_billing_summary_defaults_to_current_month(self):
        self._track()
        data = billing_summary(self.tenant)
        self.assertEqual(data["billingPeriod"]["start"], self.period.start)
        self.assertEqual(data["subscriptionFee"], "29.99")
        # agrégats au prix unitaire: 12 * 0.10 + 250 * 0.01
        self.assertEqual(data["totalUsageCharges"], "3.70")
        self.assertEqual(data["totalAmount"], "33.69")
        self.assertEqual(len(data["usageSummaries"]), 2)
