from decimal import Decimal
from unittest import mock

from django.db import IntegrityError, transaction
from django.test import TestCase
from rest_framework.exceptions import ValidationError

from subscriptions.testing import make_plan, make_limit, make_tenant, subscribe
from usage.models import UsageEvent, UsageSummary, UsageEventType
from usage.services import metering
from usage.services.metering import record_usage, get_unit_price
from usage.services.periods import current_billing_period

UPLOAD = UsageEventType.DOCUMENT_UPLOAD


class RecordUsageTest(TestCase):
    def setUp(self):
        self.plan = make_plan()
        make_limit(self.plan, UPLOAD, limit=10, unit_price="0.10", overage_price="0.25")
        self.tenant = make_tenant()
        subscribe(self.tenant, self.plan)

    def test_event_and_summary(self):
        event = record_usage(self.tenant, UPLOAD, 3, resource_id="doc_1", metadata={"size": 10})
        period = current_billing_period()
        self.assertEqual(event.billing_period_start, period.start)
        self.assertEqual(event.billing_period_end, period.end)
        s = UsageSummary.objects.get(tenant=self.tenant, event_type=UPLOAD)
        self.assertEqual(s.total_quantity, 3)
        self.assertEqual(s.unit_price, Decimal("0.1000"))
        self.assertEqual(s.total_amount, Decimal("0.30"))
        self.tenant.refresh_from_db()
        self.assertIsNotNone(self.tenant.last_usage_at)

    def test_summary_is_sum_of_quantities(self):
        for q in (5, 4, 3, 1, 7):
            record_usage(self.tenant, UPLOAD, q)
        s = UsageSummary.objects.get(tenant=self.tenant, event_type=UPLOAD)
        self.assertEqual(s.total_quantity, 20)
        self.assertEqual(s.total_amount, Decimal("2.00"))
        self.assertEqual(UsageSummary.objects.filter(tenant=self.tenant).count(), 1)

    def test_concurrent_creator_falls_back_to_increment(self):
        record_usage(self.tenant, UPLOAD, 2)
        real = metering._increment_summary
        calls = []

        def racing(*args, **kwargs):
            # 1er passage: la ligne "n'existe pas encore" pour ce writer
            calls.append(1)
            return 0 if len(calls) == 1 else real(*args, **kwargs)

        with mock.patch.object(metering, "_increment_summary", side_effect=racing):
            record_usage(self.tenant, UPLOAD, 5)

        self.assertEqual(len(calls), 2)
        s = UsageSummary.objects.get(tenant=self.tenant, event_type=UPLOAD)
        self.assertEqual(s.total_quantity, 7)
        self.assertEqual(UsageEvent.objects.filter(tenant=self.tenant).count(), 2)

    def test_interleaved_increments_add_up(self):
        record_usage(self.tenant, UPLOAD, 2)
        stale = UsageSummary.objects.get(tenant=self.tenant, event_type=UPLOAD)
        real_upsert = metering.upsert_summary

        def other_writer_first(tenant, event_type, period, quantity):
            # un autre writer incrémente la ligne entre l'insert de l'event et notre incrément
            self.assertEqual(metering._increment_summary(tenant, event_type, period.start, 4), 1)
            return real_upsert(tenant, event_type, period, quantity)

        with mock.patch.object(metering, "upsert_summary", side_effect=other_writer_first):
            record_usage(self.tenant, UPLOAD, 3)

        s = UsageSummary.objects.get(pk=stale.pk)
        self.assertEqual(stale.total_quantity, 2)
        self.assertEqual(s.total_quantity, 2 + 4 + 3)
        self.assertEqual(s.total_amount, Decimal("0.90"))

    def test_unique_summary_per_period(self):
        record_usage(self.tenant, UPLOAD, 1)
        s = UsageSummary.objects.get(tenant=self.tenant, event_type=UPLOAD)
        with self.assertRaises(IntegrityError), transaction.atomic():
            UsageSummary.objects.create(tenant=self.tenant, event_type=UPLOAD,
                                        billing_period_start=s.billing_period_start,
                                        billing_period_end=s.billing_period_end)

    def test_invalid_event_type(self):
        with self.assertRaises(ValidationError):
            record_usage(self.tenant, "teleport", 1)
        self.assertFalse(UsageEvent.objects.exists())

    def test_non_positive_quantity(self):
        for q in (0, -3):
            with self.assertRaises(ValidationError):
                record_usage(self.tenant, UPLOAD, q)
        self.assertFalse(UsageSummary.objects.exists())

    def test_failed_summary_rolls_back_event(self):
        with mock.patch.object(metering, "upsert_summary", side_effect=IntegrityError("boom")):
            with self.assertRaises(IntegrityError):
                record_usage(self.tenant, UPLOAD, 1)
        self.assertFalse(UsageEvent.objects.exists())

    def test_unit_price_defaults_to_zero(self):
        self.assertEqual(get_unit_price(self.tenant, UsageEventType.API_CALL), Decimal("0"))
        other = make_tenant(name="No plan")
        self.assertEqual(get_unit_price(other, UPLOAD), Decimal("0"))
        record_usage(other, UPLOAD, 2)
        self.assertEqual(UsageSummary.objects.get(tenant=other).total_amount, Decimal("0.00"))
