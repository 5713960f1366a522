from unittest import mock

from django.core.cache import cache
from django.test import TestCase

from core.exceptions import QuotaExceeded
from limits.services.quota import check_limit, check_all_limits, enforce_quota, notify_quota_state
from subscriptions.testing import make_plan, make_limit, make_tenant, subscribe
from usage.models import UsageEventType
from usage.services.metering import record_usage
from webhooks.models import WebhookConfig

UPLOAD = UsageEventType.DOCUMENT_UPLOAD
DOWNLOAD = UsageEventType.DOCUMENT_DOWNLOAD


class CheckLimitTest(TestCase):
    def setUp(self):
        self.plan = make_plan()
        make_limit(self.plan, UPLOAD, limit=10, unit_price="0.10", overage_price="0.25")
        make_limit(self.plan, DOWNLOAD, limit=None, unit_price="0.01")
        self.tenant = make_tenant()
        subscribe(self.tenant, self.plan)

    def test_idempotent_without_writes(self):
        record_usage(self.tenant, UPLOAD, 4)
        first = check_limit(self.tenant, UPLOAD)
        for _ in range(3):
            self.assertEqual(check_limit(self.tenant, UPLOAD), first)
        self.assertEqual(first.current_usage, 4)
        self.assertEqual(first.remaining, 6)
        self.assertEqual(first.percent_used, 40.0)
        self.assertFalse(first.is_near_limit)

    def test_near_and_over_limit(self):
        record_usage(self.tenant, UPLOAD, 8)
        r = check_limit(self.tenant, UPLOAD)
        self.assertTrue(r.is_near_limit)
        self.assertFalse(r.is_over_limit)
        record_usage(self.tenant, UPLOAD, 4)
        r = check_limit(self.tenant, UPLOAD)
        self.assertTrue(r.is_over_limit)
        self.assertEqual(r.remaining, 0)
        self.assertEqual(r.percent_used, 120.0)
        self.assertFalse(r.allowed)

    def test_at_limit_is_not_over(self):
        record_usage(self.tenant, UPLOAD, 10)
        r = check_limit(self.tenant, UPLOAD)
        self.assertFalse(r.is_over_limit)
        self.assertEqual(r.remaining, 0)

    def test_unlimited_never_over(self):
        record_usage(self.tenant, DOWNLOAD, 100000)
        r = check_limit(self.tenant, DOWNLOAD)
        self.assertIsNone(r.limit)
        self.assertIsNone(r.remaining)
        self.assertFalse(r.is_over_limit)
        self.assertFalse(r.is_near_limit)

    def test_no_limit_row_or_no_subscription(self):
        r = check_limit(self.tenant, UsageEventType.API_CALL)
        self.assertTrue(r.allowed)
        self.assertIsNone(r.remaining)

        loner = make_tenant(name="Loner")
        record_usage(loner, UPLOAD, 50)
        r = check_limit(loner, UPLOAD)
        self.assertEqual(r.current_usage, 50)
        self.assertFalse(r.is_over_limit)
        self.assertEqual(check_all_limits(loner), [])

    def test_zero_limit(self):
        make_limit(self.plan, UsageEventType.COMPLIANCE_CHECK, limit=0)
        r = check_limit(self.tenant, UsageEventType.COMPLIANCE_CHECK)
        self.assertEqual(r.percent_used, 100.0)
        self.assertTrue(r.is_near_limit)
        self.assertFalse(r.is_over_limit)
        record_usage(self.tenant, UsageEventType.COMPLIANCE_CHECK, 1)
        self.assertTrue(check_limit(self.tenant, UsageEventType.COMPLIANCE_CHECK).is_over_limit)

    def test_check_all_limits(self):
        record_usage(self.tenant, UPLOAD, 2)
        results = {r.event_type: r for r in check_all_limits(self.tenant)}
        self.assertEqual(set(results), {UPLOAD, DOWNLOAD})
        self.assertEqual(results[UPLOAD].current_usage, 2)

    def test_enforce_quota(self):
        record_usage(self.tenant, UPLOAD, 9)
        self.assertTrue(enforce_quota(self.tenant, UPLOAD, 1).allowed)
        with self.assertRaises(QuotaExceeded) as ctx:
            enforce_quota(self.tenant, UPLOAD, 2)
        self.assertEqual(ctx.exception.details["limit"], 10)
        self.assertEqual(ctx.exception.details["currentUsage"], 9)
        self.assertIn("upgradePath", ctx.exception.details)
        # illimité: jamais refusé
        enforce_quota(self.tenant, DOWNLOAD, 10 ** 6)


class QuotaNotificationTest(TestCase):
    def setUp(self):
        cache.clear()
        plan = make_plan()
        make_limit(plan, UPLOAD, limit=10, unit_price="0.10")
        self.tenant = make_tenant()
        subscribe(self.tenant, plan)
        cfg = WebhookConfig(tenant=self.tenant, url="https://hooks.example.com/ll",
                            events=["quota.threshold", "quota.exceeded"])
        cfg.set_secret("whsecret-123")
        cfg.save()

    @mock.patch("webhooks.tasks.deliver_webhook_task.delay")
    def test_threshold_then_exceeded_once_each(self, delay):
        with self.captureOnCommitCallbacks(execute=True):
            record_usage(self.tenant, UPLOAD, 3)
            notify_quota_state(self.tenant, UPLOAD)
        delay.assert_not_called()

        with self.captureOnCommitCallbacks(execute=True):
            record_usage(self.tenant, UPLOAD, 5)
            notify_quota_state(self.tenant, UPLOAD)
            record_usage(self.tenant, UPLOAD, 1)
            notify_quota_state(self.tenant, UPLOAD)
        self.assertEqual([c.args[1] for c in delay.call_args_list], ["quota.threshold"])

        with self.captureOnCommitCallbacks(execute=True):
            record_usage(self.tenant, UPLOAD, 2)
            notify_quota_state(self.tenant, UPLOAD)
        self.assertEqual([c.args[1] for c in delay.call_args_list], ["quota.threshold", "quota.exceeded"])
        payload = delay.call_args_list[-1].args[2]
        self.assertEqual(payload["currentUsage"], 11)
