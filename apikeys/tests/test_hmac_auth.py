import hashlib
import hmac
import time
from datetime import timedelta

from django.contrib.auth import get_user_model
from django.test import Client, TestCase
from django.utils import timezone

from apikeys.auth.hmac import string_to_sign
from apikeys.models import ApiKey
from apikeys.testing import SignedClientMixin
from subscriptions.testing import make_plan, make_tenant, subscribe
from tenants.models import Tenant, TenantUser

URL = "/api/v1/admin-subscription/"


class HmacAuthTest(SignedClientMixin, TestCase):
    def setUp(self):
        self.tenant = make_tenant()
        subscribe(self.tenant, make_plan())
        self.make_api_key(self.tenant)

    def test_signed_request(self):
        res = self.signed_get(URL)
        self.assertEqual(res.status_code, 200, res.content)
        self.assertEqual(res.json()["tenantId"], self.tenant.id)
        self.api_key.refresh_from_db()
        self.assertIsNotNone(self.api_key.last_used_at)

    def test_missing_credentials(self):
        res = self.client.get(URL)
        self.assertEqual(res.status_code, 401)
        self.assertEqual(res.json()["error"]["code"], "NOT_AUTHENTICATED")

    def test_missing_signature_headers(self):
        res = self.client.get(URL, HTTP_X_API_KEY=self.api_key.key_id)
        self.assertEqual(res.status_code, 401)
        self.assertEqual(res.json()["error"]["message"], "Missing HMAC headers")

    def test_bad_signature(self):
        headers = self._headers("GET", URL, b"")
        headers["HTTP_X_API_SIGN"] = "0" * 64
        res = self.client.get(URL, **headers)
        self.assertEqual(res.status_code, 401)
        self.assertEqual(res.json()["error"]["code"], "AUTHENTICATION_FAILED")

    def test_signature_covers_body(self):
        headers = self._headers("POST", f"{URL}verify-payment", b'{"planId":1}')
        res = self.client.post(f"{URL}verify-payment", data=b'{"planId":2}',
                               content_type="application/json", **headers)
        self.assertEqual(res.status_code, 401)

    def test_replay_rejected(self):
        headers = self._headers("GET", URL, b"")
        self.assertEqual(self.client.get(URL, **headers).status_code, 200)
        res = self.client.get(URL, **headers)
        self.assertEqual(res.status_code, 401)
        self.assertEqual(res.json()["error"]["message"], "Replay detected")

    def test_stale_timestamp(self):
        headers = self._headers("GET", URL, b"")
        headers["HTTP_X_API_TIMESTAMP"] = str(int(time.time() * 1000) - 10 * 60 * 1000)
        res = self.client.get(URL, **headers)
        self.assertEqual(res.status_code, 401)

    def test_expired_or_inactive_key(self):
        ApiKey.objects.filter(pk=self.api_key.pk).update(expires_at=timezone.now() - timedelta(minutes=1))
        self.assertEqual(self.signed_get(URL).status_code, 401)
        ApiKey.objects.filter(pk=self.api_key.pk).update(expires_at=None, active=False)
        self.assertEqual(self.signed_get(URL).status_code, 401)

    def test_ip_allow_list(self):
        ApiKey.objects.filter(pk=self.api_key.pk).update(allowed_ips=["10.0.0.1"])
        self.assertEqual(self.signed_get(URL).status_code, 401)
        ApiKey.objects.filter(pk=self.api_key.pk).update(allowed_ips=["127.0.0.1"])
        self.assertEqual(self.signed_get(URL).status_code, 200)

    def test_suspended_tenant(self):
        Tenant.objects.filter(pk=self.tenant.pk).update(status=Tenant.STATUS_SUSPENDED)
        res = self.signed_get(URL)
        self.assertEqual(res.status_code, 403)
        self.assertEqual(res.json()["error"]["code"], "PERMISSION_DENIED")


class ApiKeyAdminTest(TestCase):
    def setUp(self):
        self.staff = get_user_model().objects.create_user("ops", password="x", is_staff=True)
        self.client.force_login(self.staff)
        self.tenant = make_tenant()
        subscribe(self.tenant, make_plan())
        self._ts = 0

    def _signed_get(self, key_id, secret):
        ts = self._ts = max(int(time.time() * 1000), self._ts + 1)
        sign = hmac.new(secret.encode(), string_to_sign(ts, "GET", URL, b""), hashlib.sha256).hexdigest()
        return Client().get(URL, HTTP_X_API_KEY=key_id, HTTP_X_API_TIMESTAMP=str(ts), HTTP_X_API_SIGN=sign)

    def test_create_and_rotate(self):
        res = self.client.post("/api/v1/admin/apikeys/", {"tenant_id": self.tenant.id, "name": "ci"},
                               content_type="application/json")
        self.assertEqual(res.status_code, 201, res.content)
        key_id, secret = res.json()["key_id"], res.json()["key_secret"]
        self.assertEqual(self._signed_get(key_id, secret).status_code, 200)

        res = self.client.post(f"/api/v1/admin/apikeys/{key_id}/rotate/")
        self.assertEqual(res.status_code, 200)
        new_secret = res.json()["key_secret"]
        self.assertNotEqual(new_secret, secret)
        self.assertEqual(self._signed_get(key_id, secret).status_code, 401)
        self.assertEqual(self._signed_get(key_id, new_secret).status_code, 200)

    def test_key_for_suspended_tenant_refused(self):
        Tenant.objects.filter(pk=self.tenant.pk).update(status=Tenant.STATUS_SUSPENDED)
        res = self.client.post("/api/v1/admin/apikeys/", {"tenant_id": self.tenant.id},
                               content_type="application/json")
        self.assertEqual(res.status_code, 400)
        self.assertIn("tenant_id", res.json()["error"]["details"])

    def test_user_of_other_tenant_refused(self):
        other = make_tenant(name="Other")
        stranger = TenantUser.objects.create(tenant=other, email="x@other.test")
        res = self.client.post("/api/v1/admin/apikeys/", {"tenant_id": self.tenant.id, "user_id": stranger.id},
                               content_type="application/json")
        self.assertEqual(res.status_code, 400)
        self.assertIn("user_id", res.json()["error"]["details"])

    def test_list_filtered_by_tenant(self):
        other = make_tenant(name="Other")
        mine, _ = ApiKey.issue(self.tenant, name="mine")
        ApiKey.issue(other, name="theirs")
        res = self.client.get("/api/v1/admin/apikeys/", {"tenant": self.tenant.id})
        self.assertEqual(res.status_code, 200)
        rows = res.json()["results"]
        self.assertEqual([r["key_id"] for r in rows], [mine.key_id])
        self.assertEqual(rows[0]["tenant_name"], self.tenant.name)
        self.assertNotIn("key_secret", rows[0])

    def test_suspended_tenant_blocks_rotate_and_resume(self):
        key, _ = ApiKey.issue(self.tenant)
        res = self.client.post(f"/api/v1/admin/apikeys/{key.key_id}/suspend/")
        self.assertEqual(res.status_code, 200)
        self.assertFalse(res.json()["active"])

        Tenant.objects.filter(pk=self.tenant.pk).update(status=Tenant.STATUS_SUSPENDED)
        for verb in ("rotate", "resume"):
            res = self.client.post(f"/api/v1/admin/apikeys/{key.key_id}/{verb}/")
            self.assertEqual(res.status_code, 400)
            self.assertEqual(res.json()["error"]["code"], "TENANT_SUSPENDED")

        Tenant.objects.filter(pk=self.tenant.pk).update(status=Tenant.STATUS_ACTIVE)
        res = self.client.post(f"/api/v1/admin/apikeys/{key.key_id}/resume/")
        self.assertEqual(res.status_code, 200)
        self.assertTrue(res.json()["active"])

    def test_expired_key_cannot_resume(self):
        key, _ = ApiKey.issue(self.tenant, active=False, expires_at=timezone.now() - timedelta(days=1))
        res = self.client.post(f"/api/v1/admin/apikeys/{key.key_id}/resume/")
        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.json()["error"]["code"], "API_KEY_EXPIRED")

    def test_key_bound_to_tenant_user(self):
        member = TenantUser.objects.create(tenant=self.tenant, email="dev@acme.test")
        res = self.client.post("/api/v1/admin/apikeys/", {"tenant_id": self.tenant.id, "user_id": member.id},
                               content_type="application/json")
        self.assertEqual(res.status_code, 201, res.content)
        self.assertEqual(ApiKey.objects.get(key_id=res.json()["key_id"]).user_id, member.id)
