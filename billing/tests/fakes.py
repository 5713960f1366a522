"""
Passerelle en mémoire pour les tests (PAYMENT_GATEWAY_CLASS en settings.test).
"""
import hashlib
import hmac
import json
import time

from billing.services.gateway import (
    GatewayError, GatewayTimeout, InvalidSignature, PaymentGateway, PaymentIntent,
)

WEBHOOK_SECRET = "whsec_test"


def sign_event(payload: bytes, secret: str = WEBHOOK_SECRET, ts: int | None = None) -> str:
    """En-tête Stripe-Signature au format t=...,v1=..."""
    ts = ts or int(time.time())
    sig = hmac.new(secret.encode(), f"{ts}.".encode() + payload, hashlib.sha256).hexdigest()
    return f"t={ts},v1={sig}"


class FakeGateway(PaymentGateway):

    def __init__(self, webhook_secret: str = WEBHOOK_SECRET):
        self.webhook_secret = webhook_secret
        self.reset()

    @classmethod
    def from_settings(cls):
        return cls()

    def reset(self):
        self.intents = {}
        self.customers = []
        self.calls = []
        self.fail_with = None       # "timeout" | "error" | None
        self.next_status = "requires_payment_method"

    def get_or_create_customer(self, tenant) -> str:
        self.calls.append(("get_or_create_customer", tenant.id))
        if tenant.stripe_customer_id:
            return tenant.stripe_customer_id
        customer_id = f"cus_fake_{tenant.id}"
        self.customers.append(customer_id)
        return customer_id

    def create_payment_intent(self, *, customer_id, amount, currency, metadata, description=""):
        self.calls.append(("create_payment_intent", amount))
        if self.fail_with == "timeout":
            raise GatewayTimeout("Request timed out")
        if self.fail_with == "error":
            raise GatewayError("Your card was declined.")
        pi_id = f"pi_fake_{len(self.intents) + 1}"
        intent = PaymentIntent(
            id=pi_id, status=self.next_status, amount=amount, currency=currency,
            client_secret=f"{pi_id}_secret", metadata={k: str(v) for k, v in metadata.items()},
        )
        self.intents[pi_id] = intent
        return intent

    def retrieve_payment_intent(self, payment_intent_id):
        self.calls.append(("retrieve_payment_intent", payment_intent_id))
        try:
            return self.intents[payment_intent_id]
        except KeyError:
            raise GatewayError(f"No such payment_intent: '{payment_intent_id}'")

    def succeed(self, payment_intent_id):
        self.intents[payment_intent_id].status = "succeeded"
        return self.intents[payment_intent_id]

    def construct_event(self, payload: bytes, signature: str) -> dict:
        parts = dict(p.split("=", 1) for p in (signature or "").split(",") if "=" in p)
        expected = sign_event(payload, self.webhook_secret, int(parts.get("t", 0) or 0))
        if not signature or not hmac.compare_digest(expected, signature):
            raise InvalidSignature("No signatures found matching the expected signature for payload")
        return json.loads(payload)
