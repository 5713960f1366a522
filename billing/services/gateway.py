"""
Client passerelle de paiement.

Construite une fois au démarrage (BillingConfig.ready via build_gateway),
portée par la config de l'app puis injectée dans les services. Les tests
substituent un fake via PAYMENT_GATEWAY_CLASS.
"""
import json
import logging
from dataclasses import dataclass, field
from functools import cached_property
from typing import Optional

import stripe
from django.apps import apps
from django.conf import settings
from django.utils.module_loading import import_string

logger = logging.getLogger("ledgerline.billing")


class GatewayError(Exception):
    """Refus explicite ou erreur de la passerelle (message brut, pour les opérateurs)."""


class GatewayTimeout(GatewayError):
    """Passerelle injoignable / délai dépassé: issue du paiement inconnue."""


class InvalidSignature(GatewayError):
    pass


@dataclass
class PaymentIntent:
    id: str
    status: str
    amount: int
    currency: str
    client_secret: Optional[str] = None
    metadata: dict = field(default_factory=dict)

    @property
    def succeeded(self) -> bool:
        return self.status == "succeeded"


class PaymentGateway:
    """Contrat minimal utilisé par le flux de changement de plan."""

    def get_or_create_customer(self, tenant) -> str:
        raise NotImplementedError

    def create_payment_intent(self, *, customer_id: str, amount: int, currency: str,
                              metadata: dict, description: str = "") -> PaymentIntent:
        raise NotImplementedError

    def retrieve_payment_intent(self, payment_intent_id: str) -> PaymentIntent:
        raise NotImplementedError

    def construct_event(self, payload: bytes, signature: str) -> dict:
        """Vérifie la signature du callback et retourne l'event (dict JSON)."""
        raise NotImplementedError


class StripeGateway(PaymentGateway):
    """
    Stripe via StripeClient: timeout borné, aucun retry réseau automatique
    (un retry silencieux pourrait débiter deux fois).
    """

    def __init__(self, api_key: str, webhook_secret: str, timeout: int = 15, currency: str = "usd"):
        self.api_key = api_key
        self.webhook_secret = webhook_secret
        self.timeout = timeout
        self.currency = currency

    @cached_property
    def client(self) -> stripe.StripeClient:
        # créé au premier appel: le démarrage ne dépend pas de la clé Stripe
        return stripe.StripeClient(
            self.api_key,
            http_client=stripe.RequestsClient(timeout=self.timeout),
            max_network_retries=0,
        )

    @classmethod
    def from_settings(cls):
        return cls(
            api_key=settings.STRIPE_SECRET_KEY,
            webhook_secret=settings.STRIPE_WEBHOOK_SECRET,
            timeout=settings.STRIPE_TIMEOUT_S,
            currency=settings.BILLING_CURRENCY,
        )

    @staticmethod
    def _intent(obj) -> PaymentIntent:
        return PaymentIntent(
            id=obj.id,
            status=obj.status,
            amount=obj.amount,
            currency=obj.currency,
            client_secret=getattr(obj, "client_secret", None),
            metadata=dict(obj.metadata or {}),
        )

    def _call(self, what: str, fn, *args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except stripe.APIConnectionError as e:
            logger.warning("stripe %s: connection failure: %s", what, e)
            raise GatewayTimeout(str(e)) from e
        except stripe.StripeError as e:
            logger.error("stripe %s failed: %s", what, e)
            raise GatewayError(getattr(e, "user_message", None) or str(e)) from e

    def get_or_create_customer(self, tenant) -> str:
        if tenant.stripe_customer_id:
            return tenant.stripe_customer_id
        customer = self._call("customer.create", self.client.customers.create, params={
            "name": tenant.name,
            "email": tenant.support_email or None,
            "metadata": {"tenant_id": str(tenant.id)},
        })
        logger.info("stripe customer created tenant=%s customer=%s", tenant.id, customer.id)
        return customer.id

    def create_payment_intent(self, *, customer_id: str, amount: int, currency: str,
                              metadata: dict, description: str = "") -> PaymentIntent:
        obj = self._call("payment_intent.create", self.client.payment_intents.create, params={
            "amount": amount,
            "currency": currency or self.currency,
            "customer": customer_id,
            "description": description,
            "metadata": {k: str(v) for k, v in metadata.items()},
            "automatic_payment_methods": {"enabled": True},
        })
        return self._intent(obj)

    def retrieve_payment_intent(self, payment_intent_id: str) -> PaymentIntent:
        obj = self._call("payment_intent.retrieve", self.client.payment_intents.retrieve, payment_intent_id)
        return self._intent(obj)

    def construct_event(self, payload: bytes, signature: str) -> dict:
        try:
            stripe.Webhook.construct_event(payload, signature, self.webhook_secret)
        except stripe.SignatureVerificationError as e:
            raise InvalidSignature(str(e)) from e
        except ValueError as e:
            raise InvalidSignature("Invalid payload") from e
        # signature vérifiée: on travaille sur le JSON brut (indépendant des objets SDK)
        return json.loads(payload)


def build_gateway() -> PaymentGateway:
    """Nouvelle instance de la passerelle configurée (PAYMENT_GATEWAY_CLASS)."""
    return import_string(settings.PAYMENT_GATEWAY_CLASS).from_settings()


def configured_gateway() -> PaymentGateway:
    """Passerelle construite au démarrage par BillingConfig.ready()."""
    return apps.get_app_config("billing").gateway
