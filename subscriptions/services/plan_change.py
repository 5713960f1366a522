"""
Changement de plan en cours de période.

    REQUESTED -> APPLIED                        (proration nulle)
    REQUESTED -> AWAITING_PAYMENT -> APPLIED    (callback passerelle "succeeded")
                                  -> FAILED     (refus / échec de paiement)

Le paiement n'applique jamais le plan de lui-même: seule la confirmation
(callback ou vérification explicite) le fait. apply() est idempotent, le
callback étant livré au moins une fois.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from django.conf import settings
from django.db import transaction

from billing.services.gateway import GatewayError, GatewayTimeout, PaymentGateway, PaymentIntent
from billing.services.proration import calculate_proration
from core.exceptions import BusinessRuleError, NotFound, PaymentError, PaymentPending
from tenants.models import Plan, Tenant
from webhooks.services.events import emit
from ..models import PlanChange, Subscription

logger = logging.getLogger("ledgerline.subscriptions")

PLAN_CHANGE_SOURCE = "ledgerline_plan_change"

EVENT_SUCCEEDED = "payment_intent.succeeded"
EVENT_FAILED = "payment_intent.payment_failed"


@dataclass
class PlanChangeOutcome:
    change: PlanChange
    subscription: Subscription
    requires_payment: bool
    client_secret: Optional[str] = None
    payment_intent_id: Optional[str] = None


class PlanChangeService:

    def __init__(self, gateway: PaymentGateway):
        self.gateway = gateway

    # -- demande -----------------------------------------------------------

    def _validate(self, tenant, new_plan_id):
        new_plan = Plan.objects.filter(pk=new_plan_id, active=True).first()
        if new_plan is None:
            raise NotFound("Invalid or inactive plan selected")

        sub = Subscription.objects.active_for(tenant)
        if sub is None:
            raise NotFound("No active subscription found")

        user_count = tenant.users.count()
        if user_count > new_plan.max_users:
            raise BusinessRuleError(
                f"Cannot switch to this plan. Current user count ({user_count}) exceeds "
                f"the plan limit ({new_plan.max_users}). Please remove users first.",
                code="PLAN_USER_LIMIT",
                details={"currentUsers": user_count, "planLimit": new_plan.max_users},
            )
        if sub.plan_id == new_plan.id:
            raise BusinessRuleError("Tenant is already on this plan", code="PLAN_UNCHANGED")
        return sub, new_plan

    def initiate(self, tenant, new_plan_id) -> PlanChangeOutcome:
        sub, new_plan = self._validate(tenant, new_plan_id)
        amount = calculate_proration(sub.plan.price, new_plan.price,
                                     sub.current_period_start, sub.current_period_end)
        change = PlanChange.objects.create(
            tenant=tenant, subscription=sub, from_plan=sub.plan, to_plan=new_plan,
            amount=amount, currency=settings.BILLING_CURRENCY,
        )
        logger.info("plan change #%s tenant=%s %s -> %s amount=%s",
                    change.id, tenant.id, sub.plan.slug, new_plan.slug, amount)

        if amount == 0:
            sub = self.apply(change)
            return PlanChangeOutcome(change=change, subscription=sub, requires_payment=False)

        # aucun débit possible avant l'intent: tout échec ici est définitif
        try:
            customer_id = self.gateway.get_or_create_customer(tenant)
        except GatewayError as e:
            change.mark(PlanChange.STATUS_FAILED, failure_reason=str(e))
            raise PaymentError(str(e), details={"planChangeId": change.id})
        if customer_id != tenant.stripe_customer_id:
            tenant.stripe_customer_id = customer_id
            Tenant.objects.filter(pk=tenant.pk).update(stripe_customer_id=customer_id)

        try:
            intent = self.gateway.create_payment_intent(
                customer_id=customer_id,
                amount=amount,
                currency=change.currency,
                description=f"Plan change {sub.plan.name} -> {new_plan.name}",
                metadata={
                    "source": PLAN_CHANGE_SOURCE,
                    "tenant_id": tenant.id,
                    "new_plan_id": new_plan.id,
                    "subscription_id": sub.id,
                    "plan_change_id": change.id,
                },
            )
        except GatewayTimeout as e:
            # issue inconnue: pas de retry (double débit), le callback tranchera
            change.mark(PlanChange.STATUS_AWAITING_PAYMENT, failure_reason=str(e))
            raise PaymentPending(details={"planChangeId": change.id})
        except GatewayError as e:
            change.mark(PlanChange.STATUS_FAILED, failure_reason=str(e))
            raise PaymentError(str(e), details={"planChangeId": change.id})

        change.mark(PlanChange.STATUS_AWAITING_PAYMENT, payment_intent_id=intent.id)
        return PlanChangeOutcome(change=change, subscription=sub, requires_payment=True,
                                 client_secret=intent.client_secret, payment_intent_id=intent.id)

    # -- confirmation ------------------------------------------------------

    def apply(self, change: PlanChange) -> Subscription:
        """Idempotent: une demande déjà appliquée ou un plan identique ne change rien."""
        with transaction.atomic():
            change = PlanChange.objects.select_for_update().get(pk=change.pk)
            sub = Subscription.objects.select_for_update().select_related("plan").get(pk=change.subscription_id)
            if change.status == PlanChange.STATUS_APPLIED:
                return sub

            from_plan_id = sub.plan_id
            switched = from_plan_id != change.to_plan_id
            if switched:
                sub.plan_id = change.to_plan_id
                sub.save(update_fields=["plan", "updated_at"])
            change.mark(PlanChange.STATUS_APPLIED, failure_reason="")

        sub = Subscription.objects.select_related("plan").get(pk=sub.pk)
        if switched:
            logger.info("plan change #%s applied tenant=%s plan=%s", change.id, change.tenant_id, sub.plan_id)
            emit(change.tenant, "subscription.plan_changed", {
                "subscriptionId": sub.id,
                "fromPlanId": from_plan_id,
                "toPlanId": sub.plan_id,
                "amount": change.amount,
                "currency": change.currency,
            })
        return sub

    def find_change(self, intent: PaymentIntent) -> Optional[PlanChange]:
        """
        Retrouve la demande d'un intent: par id d'intent, puis par plan_change_id,
        sinon reconstruite depuis subscription_id / new_plan_id.
        """
        change = PlanChange.objects.filter(payment_intent_id=intent.id).first()
        if change is not None:
            return change

        meta = intent.metadata or {}
        tenant_id = meta.get("tenant_id")
        if meta.get("plan_change_id"):
            change = PlanChange.objects.filter(pk=meta["plan_change_id"], tenant_id=tenant_id).first()
            if change is not None:
                if not change.payment_intent_id:
                    change.payment_intent_id = intent.id
                    change.save(update_fields=["payment_intent_id", "updated_at"])
                return change

        sub = (Subscription.objects.select_related("plan")
               .filter(pk=meta.get("subscription_id"), tenant_id=tenant_id).first())
        plan = Plan.objects.filter(pk=meta.get("new_plan_id")).first()
        if sub is None or plan is None:
            return None
        return PlanChange.objects.create(
            tenant_id=sub.tenant_id, subscription=sub, from_plan=sub.plan, to_plan=plan,
            amount=intent.amount, currency=intent.currency or settings.BILLING_CURRENCY,
            status=PlanChange.STATUS_AWAITING_PAYMENT, payment_intent_id=intent.id,
        )

    def verify_payment(self, tenant, payment_intent_id: str, plan_id) -> Subscription:
        try:
            intent = self.gateway.retrieve_payment_intent(payment_intent_id)
        except GatewayError as e:
            raise PaymentError(str(e))

        meta = intent.metadata or {}
        if meta.get("tenant_id") != str(tenant.id):
            raise NotFound("Payment not found")
        if meta.get("new_plan_id") != str(plan_id):
            raise BusinessRuleError("Payment does not match the requested plan", code="PAYMENT_MISMATCH")
        if not intent.succeeded:
            raise BusinessRuleError(
                f"Payment not completed (status: {intent.status})",
                code="PAYMENT_NOT_COMPLETED", details={"status": intent.status},
            )

        change = self.find_change(intent)
        if change is None:
            raise NotFound("No plan change matches this payment")
        return self.apply(change)

    def handle_gateway_event(self, event: dict) -> str:
        """
        Callback passerelle (livraison au moins une fois). Retourne l'issue traitée.
        """
        etype = event.get("type", "")
        obj = (event.get("data") or {}).get("object") or {}
        meta = obj.get("metadata") or {}
        if etype not in (EVENT_SUCCEEDED, EVENT_FAILED) or meta.get("source") != PLAN_CHANGE_SOURCE:
            logger.info("gateway event %s (%s) ignored", event.get("id"), etype)
            return "ignored"

        intent = PaymentIntent(
            id=obj.get("id", ""), status=obj.get("status", ""), amount=obj.get("amount") or 0,
            currency=obj.get("currency", ""), metadata={k: str(v) for k, v in meta.items()},
        )
        change = self.find_change(intent)
        if change is None:
            logger.warning("gateway event %s: no plan change for intent %s", event.get("id"), intent.id)
            return "unmatched"

        if etype == EVENT_SUCCEEDED:
            self.apply(change)
            return "applied"

        if change.is_final:
            # déjà tranchée: relivraison ou échec arrivé après la confirmation
            return "ignored"
        reason = (obj.get("last_payment_error") or {}).get("message") or "Payment failed"
        logger.warning("plan change #%s payment failed tenant=%s intent=%s: %s",
                       change.id, change.tenant_id, intent.id, reason)
        change.mark(PlanChange.STATUS_FAILED, failure_reason=reason)
        emit(change.tenant, "subscription.payment_failed", {
            "planChangeId": change.id,
            "paymentIntentId": intent.id,
            "toPlanId": change.to_plan_id,
            "amount": change.amount,
            "reason": reason,
        })
        return "failed"
