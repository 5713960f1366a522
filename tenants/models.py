from django.db import models
from django.utils import timezone


class Plan(models.Model):
    """
    Plan d'abonnement (Starter/Pro/Enterprise, etc.)
    - slug: identifiant stable
    - price: forfait mensuel (unités majeures, ex: 29.99)
    - max_users: plafond dur d'utilisateurs du tenant (contrôlé au changement de plan)
    - features: JSON libre affiché par la console
    Les quotas et prix unitaires par type d'event vivent dans limits.UsageLimit.
    """
    CYCLE_MONTHLY = "monthly"
    CYCLE_CHOICES = [(CYCLE_MONTHLY, "Monthly")]

    name = models.CharField(max_length=100)
    slug = models.SlugField(max_length=100, unique=True, db_index=True)
    description = models.TextField(blank=True, default="")
    price = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    billing_cycle = models.CharField(max_length=16, choices=CYCLE_CHOICES, default=CYCLE_MONTHLY)
    max_users = models.PositiveIntegerField(default=5)
    storage_limit_mb = models.PositiveIntegerField(default=1024)
    features = models.JSONField(default=list, blank=True)
    active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "plans"
        ordering = ["price", "id"]

    def __str__(self) -> str:
        return f"{self.slug} ({'active' if self.active else 'inactive'})"


class Tenant(models.Model):
    """
    Client (tenant) multi-tenant logique.
    - support_email: contact facturation / support du client
    - stripe_customer_id: handle client côté passerelle (créé à la demande)
    - status: ACTIVE|SUSPENDED
    - metadata: JSON libre (tags, groupe, référent, ...)
    """
    STATUS_ACTIVE = "active"
    STATUS_SUSPENDED = "suspended"
    STATUS_CHOICES = [
        (STATUS_ACTIVE, "Active"),
        (STATUS_SUSPENDED, "Suspended"),
    ]

    name = models.CharField(max_length=150, unique=True)
    support_email = models.EmailField(blank=True, default="")
    stripe_customer_id = models.CharField(max_length=64, blank=True, default="")
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_ACTIVE)
    metadata = models.JSONField(default=dict, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    last_usage_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = "tenants"
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return self.name

    @property
    def is_active(self) -> bool:
        return self.status == self.STATUS_ACTIVE

    def touch_usage(self):
        self.last_usage_at = timezone.now()
        Tenant.objects.filter(pk=self.pk).update(last_usage_at=self.last_usage_at)


class TenantUser(models.Model):
    """Utilisateur d'un tenant (compté pour Plan.max_users)."""
    ROLE_ADMIN = "admin"
    ROLE_MEMBER = "member"
    ROLE_CHOICES = [(ROLE_ADMIN, "Admin"), (ROLE_MEMBER, "Member")]

    tenant = models.ForeignKey(Tenant, on_delete=models.CASCADE, related_name="users")
    email = models.EmailField()
    name = models.CharField(max_length=150, blank=True, default="")
    role = models.CharField(max_length=16, choices=ROLE_CHOICES, default=ROLE_MEMBER)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "tenant_users"
        constraints = [
            models.UniqueConstraint(fields=["tenant", "email"], name="uniq_tenant_user_email"),
        ]

    def __str__(self) -> str:
        return f"{self.email} [{self.tenant_id}]"
