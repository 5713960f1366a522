from rest_framework.permissions import BasePermission


class TenantScopedPermission(BasePermission):
    """
    Autorise l'accès si l'auth HMAC a placé request.tenant
    et que le tenant n'est pas suspendu.
    """
    message = "Active tenant context required"

    def has_permission(self, request, view):
        tenant = getattr(request, "tenant", None)
        return bool(tenant and tenant.is_active)
