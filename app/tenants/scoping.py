from __future__ import annotations

from rest_framework import status
from rest_framework.exceptions import APIException, PermissionDenied

from tenants.models import Tenant


class UnknownTenant(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Unknown tenant"
    default_code = "unknown_tenant"


def tenant_code_from_request(request) -> str:
    code = request.headers.get("X-TENANT-CODE", "").strip()
    if not code:
        code = (request.GET.get("tenant") or "").strip()
    return code


def resolve_request_tenant(request) -> Tenant:
    tenant_code = tenant_code_from_request(request)
    if not tenant_code:
        raise PermissionDenied("Send the X-TENANT-CODE header (or ?tenant=<code>).")

    tenant = Tenant.objects.filter(code__iexact=tenant_code).first()
    if tenant is None:
        raise UnknownTenant()
    return tenant


class TenantScopedMixin:
    """Restrict a viewset to the tenant named by the request."""

    tenant_field = "tenant"

    def get_tenant(self) -> Tenant:
        if not hasattr(self, "_tenant"):
            self._tenant = resolve_request_tenant(self.request)
        return self._tenant

    def get_queryset(self):
        return super().get_queryset().filter(**{self.tenant_field: self.get_tenant()})

    def perform_create(self, serializer):
        serializer.save(tenant=self.get_tenant())
