from django.conf import settings
from django.db import models

from members.models import Member
from tenants.models import Tenant


def default_device_port():
    return getattr(settings, "ZK_DEFAULT_PORT", 4370)


class Device(models.Model):
    tenant = models.ForeignKey(Tenant, on_delete=models.CASCADE, related_name="devices")
    name = models.CharField(max_length=255, blank=True, default="")
    ip_address = models.GenericIPAddressField()
    port = models.PositiveIntegerField(default=default_device_port)
    serial_number = models.CharField(max_length=64, blank=True, default="")
    password = models.PositiveIntegerField(default=0)
    sync_interval = models.PositiveIntegerField(default=300)
    last_sync_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["tenant", "ip_address", "port"], name="uq_device_tenant_address"),
        ]
        indexes = [models.Index(fields=["tenant", "serial_number"], name="idx_device_tenant_sn")]

    def __str__(self):
        return self.name or f"{self.ip_address}:{self.port}"


class DeviceUserMapping(models.Model):
    device = models.ForeignKey(Device, on_delete=models.CASCADE, related_name="user_mappings")
    member = models.ForeignKey(Member, on_delete=models.CASCADE, related_name="device_mappings")
    device_user_id = models.CharField(max_length=64)
    device_user_name = models.CharField(max_length=255, blank=True, default="")
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["device", "device_user_id"], name="uq_device_user_mapping"),
        ]
        indexes = [models.Index(fields=["device", "is_active"], name="idx_mapping_device_active")]

    def __str__(self):
        return f"{self.device_user_id} -> {self.member_id}"
