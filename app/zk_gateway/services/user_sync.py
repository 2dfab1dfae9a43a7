from __future__ import annotations

import logging

from devices.models import Device, DeviceUserMapping
from members.models import Member
from zk_gateway.client import ZKDeviceClient
from zk_gateway.services.device_payload import device_user_key

logger = logging.getLogger(__name__)


def _name_key(value: str) -> str:
    return " ".join(str(value or "").split()).lower()


def sync_device_users(device: Device) -> dict:
    """Enumerate users enrolled on the clock and map them to members by name."""
    with ZKDeviceClient.for_device(device) as client:
        users = client.fetch_users()

    members_by_name: dict[str, Member] = {}
    for member in Member.objects.filter(tenant_id=device.tenant_id).order_by("id"):
        members_by_name.setdefault(_name_key(member.name), member)

    mapped = 0
    for user in users:
        key = device_user_key(user)
        name = _name_key(user.get("name", ""))
        member = members_by_name.get(name) if name else None
        if not key or member is None:
            continue

        DeviceUserMapping.objects.update_or_create(
            device=device,
            device_user_id=key,
            defaults={
                "member": member,
                "device_user_name": user.get("name", ""),
                "is_active": True,
            },
        )
        mapped += 1

    active_ids = set(
        DeviceUserMapping.objects.filter(device=device, is_active=True).values_list("device_user_id", flat=True)
    )
    unmapped = [
        {"uid": user.get("uid"), "userId": device_user_key(user), "name": user.get("name", "")}
        for user in users
        if device_user_key(user) not in active_ids
    ]

    logger.info(
        "Synced device users",
        extra={"device_id": device.pk, "users": len(users), "mapped": mapped, "unmapped": len(unmapped)},
    )
    return {
        "users": users,
        "mapped": mapped,
        "unmappedDeviceUsers": unmapped,
        "unmappedCount": len(unmapped),
    }
