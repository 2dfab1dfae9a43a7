from __future__ import annotations

import logging

from django.http import HttpRequest
from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view
from rest_framework.response import Response

from devices.models import Device, DeviceUserMapping
from members.models import Member
from tenants.scoping import resolve_request_tenant
from zk_gateway.client import ZKDeviceClient
from zk_gateway.exceptions import (
    DeviceConnectionError,
    DeviceTimeoutError,
    UnexpectedDeviceResponseFormat,
    ZKGatewayError,
)
from zk_gateway.serializers import DeviceTimeSerializer, SyncAttendanceQuerySerializer
from zk_gateway.services.attendance_sync import sync_device_attendance
from zk_gateway.services.normalizer import device_timezone
from zk_gateway.services.user_sync import sync_device_users

logger = logging.getLogger(__name__)


TRANSPORT_ERROR_STATUS = {
    DeviceConnectionError: status.HTTP_502_BAD_GATEWAY,
    DeviceTimeoutError: status.HTTP_504_GATEWAY_TIMEOUT,
    UnexpectedDeviceResponseFormat: status.HTTP_502_BAD_GATEWAY,
}


def _transport_error_response(device: Device, exc: ZKGatewayError) -> Response:
    logger.warning(
        "Punch clock request failed",
        extra={"device_id": device.pk, "error_type": type(exc).__name__, "error": str(exc)},
    )
    http_status = TRANSPORT_ERROR_STATUS.get(type(exc), status.HTTP_502_BAD_GATEWAY)
    return Response({"detail": str(exc), "error": type(exc).__name__}, status=http_status)


def _tenant_device(request: HttpRequest, device_id: int) -> Device | None:
    tenant = resolve_request_tenant(request)
    return Device.objects.select_related("tenant").filter(pk=device_id, tenant=tenant).first()


def _device_not_found(device_id: int) -> Response:
    return Response(
        {"detail": f"Device configuration with id {device_id} not found"},
        status=status.HTTP_404_NOT_FOUND,
    )


@api_view(["GET", "POST"])
def sync_attendance(request: HttpRequest, device_id: int) -> Response:
    device = _tenant_device(request, device_id)
    if device is None:
        return _device_not_found(device_id)

    params = request.query_params.dict()
    data = request.data.dict() if hasattr(request.data, "dict") else request.data
    if isinstance(data, dict):
        params.update(data)
    serializer = SyncAttendanceQuerySerializer(data=params)
    serializer.is_valid(raise_exception=True)

    try:
        result = sync_device_attendance(
            device,
            start_date=serializer.validated_data.get("startDate"),
            end_date=serializer.validated_data.get("endDate"),
            full_sync=serializer.validated_data["fullSync"],
        )
    except (DeviceConnectionError, DeviceTimeoutError, UnexpectedDeviceResponseFormat) as exc:
        return _transport_error_response(device, exc)

    return Response(result)


@api_view(["POST"])
def test_device_connection(request: HttpRequest, device_id: int) -> Response:
    device = _tenant_device(request, device_id)
    if device is None:
        return _device_not_found(device_id)

    connected = ZKDeviceClient.for_device(device).test_connection()
    return Response(
        {
            "connected": connected,
            "message": (
                "Device connection successful"
                if connected
                else "Failed to connect to device. Please check IP address, port, and network connectivity."
            ),
        }
    )


@api_view(["POST"])
def sync_users(request: HttpRequest, device_id: int) -> Response:
    device = _tenant_device(request, device_id)
    if device is None:
        return _device_not_found(device_id)

    try:
        result = sync_device_users(device)
    except (DeviceConnectionError, DeviceTimeoutError, UnexpectedDeviceResponseFormat) as exc:
        return _transport_error_response(device, exc)

    result["message"] = (
        f"Found {len(result['users'])} users on device. Mapped {result['mapped']} users to members. "
        f"{result['unmappedCount']} users remain unmapped."
    )
    return Response(result)


@api_view(["POST"])
def clear_device_logs(request: HttpRequest, device_id: int) -> Response:
    device = _tenant_device(request, device_id)
    if device is None:
        return _device_not_found(device_id)

    try:
        with ZKDeviceClient.for_device(device) as client:
            cleared = client.clear_logs()
    except DeviceConnectionError as exc:
        return _transport_error_response(device, exc)

    if not cleared:
        return Response({"cleared": False, "detail": "Device refused to clear attendance logs"}, status=status.HTTP_502_BAD_GATEWAY)

    logger.info("Cleared device attendance logs", extra={"device_id": device.pk})
    return Response({"cleared": True})


@api_view(["GET", "PUT"])
def device_time(request: HttpRequest, device_id: int) -> Response:
    device = _tenant_device(request, device_id)
    if device is None:
        return _device_not_found(device_id)

    value = None
    if request.method == "PUT":
        serializer = DeviceTimeSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        value = serializer.validated_data.get("time") or timezone.now()
        # The clock keeps naive local time.
        value = timezone.localtime(value, device_timezone()).replace(tzinfo=None)

    try:
        with ZKDeviceClient.for_device(device) as client:
            if value is not None and not client.set_time(value):
                return Response({"detail": "Device refused the new time"}, status=status.HTTP_502_BAD_GATEWAY)
            current = client.get_time()
    except DeviceConnectionError as exc:
        return _transport_error_response(device, exc)

    return Response({"time": current.isoformat() if current else None})


@api_view(["GET"])
def unmapped_members(request: HttpRequest, device_id: int) -> Response:
    device = _tenant_device(request, device_id)
    if device is None:
        return _device_not_found(device_id)

    mapped_ids = DeviceUserMapping.objects.filter(device=device, is_active=True).values_list("member_id", flat=True)
    members = Member.objects.filter(tenant=device.tenant).order_by("name", "id")
    unmapped = members.exclude(id__in=mapped_ids)

    return Response(
        {
            "unmappedMembers": [
                {"id": member.id, "name": member.name, "email": member.email, "phone": member.phone}
                for member in unmapped
            ],
            "total": unmapped.count(),
            "totalMembers": members.count(),
            "mappedMembers": len(set(mapped_ids)),
        }
    )
