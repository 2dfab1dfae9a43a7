from __future__ import annotations

import logging
import threading
from datetime import date, datetime, time, timezone as dt_timezone

from django.utils import timezone

from devices.models import Device, DeviceUserMapping
from zk_gateway.client import ZKDeviceClient
from zk_gateway.exceptions import RecordWriteError
from zk_gateway.punches import CHECK_IN, CHECK_OUT, RawPunch
from zk_gateway.services.aggregator import aggregate_sessions
from zk_gateway.services.auto_checkout import close_incomplete_sessions
from zk_gateway.services.normalizer import normalize_entries
from zk_gateway.services.reconciliation import CREATED, UPDATED, wipe_tenant_records, write_session

logger = logging.getLogger(__name__)

_device_locks: dict[int, threading.Lock] = {}
_device_locks_guard = threading.Lock()


def device_lock(device_id: int) -> threading.Lock:
    with _device_locks_guard:
        return _device_locks.setdefault(device_id, threading.Lock())


def _day_start(value: date | None) -> datetime | None:
    if value is None:
        return None
    return datetime.combine(value, time.min, tzinfo=dt_timezone.utc)


def _day_end(value: date | None) -> datetime | None:
    if value is None:
        return None
    return datetime.combine(value, time.max, tzinfo=dt_timezone.utc)


def _isoformat(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _active_mappings(device: Device) -> tuple[dict[str, int], dict[int, dict]]:
    member_by_device_user: dict[str, int] = {}
    members: dict[int, dict] = {}
    mappings = DeviceUserMapping.objects.filter(device=device, is_active=True).select_related("member")
    for mapping in mappings:
        member_by_device_user[mapping.device_user_id] = mapping.member_id
        members[mapping.member_id] = {
            "memberId": mapping.member_id,
            "memberName": mapping.member.name,
            "memberEmail": mapping.member.email,
            "memberPhone": mapping.member.phone,
        }
    return member_by_device_user, members


def _format_log(punch: RawPunch, members: dict[int, dict]) -> dict:
    moment = punch.timestamp.astimezone(dt_timezone.utc)
    return {
        "deviceUserId": punch.device_user_id,
        "eventType": punch.kind,
        "timestamp": moment.isoformat(),
        "date": moment.date().isoformat(),
        "time": moment.strftime("%H:%M:%S"),
        "member": members.get(punch.member_id),
    }


def sync_device_attendance(
    device: Device,
    *,
    start_date: date | None = None,
    end_date: date | None = None,
    full_sync: bool = False,
    retries: int | None = None,
) -> dict:
    """Pull punches from the clock and reconcile them into attendance records.

    Runs for the same device are serialized. Transport errors propagate;
    per-punch and per-record problems only show up in the counters.
    """
    with device_lock(device.pk):
        device.refresh_from_db(fields=["last_sync_at", "serial_number"])
        return _run_sync(device, start_date, end_date, full_sync, retries)


def _run_sync(device: Device, start_date, end_date, full_sync: bool, retries: int | None) -> dict:
    previous_sync_at = device.last_sync_at
    member_by_device_user, members = _active_mappings(device)
    since = None if full_sync else previous_sync_at
    start = _day_start(start_date)
    end = _day_end(end_date)

    log_extra = {"device_id": device.pk, "tenant_id": device.tenant_id, "full_sync": full_sync}
    logger.info("Starting attendance sync", extra={**log_extra, "since": _isoformat(since)})

    with ZKDeviceClient.for_device(device) as client:
        entries = client.fetch_logs(retries=retries)

        deleted = wipe_tenant_records(device.tenant_id) if full_sync else 0

        punches, stats = normalize_entries(entries, member_by_device_user, since=since, start=start, end=end)
        sessions, errors = aggregate_sessions(punches)

        created = updated = 0
        logs: list[dict] = []
        for session in sessions:
            try:
                outcome, repaired = write_session(device, session)
            except RecordWriteError:
                logger.exception("Failed to write attendance session", extra={**log_extra, "member_id": session.member_id})
                errors += 1
                continue

            deleted += repaired
            if outcome == CREATED:
                created += 1
            elif outcome == UPDATED:
                updated += 1
            else:
                continue
            logs.extend(_format_log(punch, members) for punch in session.punches)

        last_sync_at = timezone.now()
        device.last_sync_at = last_sync_at
        device.save(update_fields=["last_sync_at", "updated_at"])

    auto_closed = close_incomplete_sessions(device.tenant_id)

    logs.sort(key=lambda item: item["timestamp"], reverse=True)
    check_ins = sum(1 for item in logs if item["eventType"] == CHECK_IN)
    check_outs = sum(1 for item in logs if item["eventType"] == CHECK_OUT)
    synced = created + updated
    range_start = max(filter(None, [since, start]), default=None)

    logger.info(
        "Attendance sync finished",
        extra={**log_extra, "created_count": created, "updated_count": updated, "errors": errors, "deleted": deleted},
    )

    return {
        "total": len(logs),
        "checkIns": check_ins,
        "checkOuts": check_outs,
        "synced": synced,
        "created": created,
        "updated": updated,
        "errors": errors,
        "deleted": deleted,
        "logs": logs,
        "summary": {
            "totalRecords": len(logs),
            "checkInsCount": check_ins,
            "checkOutsCount": check_outs,
            "syncedCount": synced,
            "createdCount": created,
            "updatedCount": updated,
            "errorCount": errors,
            "deletedCount": deleted,
            "autoClosedCount": auto_closed,
            "lastSyncAt": last_sync_at.isoformat(),
            "previousSyncAt": _isoformat(previous_sync_at),
            "dateRange": {
                "start": range_start.astimezone(dt_timezone.utc).date().isoformat() if range_start else None,
                "end": end_date.isoformat() if end_date else None,
            },
            "isFullSync": full_sync,
            "skipped": stats.as_dict(),
        },
    }
