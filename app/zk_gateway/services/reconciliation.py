from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta, timezone as dt_timezone

from django.db import DatabaseError, IntegrityError, transaction
from django.db.models import Q

from attendance.models import AttendanceRecord
from devices.models import Device
from zk_gateway.exceptions import RecordWriteError
from zk_gateway.punches import DailySession

logger = logging.getLogger(__name__)

CREATED = "created"
UPDATED = "updated"
UNCHANGED = "unchanged"
SKIPPED = "skipped"


def utc_day_range(day: date) -> tuple[datetime, datetime]:
    start = datetime.combine(day, time.min, tzinfo=dt_timezone.utc)
    return start, start + timedelta(days=1)


def repair_mismatched_dates(tenant_id: int, member_id: int, target_date: date) -> int:
    """Delete records that belong to ``target_date`` but were stored under another day.

    A record belongs to the UTC day of its check-in, or of its check-out
    when it has no check-in.
    """
    start, end = utc_day_range(target_date)
    stale = (
        AttendanceRecord.objects.filter(tenant_id=tenant_id, member_id=member_id)
        .exclude(date=target_date)
        .filter(
            Q(check_in_time__gte=start, check_in_time__lt=end)
            | Q(check_in_time__isnull=True, check_out_time__gte=start, check_out_time__lt=end)
        )
    )
    deleted, _ = stale.delete()
    if deleted:
        logger.info(
            "Removed attendance records stored under the wrong date",
            extra={"tenant_id": tenant_id, "member_id": member_id, "date": target_date.isoformat(), "deleted": deleted},
        )
    return deleted


def _widen(record: AttendanceRecord, session: DailySession) -> list[str]:
    changed = []
    if session.check_in is not None and (record.check_in_time is None or session.check_in < record.check_in_time):
        record.check_in_time = session.check_in
        changed.append("check_in_time")
    if session.check_out is not None and (record.check_out_time is None or session.check_out > record.check_out_time):
        record.check_out_time = session.check_out
        changed.append("check_out_time")
    return changed


def upsert_record(device: Device, session: DailySession) -> str:
    lookup = {"tenant_id": device.tenant_id, "member_id": session.member_id, "date": session.date}
    record = AttendanceRecord.objects.filter(**lookup).first()

    if record is None:
        try:
            with transaction.atomic():
                AttendanceRecord.objects.create(
                    **lookup,
                    status=AttendanceRecord.STATUS_PRESENT,
                    check_in_time=session.check_in,
                    check_out_time=session.check_out,
                    device_user_id=session.device_user_id,
                    device_serial_number=device.serial_number,
                )
            return CREATED
        except IntegrityError:
            # Another sync created the row between our lookup and insert.
            record = AttendanceRecord.objects.filter(**lookup).first()
            if record is None:
                raise

    changed = _widen(record, session)
    if not changed:
        return UNCHANGED

    record.status = AttendanceRecord.STATUS_PRESENT
    record.device_user_id = session.device_user_id
    record.device_serial_number = device.serial_number or record.device_serial_number
    record.save(
        update_fields=changed + ["status", "device_user_id", "device_serial_number", "updated_at"]
    )
    return UPDATED


def write_session(device: Device, session: DailySession) -> tuple[str, int]:
    """Repair stale rows for the session's day, then upsert it.

    Returns the outcome and the number of stale rows deleted.
    """
    if not session.has_bounds or session.date is None:
        return SKIPPED, 0

    try:
        deleted = repair_mismatched_dates(device.tenant_id, session.member_id, session.date)
        outcome = upsert_record(device, session)
    except DatabaseError as exc:
        raise RecordWriteError(
            f"Could not write attendance for member {session.member_id} on {session.date}: {exc}"
        ) from exc
    return outcome, deleted


def wipe_tenant_records(tenant_id: int) -> int:
    deleted, _ = AttendanceRecord.objects.filter(tenant_id=tenant_id).delete()
    logger.info("Full resync wiped attendance records", extra={"tenant_id": tenant_id, "deleted": deleted})
    return deleted
