from __future__ import annotations

import logging
from datetime import date, timezone as dt_timezone

from django.utils import timezone

from attendance.models import AttendanceRecord
from zk_gateway.services.aggregator import fallback_duration

logger = logging.getLogger(__name__)


def utc_today() -> date:
    return timezone.now().astimezone(dt_timezone.utc).date()


def close_incomplete_sessions(tenant_id: int | None = None, today: date | None = None) -> int:
    """Close records from past days that have a check-in but no check-out."""
    today = today or utc_today()
    duration = fallback_duration()

    queryset = AttendanceRecord.objects.filter(
        check_in_time__isnull=False,
        check_out_time__isnull=True,
        date__lt=today,
    )
    if tenant_id is not None:
        queryset = queryset.filter(tenant_id=tenant_id)

    closed = 0
    for record in queryset.iterator():
        record.check_out_time = record.check_in_time + duration
        record.save(update_fields=["check_out_time", "updated_at"])
        closed += 1

    if closed:
        logger.info("Auto-closed incomplete attendance sessions", extra={"tenant_id": tenant_id, "closed": closed})
    return closed
