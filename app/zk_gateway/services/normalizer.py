from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from datetime import datetime, timezone as dt_timezone, tzinfo
from zoneinfo import ZoneInfo

from django.conf import settings
from django.utils import timezone
from django.utils.dateparse import parse_datetime

from zk_gateway.exceptions import NoTimestamp, NoUserId, UnmappedDeviceUser
from zk_gateway.punches import CHECK_IN, CHECK_OUT, UNKNOWN, RawPunch

USER_ID_FIELDS = ("deviceUserId", "id", "uid", "userId", "userSn")
KIND_FIELDS = ("type", "state")

logger = logging.getLogger(__name__)


@dataclass
class NormalizationStats:
    processed: int = 0
    no_timestamp: int = 0
    date_filtered: int = 0
    no_user_id: int = 0
    unmapped: int = 0

    @property
    def skipped(self) -> int:
        return self.no_timestamp + self.date_filtered + self.no_user_id + self.unmapped

    def as_dict(self) -> dict:
        return asdict(self)


def device_timezone() -> tzinfo:
    return ZoneInfo(getattr(settings, "ZK_DEVICE_TIMEZONE", "UTC") or "UTC")


def _to_int(value):
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        return int(value.strip())
    return None


def _as_aware(dt: datetime, tz: tzinfo) -> datetime:
    if timezone.is_naive(dt):
        return timezone.make_aware(dt, tz)
    return dt


def _parse_record_time(value, tz: tzinfo) -> datetime | None:
    if isinstance(value, datetime):
        return _as_aware(value, tz)
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        parsed = parse_datetime(value.strip())
    except ValueError:
        return None
    return _as_aware(parsed, tz) if parsed else None


def _parse_epoch(value) -> datetime | None:
    if isinstance(value, bool) or value is None:
        return None
    try:
        seconds = float(value)
    except (TypeError, ValueError):
        return None
    try:
        return datetime.fromtimestamp(seconds, tz=dt_timezone.utc)
    except (OverflowError, OSError, ValueError):
        return None


def resolve_timestamp(entry: dict, tz: tzinfo | None = None) -> datetime:
    tz = tz or device_timezone()
    timestamp = _parse_record_time(entry.get("recordTime"), tz) or _parse_epoch(entry.get("timestamp"))
    if timestamp is None:
        raise NoTimestamp("Log entry has no usable recordTime or timestamp")
    return timestamp


def resolve_device_user_id(entry: dict) -> str:
    for field_name in USER_ID_FIELDS:
        value = entry.get(field_name)
        if value is None:
            continue
        text = str(value).strip()
        if text:
            return text
    raise NoUserId("Log entry has no device user id")


def resolve_kind(entry: dict) -> str:
    for field_name in KIND_FIELDS:
        if entry.get(field_name) is None:
            continue
        return CHECK_IN if _to_int(entry[field_name]) == 0 else CHECK_OUT
    return UNKNOWN


def build_punch(entry: dict, timestamp: datetime, member_by_device_user: dict[str, int]) -> RawPunch:
    device_user_id = resolve_device_user_id(entry)
    member_id = member_by_device_user.get(device_user_id)
    if member_id is None:
        raise UnmappedDeviceUser(device_user_id)
    return RawPunch(
        device_user_id=device_user_id,
        member_id=member_id,
        timestamp=timestamp,
        kind=resolve_kind(entry),
    )


def _outside_window(timestamp: datetime, since, start, end) -> bool:
    if since is not None and timestamp <= since:
        return True
    if start is not None and timestamp < start:
        return True
    if end is not None and timestamp > end:
        return True
    return False


def normalize_entries(
    entries: list[dict],
    member_by_device_user: dict[str, int],
    *,
    since: datetime | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
    tz: tzinfo | None = None,
) -> tuple[list[RawPunch], NormalizationStats]:
    """Turn raw device entries into mapped punches inside the sync window.

    ``since`` is exclusive (incremental syncs resume strictly after the last
    run); ``start`` and ``end`` are inclusive bounds.
    """
    tz = tz or device_timezone()
    stats = NormalizationStats()
    punches: list[RawPunch] = []

    for entry in entries:
        stats.processed += 1
        try:
            if not isinstance(entry, dict):
                raise NoTimestamp("Log entry is not a mapping")
            timestamp = resolve_timestamp(entry, tz)
            if _outside_window(timestamp, since, start, end):
                stats.date_filtered += 1
                continue
            punches.append(build_punch(entry, timestamp, member_by_device_user))
        except NoTimestamp:
            stats.no_timestamp += 1
        except NoUserId:
            stats.no_user_id += 1
        except UnmappedDeviceUser as exc:
            stats.unmapped += 1
            logger.debug("Skipping unmapped device user", extra={"device_user_id": exc.device_user_id})

    logger.info("Normalized device logs", extra={"punches": len(punches), **stats.as_dict()})
    return punches, stats
