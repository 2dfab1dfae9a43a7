from __future__ import annotations

from typing import Any

from zk_gateway.exceptions import UnexpectedDeviceResponseFormat

ENVELOPE_KEYS = ("data", "users")


def extract_records(payload: Any, key: str | None = None) -> list:
    """Unwrap the envelopes device libraries answer with into a plain list.

    Firmware and library versions disagree on the shape: a bare array,
    ``{"data": [...]}`` or ``{"users": [...]}``. ``key`` adds one more
    envelope name to try first.
    """
    if isinstance(payload, (list, tuple)):
        return list(payload)

    if isinstance(payload, dict):
        candidates = (key,) + ENVELOPE_KEYS if key else ENVELOPE_KEYS
        for candidate in candidates:
            value = payload.get(candidate)
            if isinstance(value, (list, tuple)):
                return list(value)
        raise UnexpectedDeviceResponseFormat("dict", list(payload.keys()))

    raise UnexpectedDeviceResponseFormat(type(payload).__name__)


def attendance_to_entry(record: Any) -> dict:
    if isinstance(record, dict):
        return record

    timestamp = getattr(record, "timestamp", None)
    return {
        "deviceUserId": getattr(record, "user_id", None),
        "uid": getattr(record, "uid", None),
        "recordTime": timestamp.isoformat() if timestamp is not None else None,
        "type": getattr(record, "punch", None),
        "status": getattr(record, "status", None),
    }


def user_to_entry(user: Any) -> dict:
    if isinstance(user, dict):
        return user

    return {
        "uid": getattr(user, "uid", None),
        "userId": getattr(user, "user_id", "") or "",
        "name": getattr(user, "name", "") or "",
        "privilege": getattr(user, "privilege", None),
        "groupId": getattr(user, "group_id", "") or "",
        "card": getattr(user, "card", None),
    }


def device_user_key(entry: dict) -> str:
    return str(entry.get("userId") or entry.get("uid") or "").strip()
