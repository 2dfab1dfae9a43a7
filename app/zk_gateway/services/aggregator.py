"""Pair normalized punches into one attendance session per member per day.

Punches are grouped by member and by the calendar day the device saw them
on. Inside a group, punches whose firmware did not say whether they were
an entry or an exit are classified by a fold over the chronologically
sorted group: every decision can depend on the punches classified before
it. The resulting session is dated by the UTC day of its check-in, which
can differ from the grouping day for punches near midnight.
"""
from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import replace
from datetime import date, datetime, timedelta, timezone as dt_timezone, tzinfo

from django.conf import settings

from zk_gateway.punches import CHECK_IN, CHECK_OUT, UNKNOWN, DailySession, RawPunch
from zk_gateway.services.normalizer import device_timezone

logger = logging.getLogger(__name__)


def fallback_duration() -> timedelta:
    return timedelta(minutes=getattr(settings, "ATTENDANCE_FALLBACK_SESSION_MINUTES", 60))


def group_punches(punches: list[RawPunch], tz: tzinfo | None = None) -> dict[tuple[int, date], list[RawPunch]]:
    tz = tz or device_timezone()
    groups: dict[tuple[int, date], list[RawPunch]] = defaultdict(list)
    for punch in punches:
        groups[(punch.member_id, punch.timestamp.astimezone(tz).date())].append(punch)
    return dict(groups)


def infer_kind(timestamp: datetime, check_ins: list[datetime], check_outs: list[datetime]) -> str:
    if check_ins and timestamp < min(check_ins):
        return CHECK_IN
    if check_outs and timestamp > max(check_outs):
        return CHECK_OUT
    if check_ins and check_outs:
        to_check_in = abs(timestamp - min(check_ins))
        to_check_out = abs(max(check_outs) - timestamp)
        return CHECK_IN if to_check_in <= to_check_out else CHECK_OUT
    if check_ins:
        return CHECK_OUT if timestamp > max(check_ins) else CHECK_IN
    if check_outs:
        return CHECK_IN if timestamp < min(check_outs) else CHECK_OUT
    return CHECK_IN


def classify_punches(punches: list[RawPunch]) -> list[RawPunch]:
    """Resolve UNKNOWN kinds; returns the group in chronological order."""
    ordered = sorted(punches, key=lambda punch: punch.timestamp)
    check_ins = [punch.timestamp for punch in ordered if punch.kind == CHECK_IN]
    check_outs = [punch.timestamp for punch in ordered if punch.kind == CHECK_OUT]
    unknown_positions = [index for index, punch in enumerate(ordered) if punch.kind == UNKNOWN]
    if not unknown_positions:
        return ordered

    resolved = list(ordered)
    pending = unknown_positions
    if not check_ins and not check_outs:
        # Nothing in the day carries a type: first punch in, last punch out.
        first = pending[0]
        resolved[first] = replace(ordered[first], kind=CHECK_IN)
        check_ins.append(ordered[first].timestamp)
        pending = pending[1:]
        if pending:
            last = pending[-1]
            resolved[last] = replace(ordered[last], kind=CHECK_OUT)
            check_outs.append(ordered[last].timestamp)
            pending = pending[:-1]

    for index in pending:
        punch = ordered[index]
        kind = infer_kind(punch.timestamp, check_ins, check_outs)
        (check_ins if kind == CHECK_IN else check_outs).append(punch.timestamp)
        resolved[index] = replace(punch, kind=kind)

    return resolved


def session_bounds(check_ins: list[datetime], check_outs: list[datetime]) -> tuple[datetime | None, datetime | None]:
    duration = fallback_duration()
    check_in = min(check_ins) if check_ins else None
    check_out = max(check_outs) if check_outs else None

    if check_in is not None and check_out is None:
        check_out = check_in + duration
    elif check_out is not None and check_in is None:
        check_in = check_out - duration

    if check_in is not None and check_out is not None and check_out <= check_in:
        check_out = check_in + duration
    return check_in, check_out


def build_session(member_id: int, punches: list[RawPunch]) -> DailySession | None:
    if not punches:
        return None

    classified = classify_punches(punches)
    check_in, check_out = session_bounds(
        [punch.timestamp for punch in classified if punch.kind == CHECK_IN],
        [punch.timestamp for punch in classified if punch.kind == CHECK_OUT],
    )
    anchor = check_in or check_out
    if anchor is None:
        return DailySession(member_id, classified[0].device_user_id, None, None, None, classified)

    return DailySession(
        member_id=member_id,
        device_user_id=classified[0].device_user_id,
        date=anchor.astimezone(dt_timezone.utc).date(),
        check_in=check_in,
        check_out=check_out,
        punches=classified,
    )


def aggregate_sessions(punches: list[RawPunch], tz: tzinfo | None = None) -> tuple[list[DailySession], int]:
    """Build daily sessions; the second item counts groups left without bounds."""
    sessions: list[DailySession] = []
    errors = 0

    for (member_id, punch_day), group in sorted(group_punches(punches, tz).items(), key=lambda item: item[0]):
        session = build_session(member_id, group)
        if session is None:
            continue
        if not session.has_bounds:
            errors += 1
            logger.warning(
                "Session without check-in or check-out",
                extra={"member_id": member_id, "punch_day": punch_day.isoformat()},
            )
            continue
        sessions.append(session)

    return sessions, errors
