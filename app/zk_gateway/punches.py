from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime

CHECK_IN = "CHECK_IN"
CHECK_OUT = "CHECK_OUT"
UNKNOWN = "UNKNOWN"


@dataclass(frozen=True)
class RawPunch:
    device_user_id: str
    member_id: int
    timestamp: datetime
    kind: str = UNKNOWN


@dataclass
class DailySession:
    member_id: int
    device_user_id: str
    date: date
    check_in: datetime | None
    check_out: datetime | None
    punches: list[RawPunch] = field(default_factory=list)

    @property
    def has_bounds(self) -> bool:
        return self.check_in is not None or self.check_out is not None
