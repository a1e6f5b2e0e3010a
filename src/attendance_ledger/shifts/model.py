from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, time
from typing import FrozenSet, Optional


@dataclass(frozen=True)
class WorkShift:
    """Recurring weekly template: start/end wall-clock times on given weekdays."""

    shift_id: int
    name: str
    start_time: time
    end_time: time
    days: FrozenSet[str] = field(default_factory=frozenset)
    employee_ids: FrozenSet[int] = field(default_factory=frozenset)

    def runs_on(self, weekday: str) -> bool:
        return weekday in self.days


@dataclass(frozen=True)
class RosterAssignment:
    """Dated override of a user's shift; ``end_date=None`` means open-ended."""

    roster_id: int
    user_id: int
    shift_id: int
    start_date: date
    end_date: Optional[date] = None
    notes: Optional[str] = None

    def covers(self, on_date: date) -> bool:
        return self.start_date <= on_date and (self.end_date is None or self.end_date >= on_date)
