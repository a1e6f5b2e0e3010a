from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from ..common.datetime_utils import ranges_overlap
from ..core.enums import LeaveStatus


@dataclass(frozen=True)
class LeaveType:
    leave_type_id: int
    name: str
    description: Optional[str] = None
    color: Optional[str] = None

    @property
    def is_annual(self) -> bool:
        return "annual" in self.name.lower()


@dataclass(frozen=True)
class LeaveBalance:
    """Ledger row per (user, leave type, year).

    Invariant: all counters are non-negative and ``used_days + pending_days``
    never exceeds ``total_days``.
    """

    balance_id: int
    user_id: int
    leave_type_id: int
    year: int
    total_days: int
    used_days: int = 0
    pending_days: int = 0

    @property
    def available_days(self) -> int:
        return self.total_days - self.used_days - self.pending_days

    @property
    def is_consistent(self) -> bool:
        return (
            self.total_days >= 0
            and self.used_days >= 0
            and self.pending_days >= 0
            and self.used_days + self.pending_days <= self.total_days
        )


@dataclass(frozen=True)
class LeaveRequest:
    request_id: int
    user_id: int
    leave_type_id: int
    start_date: date
    end_date: date
    total_days: int
    reason: str
    status: LeaveStatus
    balance_year: int
    created_at: datetime
    reviewer_id: Optional[int] = None
    reviewed_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None

    def overlaps(self, start: date, end: date) -> bool:
        return ranges_overlap(self.start_date, self.end_date, start, end)
