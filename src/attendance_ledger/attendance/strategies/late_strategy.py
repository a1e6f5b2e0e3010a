from __future__ import annotations

from datetime import datetime, time
from typing import Optional

from ...core.enums import AttendanceStatus
from .base import AttendanceStrategy, StatusDecision


class LateStrategy(AttendanceStrategy):
    """Late check-in."""

    def decide_checkin(self, *, now: datetime, shift_start: Optional[time], grace_minutes: int) -> StatusDecision:
        note = None
        if shift_start is not None:
            late_minutes = int((now - datetime.combine(now.date(), shift_start, tzinfo=now.tzinfo)).total_seconds() // 60)
            note = f"Late by {late_minutes} min"
        return StatusDecision(status=AttendanceStatus.LATE, note=note)
