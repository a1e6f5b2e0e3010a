from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, time, timedelta
from typing import Optional

from .strategies.base import AttendanceStrategy
from .strategies.late_strategy import LateStrategy
from .strategies.present_strategy import PresentStrategy


@dataclass
class AttendanceStrategyFactory:
    """Factory Pattern: choose appropriate strategy based on rules."""

    def for_checkin(self, *, now: datetime, shift_start: Optional[time], grace_minutes: int) -> AttendanceStrategy:
        if shift_start is None:
            return PresentStrategy()

        grace_end = datetime.combine(now.date(), shift_start, tzinfo=now.tzinfo) + timedelta(minutes=grace_minutes)
        if now > grace_end:
            return LateStrategy()
        return PresentStrategy()
