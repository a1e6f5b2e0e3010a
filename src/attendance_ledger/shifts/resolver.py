from __future__ import annotations

import logging
from datetime import date, time
from typing import Optional

from ..common.datetime_utils import weekday_name
from .model import WorkShift
from .repository import RosterRepository, ShiftRepository

logger = logging.getLogger(__name__)


class ShiftResolver:
    """Find the shift that applies to a user on a calendar day.

    A roster covering the day wins over the user's standing shift assignment;
    without either the user has no schedule and is never marked late.
    """

    def __init__(self, shifts: ShiftRepository, rosters: RosterRepository):
        self._shifts = shifts
        self._rosters = rosters

    def resolve_shift(self, *, user_id: int, on_date: date) -> Optional[WorkShift]:
        weekday = weekday_name(on_date)

        roster = self._rosters.find_active_for_user(user_id=user_id, on_date=on_date, weekday=weekday)
        if roster:
            shift = self._shifts.get_by_id(roster.shift_id)
            if shift and shift.runs_on(weekday):
                return shift
            logger.warning("roster %s points at missing or off-day shift %s", roster.roster_id, roster.shift_id)

        return self._shifts.find_assigned_for_user(user_id=user_id, weekday=weekday)

    def resolve_start_time(self, *, user_id: int, on_date: date) -> Optional[time]:
        shift = self.resolve_shift(user_id=user_id, on_date=on_date)
        return shift.start_time if shift else None
