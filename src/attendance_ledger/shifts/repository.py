from __future__ import annotations

from datetime import date
from typing import Optional, Protocol

from .model import RosterAssignment, WorkShift


class ShiftRepository(Protocol):
    def get_by_id(self, shift_id: int) -> Optional[WorkShift]:
        raise NotImplementedError

    def find_assigned_for_user(self, *, user_id: int, weekday: str) -> Optional[WorkShift]:
        """Shift the user is directly assigned to that runs on ``weekday``."""

        raise NotImplementedError


class RosterRepository(Protocol):
    def find_active_for_user(self, *, user_id: int, on_date: date, weekday: str) -> Optional[RosterAssignment]:
        """Roster covering ``on_date`` whose linked shift runs on ``weekday``."""

        raise NotImplementedError
