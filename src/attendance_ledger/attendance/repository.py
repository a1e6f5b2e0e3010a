from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import AttendanceStatus
from .model import AttendanceRecord


class AttendanceRepository(Protocol):
    def find_open_for_user(self, user_id: int) -> Optional[AttendanceRecord]:
        """The user's open record; more than one is a ConsistencyError."""

        raise NotImplementedError

    def create_open(
        self,
        *,
        user_id: int,
        location_id: int,
        check_in_time: datetime,
        latitude: float,
        longitude: float,
        status: AttendanceStatus,
        notes: Optional[str] = None,
    ) -> AttendanceRecord:
        """Insert an open record atomically.

        Raises AlreadyCheckedInError if another open record won the race.
        """

        raise NotImplementedError

    def close(
        self,
        *,
        attendance_id: int,
        check_out_time: datetime,
        latitude: float,
        longitude: float,
    ) -> Optional[AttendanceRecord]:
        """Close an open record; ``None`` when it was already closed."""

        raise NotImplementedError

    def list_for_user(self, user_id: int, limit: int) -> Sequence[AttendanceRecord]:
        raise NotImplementedError
