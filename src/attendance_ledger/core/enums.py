from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """Caller role supplied by the identity provider."""

    ADMIN = "ADMIN"
    MANAGER = "MANAGER"
    EMPLOYEE = "EMPLOYEE"


class AttendanceStatus(str, Enum):
    """Check-in status stored on the attendance record."""

    PRESENT = "PRESENT"
    LATE = "LATE"


class LeaveStatus(str, Enum):
    """Lifecycle of a leave request."""

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"

    def can_transition_to(self, target: "LeaveStatus") -> bool:
        return target in _LEAVE_TRANSITIONS.get(self, frozenset())


_LEAVE_TRANSITIONS = {
    LeaveStatus.PENDING: frozenset({LeaveStatus.APPROVED, LeaveStatus.REJECTED, LeaveStatus.CANCELLED}),
}
