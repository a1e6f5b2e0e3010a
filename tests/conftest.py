from __future__ import annotations

from datetime import datetime, time

import pytest

from attendance_ledger.attendance.service import AttendanceService
from attendance_ledger.leave.ledger import LeaveBalanceLedger
from attendance_ledger.leave.model import LeaveType
from attendance_ledger.leave.service import LeaveRequestService
from attendance_ledger.locations.model import Location
from attendance_ledger.notifications.dispatcher import NotificationPublisher
from attendance_ledger.shifts.model import WorkShift
from attendance_ledger.shifts.resolver import ShiftResolver

from fakes import (
    EMPLOYEE_ID,
    WEEKDAYS,
    FixedClock,
    InMemoryAttendance,
    InMemoryLeaveStore,
    InMemoryLocations,
    InMemoryRosters,
    InMemoryShifts,
    RecordingDispatcher,
)


@pytest.fixture
def fixed_now() -> datetime:
    # Monday
    return datetime(2026, 3, 2, 9, 0, 0)


@pytest.fixture
def clock(fixed_now) -> FixedClock:
    return FixedClock(fixed_now)


@pytest.fixture
def dispatcher() -> RecordingDispatcher:
    return RecordingDispatcher()


@pytest.fixture
def publisher(dispatcher) -> NotificationPublisher:
    return NotificationPublisher(dispatcher)


@pytest.fixture
def office() -> Location:
    return Location(location_id=1, name="Head Office", latitude=0.0, longitude=0.0, radius=50)


@pytest.fixture
def locations(office) -> InMemoryLocations:
    return InMemoryLocations({office.location_id: office})


@pytest.fixture
def shifts() -> InMemoryShifts:
    morning = WorkShift(
        shift_id=1,
        name="Morning",
        start_time=time(9, 0),
        end_time=time(17, 0),
        days=WEEKDAYS,
        employee_ids=frozenset({EMPLOYEE_ID}),
    )
    return InMemoryShifts({1: morning})


@pytest.fixture
def rosters(shifts) -> InMemoryRosters:
    return InMemoryRosters(shifts)


@pytest.fixture
def attendance_repo() -> InMemoryAttendance:
    return InMemoryAttendance()


@pytest.fixture
def attendance_service(attendance_repo, locations, shifts, rosters, publisher, clock) -> AttendanceService:
    return AttendanceService(
        attendance_repo,
        locations,
        ShiftResolver(shifts, rosters),
        publisher,
        grace_minutes=15,
        clock=clock,
    )


@pytest.fixture
def leave_store() -> InMemoryLeaveStore:
    return InMemoryLeaveStore(
        leave_types=[
            LeaveType(leave_type_id=1, name="Annual Leave", color="#4caf50"),
            LeaveType(leave_type_id=2, name="Sick Leave", color="#f44336"),
        ]
    )


@pytest.fixture
def ledger(leave_store) -> LeaveBalanceLedger:
    return LeaveBalanceLedger(leave_store, annual_quota=60, default_quota=15)


@pytest.fixture
def leave_service(leave_store, ledger, publisher, clock) -> LeaveRequestService:
    return LeaveRequestService(
        leave_store,
        ledger,
        publisher,
        min_reason_length=50,
        clock=clock,
        color_factory=lambda: "#123456",
    )
