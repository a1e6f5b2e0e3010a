from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from types import ModuleType
from typing import Callable, Optional

from .attendance.factory import AttendanceStrategyFactory
from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.repository import AttendanceRepository
from .attendance.service import AttendanceService
from .common.datetime_utils import now_local
from .core import constants
from .database.connection import DBConfig, DatabaseConnection
from .leave.ledger import LeaveBalanceLedger
from .leave.mysql_leave_repository import MySQLLeaveStore
from .leave.repository import LeaveStore
from .leave.service import LeaveRequestService
from .locations.mysql_location_repository import MySQLLocationRepository
from .locations.repository import LocationRepository
from .notifications.dispatcher import (
    LoggingNotificationDispatcher,
    MySQLNotificationDispatcher,
    NotificationDispatcher,
    NotificationPublisher,
)
from .shifts.mysql_shift_repository import MySQLRosterRepository, MySQLShiftRepository
from .shifts.repository import RosterRepository, ShiftRepository
from .shifts.resolver import ShiftResolver


@dataclass(frozen=True)
class Container:
    attendance_repo: AttendanceRepository
    locations_repo: LocationRepository
    shifts_repo: ShiftRepository
    rosters_repo: RosterRepository
    leave_store: LeaveStore

    publisher: NotificationPublisher
    attendance_service: AttendanceService
    leave_ledger: LeaveBalanceLedger
    leave_service: LeaveRequestService

    clock: Callable[[], datetime] = now_local
    conn: Optional[DatabaseConnection] = None


def wire_container(
    *,
    attendance_repo: AttendanceRepository,
    locations_repo: LocationRepository,
    shifts_repo: ShiftRepository,
    rosters_repo: RosterRepository,
    leave_store: LeaveStore,
    dispatcher: NotificationDispatcher,
    settings: Optional[ModuleType] = None,
    clock: Callable[[], datetime] = now_local,
    conn: Optional[DatabaseConnection] = None,
) -> Container:
    """Build services on top of any set of repositories."""

    def setting(name: str):
        return getattr(settings, name, getattr(constants, name))

    publisher = NotificationPublisher(dispatcher)
    resolver = ShiftResolver(shifts_repo, rosters_repo)

    attendance_service = AttendanceService(
        attendance_repo,
        locations_repo,
        resolver,
        publisher,
        strategy_factory=AttendanceStrategyFactory(),
        grace_minutes=int(getattr(settings, "LATE_GRACE_MINUTES", constants.DEFAULT_LATE_GRACE_MINUTES)),
        clock=clock,
    )
    leave_ledger = LeaveBalanceLedger(
        leave_store,
        annual_quota=int(setting("ANNUAL_LEAVE_QUOTA")),
        default_quota=int(setting("DEFAULT_LEAVE_QUOTA")),
    )
    leave_service = LeaveRequestService(
        leave_store,
        leave_ledger,
        publisher,
        min_reason_length=int(setting("MIN_LEAVE_REASON_LENGTH")),
        clock=clock,
    )

    return Container(
        attendance_repo=attendance_repo,
        locations_repo=locations_repo,
        shifts_repo=shifts_repo,
        rosters_repo=rosters_repo,
        leave_store=leave_store,
        publisher=publisher,
        attendance_service=attendance_service,
        leave_ledger=leave_ledger,
        leave_service=leave_service,
        clock=clock,
        conn=conn,
    )


def build_container(*, db_config: dict, settings: Optional[ModuleType] = None) -> Container:
    conn = DatabaseConnection.get_instance(DBConfig.from_dict(db_config))

    backend = str(getattr(settings, "NOTIFICATION_BACKEND", "mysql")).lower()
    dispatcher: NotificationDispatcher
    if backend == "log":
        dispatcher = LoggingNotificationDispatcher()
    else:
        dispatcher = MySQLNotificationDispatcher(conn)

    return wire_container(
        attendance_repo=MySQLAttendanceRepository(conn),
        locations_repo=MySQLLocationRepository(conn),
        shifts_repo=MySQLShiftRepository(conn),
        rosters_repo=MySQLRosterRepository(conn),
        leave_store=MySQLLeaveStore(
            conn,
            max_attempts=int(getattr(settings, "LEDGER_MAX_ATTEMPTS", constants.LEDGER_MAX_ATTEMPTS)),
        ),
        dispatcher=dispatcher,
        settings=settings,
        conn=conn,
    )
