from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Optional, Sequence

from ..common.datetime_utils import format_duration, now_local
from ..core.constants import DEFAULT_HISTORY_LIMIT, DEFAULT_LATE_GRACE_MINUTES
from ..core.enums import AttendanceStatus, Role
from ..core.exceptions import (
    AlreadyCheckedInError,
    LocationNotFoundError,
    NoActiveCheckInError,
    OutOfGeofenceError,
)
from ..locations.geofence import distance_meters, is_within_radius
from ..locations.repository import LocationRepository
from ..notifications.dispatcher import Audience, NotificationPublisher
from ..shifts.resolver import ShiftResolver
from .factory import AttendanceStrategyFactory
from .model import AttendanceRecord
from .repository import AttendanceRepository

logger = logging.getLogger(__name__)


class AttendanceService:
    """Open/closed lifecycle of a user's attendance.

    NoOpenRecord --check_in--> Open --check_out--> NoOpenRecord. Neither
    transition is idempotent: repeating one surfaces the matching error so
    double submissions reach the client instead of merging records.
    """

    def __init__(
        self,
        attendance: AttendanceRepository,
        locations: LocationRepository,
        resolver: ShiftResolver,
        publisher: NotificationPublisher,
        *,
        strategy_factory: AttendanceStrategyFactory | None = None,
        grace_minutes: int = DEFAULT_LATE_GRACE_MINUTES,
        clock: Callable[[], datetime] = now_local,
    ):
        self._attendance = attendance
        self._locations = locations
        self._resolver = resolver
        self._publisher = publisher
        self._factory = strategy_factory or AttendanceStrategyFactory()
        self._grace_minutes = int(grace_minutes)
        self._clock = clock

    def check_in(
        self,
        user_id: int,
        *,
        location_id: int,
        latitude: float,
        longitude: float,
        now: datetime | None = None,
    ) -> AttendanceRecord:
        now = now or self._clock()

        if self._attendance.find_open_for_user(user_id):
            raise AlreadyCheckedInError()

        location = self._locations.get_by_id(location_id)
        if not location:
            raise LocationNotFoundError(location_id)

        if not is_within_radius(latitude, longitude, location.latitude, location.longitude, location.radius):
            distance = distance_meters(latitude, longitude, location.latitude, location.longitude)
            raise OutOfGeofenceError(required=location.radius, actual=round(distance))

        shift_start = self._resolver.resolve_start_time(user_id=user_id, on_date=now.date())
        strategy = self._factory.for_checkin(now=now, shift_start=shift_start, grace_minutes=self._grace_minutes)
        decision = strategy.decide_checkin(now=now, shift_start=shift_start, grace_minutes=self._grace_minutes)

        record = self._attendance.create_open(
            user_id=user_id,
            location_id=location.location_id,
            check_in_time=now,
            latitude=latitude,
            longitude=longitude,
            status=decision.status,
            notes=decision.note,
        )
        logger.info("user %s checked in at location %s (%s)", user_id, location.location_id, record.status.value)

        late = record.status == AttendanceStatus.LATE
        label = "late" if late else "on time"
        metadata = {
            "user_id": user_id,
            "location_id": location.location_id,
            "attendance_id": record.attendance_id,
            "late": late,
            "timestamp": now.isoformat(),
        }
        self._publisher.publish(
            Audience.for_role(Role.ADMIN),
            f"Employee Check-In: #{user_id}",
            f"Employee #{user_id} has checked in at {location.name} ({label}) at {now:%H:%M:%S}.",
            {**metadata, "url": "/admin-dashboard?tab=attendance", "tag": "check-in"},
        )
        self._publisher.publish(
            Audience.for_user(user_id),
            "Check-In Successful",
            f"You have successfully checked in at {location.name} ({label}) at {now:%H:%M:%S}.",
            {**metadata, "url": "/dashboard?tab=my-attendance", "tag": "check-in-confirmation"},
        )
        return record

    def check_out(
        self,
        user_id: int,
        *,
        latitude: float,
        longitude: float,
        now: datetime | None = None,
    ) -> AttendanceRecord:
        # Check-out position is recorded, not validated against the geofence.
        now = now or self._clock()

        record = self._attendance.find_open_for_user(user_id)
        if not record:
            raise NoActiveCheckInError()

        closed = self._attendance.close(
            attendance_id=record.attendance_id,
            check_out_time=now,
            latitude=latitude,
            longitude=longitude,
        )
        if closed is None:
            # Closed by a concurrent check-out between our read and write.
            raise NoActiveCheckInError()

        duration = format_duration(now - closed.check_in_time)
        logger.info("user %s checked out after %s", user_id, duration)

        location = self._locations.get_by_id(closed.location_id)
        place = location.name if location else f"location #{closed.location_id}"
        metadata = {
            "user_id": user_id,
            "location_id": closed.location_id,
            "attendance_id": closed.attendance_id,
            "duration": duration,
            "timestamp": now.isoformat(),
        }
        self._publisher.publish(
            Audience.for_role(Role.ADMIN),
            f"Employee Check-Out: #{user_id}",
            f"Employee #{user_id} has checked out from {place} at {now:%H:%M:%S}. Duration: {duration}",
            {**metadata, "url": "/admin-dashboard?tab=attendance", "tag": "check-out"},
        )
        self._publisher.publish(
            Audience.for_user(user_id),
            "Check-Out Successful",
            f"You have successfully checked out from {place} at {now:%H:%M:%S}. Duration: {duration}",
            {**metadata, "url": "/dashboard?tab=my-attendance", "tag": "check-out-confirmation"},
        )
        return closed

    def history(self, user_id: int, *, limit: int = DEFAULT_HISTORY_LIMIT) -> Sequence[AttendanceRecord]:
        return self._attendance.list_for_user(user_id, limit)

    def open_record(self, user_id: int) -> Optional[AttendanceRecord]:
        return self._attendance.find_open_for_user(user_id)
