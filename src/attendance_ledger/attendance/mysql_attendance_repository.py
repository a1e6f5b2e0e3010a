from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, Optional, Sequence

from mysql.connector.errors import IntegrityError

from ..core.enums import AttendanceStatus
from ..core.exceptions import AlreadyCheckedInError, ConsistencyError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, is_duplicate_key
from .model import AttendanceRecord
from .repository import AttendanceRepository

logger = logging.getLogger(__name__)

_COLUMNS = """
    attendance_id, user_id, location_id,
    check_in_time, check_in_latitude, check_in_longitude,
    check_out_time, check_out_latitude, check_out_longitude,
    status, notes
"""


def _to_record(r: Dict[str, Any]) -> AttendanceRecord:
    return AttendanceRecord(
        attendance_id=int(r["attendance_id"]),
        user_id=int(r["user_id"]),
        location_id=int(r["location_id"]),
        check_in_time=r["check_in_time"],
        check_in_latitude=float(r["check_in_latitude"]),
        check_in_longitude=float(r["check_in_longitude"]),
        status=AttendanceStatus(r["status"]),
        check_out_time=r.get("check_out_time"),
        check_out_latitude=r.get("check_out_latitude"),
        check_out_longitude=r.get("check_out_longitude"),
        notes=r.get("notes"),
    )


class MySQLAttendanceRepository(AttendanceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def find_open_for_user(self, user_id: int) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance_records
                WHERE user_id=%s AND check_out_time IS NULL
                """,
                (int(user_id),),
            )
            rows = fetchall(cur)
        if len(rows) > 1:
            logger.critical("user %s has %d open attendance records", user_id, len(rows))
            raise ConsistencyError(f"user {user_id} has {len(rows)} open attendance records")
        return _to_record(rows[0]) if rows else None

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
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    INSERT INTO attendance_records(
                        user_id, location_id, check_in_time,
                        check_in_latitude, check_in_longitude, status, notes
                    )
                    VALUES(%s,%s,%s,%s,%s,%s,%s)
                    """,
                    (int(user_id), int(location_id), check_in_time, latitude, longitude, status.value, notes),
                )
                attendance_id = int(cur.lastrowid)
        except IntegrityError as exc:
            # uq_attendance_one_open: a concurrent check-in got there first
            if is_duplicate_key(exc):
                raise AlreadyCheckedInError()
            raise

        return AttendanceRecord(
            attendance_id=attendance_id,
            user_id=int(user_id),
            location_id=int(location_id),
            check_in_time=check_in_time,
            check_in_latitude=latitude,
            check_in_longitude=longitude,
            status=status,
            notes=notes,
        )

    def close(
        self,
        *,
        attendance_id: int,
        check_out_time: datetime,
        latitude: float,
        longitude: float,
    ) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE attendance_records
                SET check_out_time=%s, check_out_latitude=%s, check_out_longitude=%s
                WHERE attendance_id=%s AND check_out_time IS NULL
                """,
                (check_out_time, latitude, longitude, int(attendance_id)),
            )
            if cur.rowcount == 0:
                return None

            cur.execute(f"SELECT {_COLUMNS} FROM attendance_records WHERE attendance_id=%s", (int(attendance_id),))
            r = fetchone(cur)
            return _to_record(r) if r else None

    def list_for_user(self, user_id: int, limit: int) -> Sequence[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance_records
                WHERE user_id=%s
                ORDER BY check_in_time DESC
                LIMIT %s
                """,
                (int(user_id), int(limit)),
            )
            return [_to_record(r) for r in fetchall(cur)]
