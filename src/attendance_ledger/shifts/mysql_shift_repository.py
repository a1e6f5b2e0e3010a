from __future__ import annotations

from datetime import date
from typing import Any, Dict, Optional

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, normalize_mysql_time, split_csv
from .model import RosterAssignment, WorkShift
from .repository import RosterRepository, ShiftRepository


class MySQLShiftRepository(ShiftRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def _load_employees(self, cur, shift_id: int) -> frozenset:
        cur.execute("SELECT user_id FROM work_shift_employees WHERE shift_id=%s", (shift_id,))
        return frozenset(int(r["user_id"]) for r in fetchall(cur))

    def _to_shift(self, cur, r: Dict[str, Any]) -> WorkShift:
        shift_id = int(r["shift_id"])
        return WorkShift(
            shift_id=shift_id,
            name=r["name"],
            start_time=normalize_mysql_time(r["start_time"]),
            end_time=normalize_mysql_time(r["end_time"]),
            days=split_csv(r.get("days")),
            employee_ids=self._load_employees(cur, shift_id),
        )

    def get_by_id(self, shift_id: int) -> Optional[WorkShift]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT shift_id, name, start_time, end_time, days
                FROM work_shifts
                WHERE shift_id=%s
                """,
                (int(shift_id),),
            )
            r = fetchone(cur)
            if not r:
                return None
            return self._to_shift(cur, r)

    def find_assigned_for_user(self, *, user_id: int, weekday: str) -> Optional[WorkShift]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT s.shift_id, s.name, s.start_time, s.end_time, s.days
                FROM work_shifts s
                JOIN work_shift_employees e ON e.shift_id = s.shift_id
                WHERE e.user_id=%s AND FIND_IN_SET(%s, s.days) > 0
                ORDER BY s.shift_id ASC
                LIMIT 1
                """,
                (int(user_id), weekday),
            )
            r = fetchone(cur)
            if not r:
                return None
            return self._to_shift(cur, r)


class MySQLRosterRepository(RosterRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def find_active_for_user(self, *, user_id: int, on_date: date, weekday: str) -> Optional[RosterAssignment]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT r.roster_id, r.user_id, r.shift_id, r.start_date, r.end_date, r.notes
                FROM rosters r
                JOIN work_shifts s ON s.shift_id = r.shift_id
                WHERE r.user_id=%s
                  AND r.start_date <= %s
                  AND (r.end_date IS NULL OR r.end_date >= %s)
                  AND FIND_IN_SET(%s, s.days) > 0
                ORDER BY r.start_date DESC, r.roster_id DESC
                LIMIT 1
                """,
                (int(user_id), on_date, on_date, weekday),
            )
            r = fetchone(cur)
            if not r:
                return None
            return RosterAssignment(
                roster_id=int(r["roster_id"]),
                user_id=int(r["user_id"]),
                shift_id=int(r["shift_id"]),
                start_date=r["start_date"],
                end_date=r.get("end_date"),
                notes=r.get("notes"),
            )
