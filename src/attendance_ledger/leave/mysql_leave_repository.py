from __future__ import annotations

from datetime import date, datetime
from typing import Any, Callable, Dict, List, Optional, Sequence, TypeVar

from ..core.constants import LEDGER_MAX_ATTEMPTS
from ..core.enums import LeaveStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, run_in_transaction
from .model import LeaveBalance, LeaveRequest, LeaveType
from .repository import ACTIVE_STATUSES, LeaveStore, LeaveTransaction

T = TypeVar("T")

_BALANCE_COLUMNS = "balance_id, user_id, leave_type_id, year, total_days, used_days, pending_days"

_REQUEST_COLUMNS = """
    request_id, user_id, leave_type_id, start_date, end_date, total_days,
    reason, status, balance_year, created_at,
    reviewer_id, reviewed_at, rejection_reason
"""


def _to_leave_type(r: Dict[str, Any]) -> LeaveType:
    return LeaveType(
        leave_type_id=int(r["leave_type_id"]),
        name=r["name"],
        description=r.get("description"),
        color=r.get("color"),
    )


def _to_balance(r: Dict[str, Any]) -> LeaveBalance:
    return LeaveBalance(
        balance_id=int(r["balance_id"]),
        user_id=int(r["user_id"]),
        leave_type_id=int(r["leave_type_id"]),
        year=int(r["year"]),
        total_days=int(r["total_days"]),
        used_days=int(r["used_days"]),
        pending_days=int(r["pending_days"]),
    )


def _to_request(r: Dict[str, Any]) -> LeaveRequest:
    return LeaveRequest(
        request_id=int(r["request_id"]),
        user_id=int(r["user_id"]),
        leave_type_id=int(r["leave_type_id"]),
        start_date=r["start_date"],
        end_date=r["end_date"],
        total_days=int(r["total_days"]),
        reason=r["reason"],
        status=LeaveStatus(r["status"]),
        balance_year=int(r["balance_year"]),
        created_at=r["created_at"],
        reviewer_id=int(r["reviewer_id"]) if r.get("reviewer_id") is not None else None,
        reviewed_at=r.get("reviewed_at"),
        rejection_reason=r.get("rejection_reason"),
    )


class MySQLLeaveTransaction(LeaveTransaction):
    """Statements issued on one cursor; every read of a mutable row takes FOR UPDATE."""

    def __init__(self, cur):
        self._cur = cur

    def get_leave_type(self, leave_type_id: int) -> Optional[LeaveType]:
        self._cur.execute(
            "SELECT leave_type_id, name, description, color FROM leave_types WHERE leave_type_id=%s",
            (int(leave_type_id),),
        )
        r = fetchone(self._cur)
        return _to_leave_type(r) if r else None

    def list_leave_types(self) -> Sequence[LeaveType]:
        self._cur.execute("SELECT leave_type_id, name, description, color FROM leave_types ORDER BY leave_type_id")
        return [_to_leave_type(r) for r in fetchall(self._cur)]

    def create_leave_type(self, *, name: str, description: Optional[str], color: Optional[str]) -> LeaveType:
        self._cur.execute(
            "INSERT INTO leave_types(name, description, color) VALUES(%s,%s,%s)",
            (name, description, color),
        )
        return LeaveType(leave_type_id=int(self._cur.lastrowid), name=name, description=description, color=color)

    def find_balance(self, *, user_id: int, leave_type_id: int, year: int) -> Optional[LeaveBalance]:
        self._cur.execute(
            f"""
            SELECT {_BALANCE_COLUMNS}
            FROM leave_balances
            WHERE user_id=%s AND leave_type_id=%s AND year=%s
            FOR UPDATE
            """,
            (int(user_id), int(leave_type_id), int(year)),
        )
        r = fetchone(self._cur)
        return _to_balance(r) if r else None

    def find_balance_by_id(self, balance_id: int) -> Optional[LeaveBalance]:
        self._cur.execute(
            f"SELECT {_BALANCE_COLUMNS} FROM leave_balances WHERE balance_id=%s FOR UPDATE",
            (int(balance_id),),
        )
        r = fetchone(self._cur)
        return _to_balance(r) if r else None

    def list_balances(self, *, user_id: int, year: int) -> Sequence[LeaveBalance]:
        self._cur.execute(
            f"""
            SELECT {_BALANCE_COLUMNS}
            FROM leave_balances
            WHERE user_id=%s AND year=%s
            ORDER BY leave_type_id
            """,
            (int(user_id), int(year)),
        )
        return [_to_balance(r) for r in fetchall(self._cur)]

    def insert_balance(self, *, user_id: int, leave_type_id: int, year: int, total_days: int) -> LeaveBalance:
        # uq_balance_user_type_year makes concurrent first use converge on one row
        self._cur.execute(
            """
            INSERT IGNORE INTO leave_balances(user_id, leave_type_id, year, total_days, used_days, pending_days)
            VALUES(%s,%s,%s,%s,0,0)
            """,
            (int(user_id), int(leave_type_id), int(year), int(total_days)),
        )
        balance = self.find_balance(user_id=user_id, leave_type_id=leave_type_id, year=year)
        if balance is None:
            raise RuntimeError(f"leave balance for user {user_id}, type {leave_type_id}, {year} vanished")
        return balance

    def save_balance(self, balance: LeaveBalance) -> None:
        self._cur.execute(
            """
            UPDATE leave_balances
            SET total_days=%s, used_days=%s, pending_days=%s
            WHERE balance_id=%s
            """,
            (balance.total_days, balance.used_days, balance.pending_days, balance.balance_id),
        )

    def reserved_days(self, *, user_id: int, leave_type_id: int, year: int) -> int:
        self._cur.execute(
            """
            SELECT COALESCE(SUM(total_days), 0) AS reserved
            FROM leave_requests
            WHERE user_id=%s AND leave_type_id=%s AND balance_year=%s AND status=%s
            """,
            (int(user_id), int(leave_type_id), int(year), LeaveStatus.PENDING.value),
        )
        r = fetchone(self._cur)
        return int(r["reserved"]) if r else 0

    def find_overlapping_requests(
        self,
        *,
        user_id: int,
        start_date: date,
        end_date: date,
        statuses: Sequence[LeaveStatus] = ACTIVE_STATUSES,
    ) -> Sequence[LeaveRequest]:
        placeholders = ",".join(["%s"] * len(statuses))
        self._cur.execute(
            f"""
            SELECT {_REQUEST_COLUMNS}
            FROM leave_requests
            WHERE user_id=%s
              AND status IN ({placeholders})
              AND start_date <= %s AND end_date >= %s
            FOR UPDATE
            """,
            (int(user_id), *[s.value for s in statuses], end_date, start_date),
        )
        return [_to_request(r) for r in fetchall(self._cur)]

    def create_request(
        self,
        *,
        user_id: int,
        leave_type_id: int,
        start_date: date,
        end_date: date,
        total_days: int,
        reason: str,
        balance_year: int,
        created_at: datetime,
    ) -> LeaveRequest:
        self._cur.execute(
            """
            INSERT INTO leave_requests(
                user_id, leave_type_id, start_date, end_date, total_days,
                reason, status, balance_year, created_at
            )
            VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s)
            """,
            (
                int(user_id),
                int(leave_type_id),
                start_date,
                end_date,
                int(total_days),
                reason,
                LeaveStatus.PENDING.value,
                int(balance_year),
                created_at,
            ),
        )
        return LeaveRequest(
            request_id=int(self._cur.lastrowid),
            user_id=int(user_id),
            leave_type_id=int(leave_type_id),
            start_date=start_date,
            end_date=end_date,
            total_days=int(total_days),
            reason=reason,
            status=LeaveStatus.PENDING,
            balance_year=int(balance_year),
            created_at=created_at,
        )

    def get_request(self, request_id: int) -> Optional[LeaveRequest]:
        self._cur.execute(
            f"SELECT {_REQUEST_COLUMNS} FROM leave_requests WHERE request_id=%s FOR UPDATE",
            (int(request_id),),
        )
        r = fetchone(self._cur)
        return _to_request(r) if r else None

    def update_request_status(
        self,
        *,
        request_id: int,
        status: LeaveStatus,
        reviewer_id: Optional[int] = None,
        reviewed_at: Optional[datetime] = None,
        rejection_reason: Optional[str] = None,
    ) -> LeaveRequest:
        self._cur.execute(
            """
            UPDATE leave_requests
            SET status=%s, reviewer_id=%s, reviewed_at=%s, rejection_reason=%s
            WHERE request_id=%s
            """,
            (status.value, reviewer_id, reviewed_at, rejection_reason, int(request_id)),
        )
        updated = self.get_request(request_id)
        if updated is None:
            raise RuntimeError(f"leave request {request_id} vanished during update")
        return updated


class MySQLLeaveStore(LeaveStore):
    def __init__(self, conn_factory: DatabaseConnection, *, max_attempts: int = LEDGER_MAX_ATTEMPTS):
        self._conn_factory = conn_factory
        self._max_attempts = max_attempts

    def atomic(self, work: Callable[[LeaveTransaction], T]) -> T:
        return run_in_transaction(
            self._conn_factory,
            lambda cur: work(MySQLLeaveTransaction(cur)),
            max_attempts=self._max_attempts,
        )

    def list_requests(
        self,
        *,
        user_id: Optional[int] = None,
        status: Optional[LeaveStatus] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        limit: int = 200,
    ) -> Sequence[LeaveRequest]:
        clauses: List[str] = []
        params: List[Any] = []
        if user_id is not None:
            clauses.append("user_id=%s")
            params.append(int(user_id))
        if status is not None:
            clauses.append("status=%s")
            params.append(status.value)
        if end_date is not None:
            clauses.append("start_date <= %s")
            params.append(end_date)
        if start_date is not None:
            clauses.append("end_date >= %s")
            params.append(start_date)

        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        params.append(int(limit))

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_REQUEST_COLUMNS}
                FROM leave_requests
                {where}
                ORDER BY created_at DESC, request_id DESC
                LIMIT %s
                """,
                tuple(params),
            )
            return [_to_request(r) for r in fetchall(cur)]
