from __future__ import annotations

from datetime import date, datetime
from typing import Callable, Optional, Protocol, Sequence, TypeVar

from ..core.enums import LeaveStatus
from .model import LeaveBalance, LeaveRequest, LeaveType

T = TypeVar("T")

ACTIVE_STATUSES = (LeaveStatus.PENDING, LeaveStatus.APPROVED)


class LeaveTransaction(Protocol):
    """Operations available inside one atomic unit of work.

    Reads of balances and requests are locking reads: rows returned here stay
    reserved for this transaction until it commits or rolls back.
    """

    def get_leave_type(self, leave_type_id: int) -> Optional[LeaveType]:
        raise NotImplementedError

    def list_leave_types(self) -> Sequence[LeaveType]:
        raise NotImplementedError

    def create_leave_type(self, *, name: str, description: Optional[str], color: Optional[str]) -> LeaveType:
        raise NotImplementedError

    def find_balance(self, *, user_id: int, leave_type_id: int, year: int) -> Optional[LeaveBalance]:
        raise NotImplementedError

    def find_balance_by_id(self, balance_id: int) -> Optional[LeaveBalance]:
        raise NotImplementedError

    def list_balances(self, *, user_id: int, year: int) -> Sequence[LeaveBalance]:
        raise NotImplementedError

    def insert_balance(self, *, user_id: int, leave_type_id: int, year: int, total_days: int) -> LeaveBalance:
        """Create the row if missing; either way return the locked row."""

        raise NotImplementedError

    def save_balance(self, balance: LeaveBalance) -> None:
        raise NotImplementedError

    def reserved_days(self, *, user_id: int, leave_type_id: int, year: int) -> int:
        """Days held by PENDING requests drawing on this balance."""

        raise NotImplementedError

    def find_overlapping_requests(
        self,
        *,
        user_id: int,
        start_date: date,
        end_date: date,
        statuses: Sequence[LeaveStatus] = ACTIVE_STATUSES,
    ) -> Sequence[LeaveRequest]:
        raise NotImplementedError

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
        raise NotImplementedError

    def get_request(self, request_id: int) -> Optional[LeaveRequest]:
        raise NotImplementedError

    def update_request_status(
        self,
        *,
        request_id: int,
        status: LeaveStatus,
        reviewer_id: Optional[int] = None,
        reviewed_at: Optional[datetime] = None,
        rejection_reason: Optional[str] = None,
    ) -> LeaveRequest:
        raise NotImplementedError


class LeaveStore(Protocol):
    def atomic(self, work: Callable[[LeaveTransaction], T]) -> T:
        """Run ``work`` as a single transaction.

        Lock conflicts are retried a bounded number of times, then surface as
        TransientConflictError. Any exception raised by ``work`` rolls back
        every change it made.
        """

        raise NotImplementedError

    def list_requests(
        self,
        *,
        user_id: Optional[int] = None,
        status: Optional[LeaveStatus] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        limit: int = 200,
    ) -> Sequence[LeaveRequest]:
        raise NotImplementedError
