from __future__ import annotations

import logging
import random
from datetime import date, datetime
from typing import Callable, Optional, Sequence, Union

from ..common.datetime_utils import count_business_days, now_local
from ..common.validators import require_int, require_min_length, require_non_empty
from ..core.constants import CUSTOM_LEAVE_TYPE, CUSTOM_LEAVE_TYPE_DESCRIPTION, MIN_LEAVE_REASON_LENGTH
from ..core.enums import LeaveStatus, Role
from ..core.exceptions import (
    AlreadyDecidedError,
    ConsistencyError,
    ForbiddenError,
    InvalidRangeError,
    NotFoundError,
    NotPendingError,
    OverlappingRequestError,
    ValidationError,
)
from ..notifications.dispatcher import Audience, NotificationPublisher
from .ledger import LeaveBalanceLedger
from .model import LeaveBalance, LeaveRequest, LeaveType
from .repository import LeaveStore, LeaveTransaction

logger = logging.getLogger(__name__)

DECISION_STATUSES = (LeaveStatus.APPROVED, LeaveStatus.REJECTED)


def random_color() -> str:
    return "#%06x" % random.randint(0, 0xFFFFFF)


class LeaveRequestService:
    """Leave request lifecycle driving the balance ledger.

    PENDING holds a reservation; APPROVED turns it into used days; REJECTED
    and CANCELLED give it back. The request row and its balance change are
    written in the same transaction.
    """

    def __init__(
        self,
        store: LeaveStore,
        ledger: LeaveBalanceLedger,
        publisher: NotificationPublisher,
        *,
        min_reason_length: int = MIN_LEAVE_REASON_LENGTH,
        clock: Callable[[], datetime] = now_local,
        color_factory: Callable[[], str] = random_color,
    ):
        self._store = store
        self._ledger = ledger
        self._publisher = publisher
        self._min_reason_length = int(min_reason_length)
        self._clock = clock
        self._color_factory = color_factory

    def submit(
        self,
        user_id: int,
        *,
        leave_type_id: Union[int, str],
        start_date: date,
        end_date: date,
        reason: str,
        custom_leave_type_name: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> LeaveRequest:
        now = now or self._clock()

        if start_date > end_date:
            raise InvalidRangeError()
        reason = require_min_length(reason, self._min_reason_length)

        is_custom = str(leave_type_id).strip().lower() == CUSTOM_LEAVE_TYPE
        if is_custom:
            custom_name = require_non_empty(custom_leave_type_name, "Custom leave type name")
        else:
            leave_type_id = require_int(leave_type_id, "Leave type")

        total_days = count_business_days(start_date, end_date)
        year = now.year

        def work(tx: LeaveTransaction) -> LeaveRequest:
            conflicts = tx.find_overlapping_requests(user_id=user_id, start_date=start_date, end_date=end_date)
            if conflicts:
                raise OverlappingRequestError(conflicting_ids=[r.request_id for r in conflicts])

            if is_custom:
                leave_type = tx.create_leave_type(
                    name=custom_name,
                    description=CUSTOM_LEAVE_TYPE_DESCRIPTION,
                    color=self._color_factory(),
                )
                balance = self._ledger.get_or_init_balance(
                    tx,
                    user_id=user_id,
                    leave_type=leave_type,
                    year=year,
                    total_days=self._ledger.quota_for(None),
                )
            else:
                leave_type = tx.get_leave_type(leave_type_id)
                if leave_type is None:
                    raise NotFoundError("Leave type not found", leave_type_id=leave_type_id)
                balance = self._ledger.get_or_init_balance(tx, user_id=user_id, leave_type=leave_type, year=year)

            self._ledger.reserve(tx, balance, total_days)
            return tx.create_request(
                user_id=user_id,
                leave_type_id=leave_type.leave_type_id,
                start_date=start_date,
                end_date=end_date,
                total_days=total_days,
                reason=reason,
                balance_year=year,
                created_at=now,
            )

        request = self._store.atomic(work)
        logger.info(
            "user %s submitted leave request %s (%s business days, %s..%s)",
            user_id,
            request.request_id,
            total_days,
            start_date,
            end_date,
        )

        self._publisher.publish(
            Audience.for_role(Role.ADMIN),
            f"New Leave Request: #{user_id}",
            f"Employee #{user_id} requested {total_days} day(s) of leave from {start_date} to {end_date}.",
            {
                "user_id": user_id,
                "request_id": request.request_id,
                "leave_type_id": request.leave_type_id,
                "url": "/admin-dashboard?tab=leave",
                "tag": "leave-request",
            },
        )
        return request

    def decide(
        self,
        request_id: int,
        *,
        reviewer_id: int,
        status: Union[LeaveStatus, str],
        rejection_reason: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> LeaveRequest:
        now = now or self._clock()

        try:
            status = LeaveStatus(str(getattr(status, "value", status)).upper())
        except ValueError:
            raise ValidationError("Status must be APPROVED or REJECTED")
        if status not in DECISION_STATUSES:
            raise ValidationError("Status must be APPROVED or REJECTED")

        if status == LeaveStatus.REJECTED:
            rejection_reason = require_non_empty(rejection_reason, "Rejection reason")
        else:
            rejection_reason = None

        def work(tx: LeaveTransaction) -> LeaveRequest:
            request = self._get_request(tx, request_id)
            if not request.status.can_transition_to(status):
                raise AlreadyDecidedError(request.status.value)

            balance = self._request_balance(tx, request)
            if status == LeaveStatus.APPROVED:
                self._ledger.commit(tx, balance, request.total_days)
            else:
                self._ledger.release(tx, balance, request.total_days)

            return tx.update_request_status(
                request_id=request.request_id,
                status=status,
                reviewer_id=reviewer_id,
                reviewed_at=now,
                rejection_reason=rejection_reason,
            )

        decided = self._store.atomic(work)
        logger.info("leave request %s %s by reviewer %s", decided.request_id, decided.status.value, reviewer_id)

        outcome = decided.status.value.lower()
        body = f"Your leave request from {decided.start_date} to {decided.end_date} has been {outcome}."
        if decided.rejection_reason:
            body = f"{body} Reason: {decided.rejection_reason}"
        self._publisher.publish(
            Audience.for_user(decided.user_id),
            f"Leave Request {outcome.capitalize()}",
            body,
            {
                "request_id": decided.request_id,
                "status": decided.status.value,
                "url": "/dashboard?tab=leave",
                "tag": "leave-decision",
            },
        )
        return decided

    def cancel(
        self,
        request_id: int,
        *,
        caller_id: int,
        caller_role: Role,
    ) -> LeaveRequest:
        def work(tx: LeaveTransaction) -> LeaveRequest:
            request = self._get_request(tx, request_id)
            if request.user_id != caller_id and caller_role != Role.ADMIN:
                raise ForbiddenError("You can only cancel your own leave requests")
            if request.status != LeaveStatus.PENDING:
                raise NotPendingError(request.status.value)

            balance = self._request_balance(tx, request)
            self._ledger.release(tx, balance, request.total_days)
            return tx.update_request_status(request_id=request.request_id, status=LeaveStatus.CANCELLED)

        cancelled = self._store.atomic(work)
        logger.info("leave request %s cancelled by user %s", cancelled.request_id, caller_id)
        return cancelled

    def list_requests(
        self,
        caller_id: int,
        caller_role: Role,
        *,
        status: Optional[LeaveStatus] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        user_id: Optional[int] = None,
    ) -> Sequence[LeaveRequest]:
        if caller_role == Role.EMPLOYEE:
            user_id = caller_id
        return self._store.list_requests(
            user_id=user_id,
            status=status,
            start_date=start_date,
            end_date=end_date,
        )

    def list_leave_types(self) -> Sequence[LeaveType]:
        return self._store.atomic(lambda tx: tx.list_leave_types())

    def create_leave_type(
        self,
        *,
        name: str,
        description: Optional[str] = None,
        color: Optional[str] = None,
    ) -> LeaveType:
        name = require_non_empty(name, "Name")

        leave_type = self._store.atomic(
            lambda tx: tx.create_leave_type(name=name, description=description, color=color or self._color_factory())
        )
        logger.info("leave type %s created (%s)", leave_type.leave_type_id, leave_type.name)
        return leave_type

    @staticmethod
    def _get_request(tx: LeaveTransaction, request_id: int) -> LeaveRequest:
        request = tx.get_request(request_id)
        if request is None:
            raise NotFoundError("Leave request not found", request_id=request_id)
        return request

    @staticmethod
    def _request_balance(tx: LeaveTransaction, request: LeaveRequest) -> LeaveBalance:
        balance = tx.find_balance(
            user_id=request.user_id,
            leave_type_id=request.leave_type_id,
            year=request.balance_year,
        )
        if balance is None:
            logger.critical(
                "leave request %s has no balance row for user %s, type %s, %s",
                request.request_id,
                request.user_id,
                request.leave_type_id,
                request.balance_year,
            )
            raise ConsistencyError(f"no balance backing leave request {request.request_id}")
        return balance
