from __future__ import annotations

import threading
from datetime import date, datetime, timedelta

import pytest

from attendance_ledger.core.enums import LeaveStatus, Role
from attendance_ledger.core.exceptions import (
    AlreadyDecidedError,
    ForbiddenError,
    InsufficientBalanceError,
    InvalidRangeError,
    NotFoundError,
    NotPendingError,
    OverlappingRequestError,
    ReasonTooShortError,
    ValidationError,
)
from attendance_ledger.leave.service import LeaveRequestService
from attendance_ledger.notifications.dispatcher import NotificationPublisher

from fakes import ADMIN_ID, EMPLOYEE_ID, LONG_REASON, FailingDispatcher

SICK = 2


def week(monday: date) -> tuple[date, date]:
    return monday, monday + timedelta(days=4)


def submit(service, start, end, *, user_id=EMPLOYEE_ID, leave_type_id=SICK, **kwargs):
    return service.submit(
        user_id,
        leave_type_id=leave_type_id,
        start_date=start,
        end_date=end,
        reason=kwargs.pop("reason", LONG_REASON),
        **kwargs,
    )


def test_submit_reserves_business_days(leave_service, leave_store, fixed_now):
    # Monday 2026-03-02 .. Sunday 2026-03-08
    req = submit(leave_service, date(2026, 3, 2), date(2026, 3, 8))

    assert req.status == LeaveStatus.PENDING
    assert req.total_days == 5
    assert req.balance_year == 2026
    assert req.created_at == fixed_now
    balance = leave_store.balance_for(EMPLOYEE_ID, SICK, 2026)
    assert (balance.total_days, balance.used_days, balance.pending_days) == (15, 0, 5)


def test_weekend_only_request_is_zero_days(leave_service, leave_store):
    req = submit(leave_service, date(2026, 3, 7), date(2026, 3, 8))

    assert req.total_days == 0
    assert leave_store.balance_for(EMPLOYEE_ID, SICK, 2026).pending_days == 0


def test_inverted_range_is_rejected(leave_service, leave_store):
    with pytest.raises(InvalidRangeError):
        submit(leave_service, date(2026, 3, 10), date(2026, 3, 9))

    assert not leave_store.requests


def test_short_reason_is_rejected(leave_service, leave_store):
    with pytest.raises(ReasonTooShortError) as exc_info:
        submit(leave_service, *week(date(2026, 3, 2)), reason="Holiday")

    assert exc_info.value.context == {"min_length": 50, "actual": 7}
    assert not leave_store.requests


def test_unknown_leave_type(leave_service):
    with pytest.raises(NotFoundError):
        submit(leave_service, *week(date(2026, 3, 2)), leave_type_id=42)


@pytest.mark.parametrize(
    "start, end",
    [
        (date(2026, 3, 4), date(2026, 3, 4)),  # inside
        (date(2026, 2, 25), date(2026, 3, 2)),  # end inside
        (date(2026, 3, 6), date(2026, 3, 12)),  # start inside
        (date(2026, 2, 23), date(2026, 3, 13)),  # containing
    ],
)
def test_overlapping_request_is_rejected(leave_service, leave_store, start, end):
    first = submit(leave_service, *week(date(2026, 3, 2)))

    with pytest.raises(OverlappingRequestError) as exc_info:
        submit(leave_service, start, end)

    assert exc_info.value.context["conflicting_request_ids"] == [first.request_id]
    assert len(leave_store.requests) == 1
    assert leave_store.balance_for(EMPLOYEE_ID, SICK, 2026).pending_days == 5


def test_adjacent_ranges_do_not_overlap(leave_service):
    submit(leave_service, *week(date(2026, 3, 2)))
    submit(leave_service, *week(date(2026, 3, 9)))


def test_rejected_and_cancelled_requests_do_not_block(leave_service):
    first = submit(leave_service, *week(date(2026, 3, 2)))
    leave_service.decide(first.request_id, reviewer_id=ADMIN_ID, status="REJECTED", rejection_reason="Busy week")
    second = submit(leave_service, *week(date(2026, 3, 2)))
    leave_service.cancel(second.request_id, caller_id=EMPLOYEE_ID, caller_role=Role.EMPLOYEE)

    third = submit(leave_service, *week(date(2026, 3, 2)))
    assert third.status == LeaveStatus.PENDING


def test_other_users_do_not_overlap(leave_service):
    submit(leave_service, *week(date(2026, 3, 2)))
    submit(leave_service, *week(date(2026, 3, 2)), user_id=8)


def test_insufficient_balance_creates_nothing(leave_service, leave_store):
    # 20 business days from Monday 2026-03-02 to Friday 2026-03-27
    with pytest.raises(InsufficientBalanceError) as exc_info:
        submit(leave_service, date(2026, 3, 2), date(2026, 3, 27))

    assert exc_info.value.available == 15
    assert exc_info.value.requested == 20
    assert not leave_store.requests
    assert leave_store.balance_for(EMPLOYEE_ID, SICK, 2026) is None


def test_custom_leave_type_is_created_with_default_quota(leave_service, leave_store):
    req = submit(
        leave_service,
        *week(date(2026, 3, 2)),
        leave_type_id="custom",
        custom_leave_type_name="Wedding Leave",
    )

    lt = leave_store.leave_types[req.leave_type_id]
    assert lt.name == "Wedding Leave"
    assert lt.color == "#123456"
    assert lt.description == "Custom leave type created by employee"
    balance = leave_store.balance_for(EMPLOYEE_ID, lt.leave_type_id, 2026)
    assert (balance.total_days, balance.pending_days) == (15, 5)


def test_custom_leave_type_requires_a_name(leave_service, leave_store):
    with pytest.raises(ValidationError):
        submit(leave_service, *week(date(2026, 3, 2)), leave_type_id="custom")

    assert len(leave_store.leave_types) == 2


def test_failed_custom_submission_rolls_back_new_type(leave_service, leave_store):
    with pytest.raises(InsufficientBalanceError):
        submit(
            leave_service,
            date(2026, 3, 2),
            date(2026, 3, 27),
            leave_type_id="custom",
            custom_leave_type_name="Sabbatical",
        )

    assert len(leave_store.leave_types) == 2
    assert not leave_store.balances


def test_approve_moves_pending_to_used(leave_service, leave_store, fixed_now):
    req = submit(leave_service, *week(date(2026, 3, 2)))

    decided = leave_service.decide(req.request_id, reviewer_id=ADMIN_ID, status=LeaveStatus.APPROVED)

    assert decided.status == LeaveStatus.APPROVED
    assert decided.reviewer_id == ADMIN_ID
    assert decided.reviewed_at == fixed_now
    assert decided.rejection_reason is None
    balance = leave_store.balance_for(EMPLOYEE_ID, SICK, 2026)
    assert (balance.used_days, balance.pending_days) == (5, 0)


def test_reject_returns_pending_days(leave_service, leave_store):
    req = submit(leave_service, *week(date(2026, 3, 2)))

    decided = leave_service.decide(
        req.request_id, reviewer_id=ADMIN_ID, status="rejected", rejection_reason="Peak season"
    )

    assert decided.status == LeaveStatus.REJECTED
    assert decided.rejection_reason == "Peak season"
    balance = leave_store.balance_for(EMPLOYEE_ID, SICK, 2026)
    assert (balance.used_days, balance.pending_days) == (0, 0)


def test_reject_requires_reason(leave_service, leave_store):
    req = submit(leave_service, *week(date(2026, 3, 2)))

    with pytest.raises(ValidationError):
        leave_service.decide(req.request_id, reviewer_id=ADMIN_ID, status="REJECTED", rejection_reason="  ")

    assert leave_store.requests[req.request_id].status == LeaveStatus.PENDING


@pytest.mark.parametrize("status", ["PENDING", "CANCELLED", "maybe"])
def test_decide_only_accepts_approve_or_reject(leave_service, status):
    req = submit(leave_service, *week(date(2026, 3, 2)))

    with pytest.raises(ValidationError):
        leave_service.decide(req.request_id, reviewer_id=ADMIN_ID, status=status)


def test_decide_unknown_request(leave_service):
    with pytest.raises(NotFoundError):
        leave_service.decide(404, reviewer_id=ADMIN_ID, status="APPROVED")


def test_second_decision_is_rejected(leave_service, leave_store):
    req = submit(leave_service, *week(date(2026, 3, 2)))
    leave_service.decide(req.request_id, reviewer_id=ADMIN_ID, status="APPROVED")

    with pytest.raises(AlreadyDecidedError) as exc_info:
        leave_service.decide(req.request_id, reviewer_id=ADMIN_ID, status="REJECTED", rejection_reason="Oops")

    assert exc_info.value.context["status"] == "APPROVED"
    balance = leave_store.balance_for(EMPLOYEE_ID, SICK, 2026)
    assert (balance.used_days, balance.pending_days) == (5, 0)


def test_decision_in_next_year_uses_reserved_year(leave_service, leave_store, fixed_now):
    req = submit(leave_service, *week(date(2026, 12, 28)))

    leave_service.decide(
        req.request_id,
        reviewer_id=ADMIN_ID,
        status="APPROVED",
        now=datetime(2027, 1, 4, 9, 0),
    )

    assert leave_store.balance_for(EMPLOYEE_ID, SICK, 2026).used_days == 5
    assert leave_store.balance_for(EMPLOYEE_ID, SICK, 2027) is None


def test_owner_can_cancel_pending_request(leave_service, leave_store):
    req = submit(leave_service, *week(date(2026, 3, 2)))

    cancelled = leave_service.cancel(req.request_id, caller_id=EMPLOYEE_ID, caller_role=Role.EMPLOYEE)

    assert cancelled.status == LeaveStatus.CANCELLED
    assert leave_store.balance_for(EMPLOYEE_ID, SICK, 2026).pending_days == 0


def test_admin_can_cancel_someone_elses_request(leave_service):
    req = submit(leave_service, *week(date(2026, 3, 2)))

    cancelled = leave_service.cancel(req.request_id, caller_id=ADMIN_ID, caller_role=Role.ADMIN)

    assert cancelled.status == LeaveStatus.CANCELLED


@pytest.mark.parametrize("role", [Role.EMPLOYEE, Role.MANAGER])
def test_non_owner_cannot_cancel(leave_service, leave_store, role):
    req = submit(leave_service, *week(date(2026, 3, 2)))

    with pytest.raises(ForbiddenError):
        leave_service.cancel(req.request_id, caller_id=99, caller_role=role)

    assert leave_store.requests[req.request_id].status == LeaveStatus.PENDING


def test_decided_request_cannot_be_cancelled(leave_service, leave_store):
    req = submit(leave_service, *week(date(2026, 3, 2)))
    leave_service.decide(req.request_id, reviewer_id=ADMIN_ID, status="APPROVED")

    with pytest.raises(NotPendingError):
        leave_service.cancel(req.request_id, caller_id=EMPLOYEE_ID, caller_role=Role.EMPLOYEE)

    assert leave_store.balance_for(EMPLOYEE_ID, SICK, 2026).used_days == 5


def test_cancel_unknown_request(leave_service):
    with pytest.raises(NotFoundError):
        leave_service.cancel(404, caller_id=EMPLOYEE_ID, caller_role=Role.EMPLOYEE)


def test_notifications_follow_the_workflow(leave_service, dispatcher):
    req = submit(leave_service, *week(date(2026, 3, 2)))
    leave_service.decide(req.request_id, reviewer_id=ADMIN_ID, status="REJECTED", rejection_reason="Audit week")

    assert dispatcher.titles() == [f"New Leave Request: #{EMPLOYEE_ID}", "Leave Request Rejected"]
    assert dispatcher.sent[0].audience.role == Role.ADMIN
    assert dispatcher.sent[1].audience.user_id == EMPLOYEE_ID
    assert "Reason: Audit week" in dispatcher.sent[1].body


def test_notification_failure_keeps_the_request(leave_store, ledger, clock):
    svc = LeaveRequestService(leave_store, ledger, NotificationPublisher(FailingDispatcher()), clock=clock)

    req = submit(svc, *week(date(2026, 3, 2)))

    assert leave_store.requests[req.request_id].status == LeaveStatus.PENDING


def test_employees_only_list_their_own_requests(leave_service):
    mine = submit(leave_service, *week(date(2026, 3, 2)))
    submit(leave_service, *week(date(2026, 3, 2)), user_id=8)

    listed = leave_service.list_requests(EMPLOYEE_ID, Role.EMPLOYEE, user_id=8)

    assert [r.request_id for r in listed] == [mine.request_id]


def test_managers_filter_by_user_status_and_window(leave_service):
    a = submit(leave_service, *week(date(2026, 3, 2)))
    b = submit(leave_service, *week(date(2026, 4, 6)))
    c = submit(leave_service, *week(date(2026, 3, 2)), user_id=8)
    leave_service.decide(b.request_id, reviewer_id=ADMIN_ID, status="APPROVED")

    everyone = leave_service.list_requests(ADMIN_ID, Role.MANAGER)
    assert {r.request_id for r in everyone} == {a.request_id, b.request_id, c.request_id}

    pending_of_employee = leave_service.list_requests(
        ADMIN_ID, Role.MANAGER, user_id=EMPLOYEE_ID, status=LeaveStatus.PENDING
    )
    assert [r.request_id for r in pending_of_employee] == [a.request_id]

    in_april = leave_service.list_requests(
        ADMIN_ID, Role.ADMIN, start_date=date(2026, 4, 1), end_date=date(2026, 4, 7)
    )
    assert [r.request_id for r in in_april] == [b.request_id]


def test_leave_types_list_and_create(leave_service):
    created = leave_service.create_leave_type(name="  Study Leave ", description="Exams")

    assert created.name == "Study Leave"
    assert created.color == "#123456"
    assert [lt.name for lt in leave_service.list_leave_types()] == ["Annual Leave", "Sick Leave", "Study Leave"]


def test_leave_type_requires_name(leave_service):
    with pytest.raises(ValidationError):
        leave_service.create_leave_type(name="")


def test_concurrent_submissions_never_overcommit(leave_service, leave_store):
    # 10 disjoint 5-day weeks against a 15-day balance: exactly three fit
    mondays = [date(2026, 3, 2) + timedelta(weeks=i) for i in range(10)]
    barrier = threading.Barrier(len(mondays))
    outcomes: list[str] = []
    guard = threading.Lock()

    def attempt(monday):
        barrier.wait()
        try:
            submit(leave_service, *week(monday))
            result = "ok"
        except InsufficientBalanceError:
            result = "insufficient"
        with guard:
            outcomes.append(result)

    threads = [threading.Thread(target=attempt, args=(m,)) for m in mondays]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert outcomes.count("ok") == 3
    assert outcomes.count("insufficient") == 7
    balance = leave_store.balance_for(EMPLOYEE_ID, SICK, 2026)
    assert (balance.used_days, balance.pending_days) == (0, 15)


def test_concurrent_duplicate_submissions_create_one_request(leave_service, leave_store):
    workers = 5
    barrier = threading.Barrier(workers)
    outcomes: list[str] = []
    guard = threading.Lock()

    def attempt():
        barrier.wait()
        try:
            submit(leave_service, *week(date(2026, 3, 2)))
            result = "ok"
        except OverlappingRequestError:
            result = "overlap"
        with guard:
            outcomes.append(result)

    threads = [threading.Thread(target=attempt) for _ in range(workers)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert outcomes.count("ok") == 1
    assert len(leave_store.requests) == 1
    assert leave_store.balance_for(EMPLOYEE_ID, SICK, 2026).pending_days == 5


def test_concurrent_decisions_apply_once(leave_service, leave_store):
    req = submit(leave_service, *week(date(2026, 3, 2)))
    barrier = threading.Barrier(4)
    decided: list[LeaveStatus] = []
    guard = threading.Lock()

    def attempt(status):
        barrier.wait()
        try:
            result = leave_service.decide(
                req.request_id, reviewer_id=ADMIN_ID, status=status, rejection_reason="Conflicting shift"
            )
        except AlreadyDecidedError:
            return
        with guard:
            decided.append(result.status)

    threads = [threading.Thread(target=attempt, args=(s,)) for s in ("APPROVED", "REJECTED") * 2]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(decided) == 1
    balance = leave_store.balance_for(EMPLOYEE_ID, SICK, 2026)
    assert balance.pending_days == 0
    assert balance.used_days == (5 if decided[0] == LeaveStatus.APPROVED else 0)
