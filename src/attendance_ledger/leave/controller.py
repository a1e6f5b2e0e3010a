from __future__ import annotations

from typing import Optional

from flask import Flask, jsonify, request

from ..common.auth import current_caller, login_required, roles_required
from ..common.datetime_utils import parse_iso_date
from ..common.serialization import to_json
from ..common.validators import require_int, require_non_negative_int
from ..core.enums import LeaveStatus, Role
from ..core.exceptions import ValidationError
from ..container import Container


def _optional_status(value: Optional[str]) -> Optional[LeaveStatus]:
    if not value:
        return None
    try:
        return LeaveStatus(value.upper())
    except ValueError:
        raise ValidationError(f"Unknown leave status: {value}")


def _optional_int(value, field_name: str, *, non_negative: bool = False) -> Optional[int]:
    if value is None or value == "":
        return None
    if non_negative:
        return require_non_negative_int(value, field_name)
    return require_int(value, field_name)


def register(app: Flask, container: Container) -> None:
    @app.route("/api/leave-requests", methods=["GET"], endpoint="leave_requests_list")
    @login_required
    def list_leave_requests():
        caller = current_caller()
        start = request.args.get("start_date")
        end = request.args.get("end_date")

        requests_ = container.leave_service.list_requests(
            caller.user_id,
            caller.role,
            status=_optional_status(request.args.get("status")),
            start_date=parse_iso_date(start) if start else None,
            end_date=parse_iso_date(end) if end else None,
            user_id=_optional_int(request.args.get("user_id"), "user_id"),
        )
        return jsonify(to_json(requests_))

    @app.route("/api/leave-requests", methods=["POST"], endpoint="leave_requests_submit")
    @login_required
    def submit_leave_request():
        caller = current_caller()
        payload = request.get_json(silent=True) or {}

        for field in ("leave_type_id", "start_date", "end_date", "reason"):
            if payload.get(field) in (None, ""):
                raise ValidationError("Missing required fields", field=field)

        leave_request = container.leave_service.submit(
            caller.user_id,
            leave_type_id=payload["leave_type_id"],
            start_date=parse_iso_date(str(payload["start_date"])),
            end_date=parse_iso_date(str(payload["end_date"])),
            reason=str(payload["reason"]),
            custom_leave_type_name=payload.get("custom_leave_type_name"),
        )
        return jsonify(to_json(leave_request)), 201

    @app.route("/api/leave-requests/<int:request_id>/decision", methods=["PUT"], endpoint="leave_requests_decide")
    @roles_required(Role.ADMIN, Role.MANAGER)
    def decide_leave_request(request_id: int):
        caller = current_caller()
        payload = request.get_json(silent=True) or {}

        decided = container.leave_service.decide(
            request_id,
            reviewer_id=caller.user_id,
            status=str(payload.get("status") or ""),
            rejection_reason=payload.get("rejection_reason"),
        )
        return jsonify(to_json(decided))

    @app.route("/api/leave-requests/<int:request_id>", methods=["DELETE"], endpoint="leave_requests_cancel")
    @login_required
    def cancel_leave_request(request_id: int):
        caller = current_caller()
        container.leave_service.cancel(request_id, caller_id=caller.user_id, caller_role=caller.role)
        return jsonify({"message": "Leave request cancelled successfully"})

    @app.route("/api/leave-balances", methods=["GET"], endpoint="leave_balances_list")
    @login_required
    def list_leave_balances():
        caller = current_caller()
        year = _optional_int(request.args.get("year"), "year") or container.clock().year

        user_id = caller.user_id
        if caller.role != Role.EMPLOYEE:
            user_id = _optional_int(request.args.get("user_id"), "user_id") or caller.user_id

        balances = container.leave_ledger.list_balances(user_id=user_id, year=year)
        return jsonify(to_json(balances))

    @app.route("/api/leave-balances/init", methods=["POST"], endpoint="leave_balances_init")
    @roles_required(Role.ADMIN)
    def initialize_leave_balances():
        payload = request.get_json(silent=True) or {}
        user_id = require_int(payload.get("user_id"), "user_id")
        year = _optional_int(payload.get("year"), "year") or container.clock().year

        balances = container.leave_ledger.initialize_year(user_id=user_id, year=year)
        return jsonify(to_json(balances)), 201

    @app.route("/api/leave-balances/<int:balance_id>", methods=["PUT"], endpoint="leave_balances_adjust")
    @roles_required(Role.ADMIN)
    def adjust_leave_balance(balance_id: int):
        payload = request.get_json(silent=True) or {}

        balance = container.leave_ledger.adjust(
            balance_id,
            total_days=_optional_int(payload.get("total_days"), "total_days", non_negative=True),
            used_days=_optional_int(payload.get("used_days"), "used_days", non_negative=True),
            pending_days=_optional_int(payload.get("pending_days"), "pending_days", non_negative=True),
        )
        return jsonify(to_json(balance))

    @app.route("/api/leave-types", methods=["GET"], endpoint="leave_types_list")
    @login_required
    def list_leave_types():
        return jsonify(to_json(container.leave_service.list_leave_types()))

    @app.route("/api/leave-types", methods=["POST"], endpoint="leave_types_create")
    @roles_required(Role.ADMIN)
    def create_leave_type():
        payload = request.get_json(silent=True) or {}
        leave_type = container.leave_service.create_leave_type(
            name=payload.get("name"),
            description=payload.get("description"),
            color=payload.get("color"),
        )
        return jsonify(to_json(leave_type)), 201
