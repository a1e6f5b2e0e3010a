from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.auth import current_caller, login_required
from ..common.serialization import to_json
from ..common.validators import require_float, require_int
from ..core.constants import DEFAULT_HISTORY_LIMIT
from ..container import Container


def register(app: Flask, container: Container) -> None:
    @app.route("/api/attendance", methods=["GET"], endpoint="attendance_history")
    @login_required
    def attendance_history():
        caller = current_caller()
        limit = require_int(request.args.get("limit", DEFAULT_HISTORY_LIMIT), "limit")
        records = container.attendance_service.history(caller.user_id, limit=max(limit, 1))
        return jsonify(to_json(records))

    @app.route("/api/attendance/check-in", methods=["POST"], endpoint="attendance_check_in")
    @login_required
    def check_in():
        caller = current_caller()
        payload = request.get_json(silent=True) or {}

        record = container.attendance_service.check_in(
            caller.user_id,
            location_id=require_int(payload.get("location_id"), "location_id"),
            latitude=require_float(payload.get("latitude"), "latitude"),
            longitude=require_float(payload.get("longitude"), "longitude"),
        )
        return jsonify(to_json(record)), 201

    @app.route("/api/attendance/check-out", methods=["POST"], endpoint="attendance_check_out")
    @login_required
    def check_out():
        caller = current_caller()
        payload = request.get_json(silent=True) or {}

        record = container.attendance_service.check_out(
            caller.user_id,
            latitude=require_float(payload.get("latitude"), "latitude"),
            longitude=require_float(payload.get("longitude"), "longitude"),
        )
        return jsonify(to_json(record))
