from __future__ import annotations

from flask import Flask, jsonify

from ..common.datetime_utils import parse_iso_datetime
from ..common.http import api_view, json_body, to_json
from ..common.validators import require_non_empty
from ..core.exceptions import ValidationError
from ..container import Container
from ..timer.store import format_elapsed


def register(app: Flask, container: Container) -> None:
    def _parse_when(value, field_name: str):
        text = require_non_empty(value, field_name)
        try:
            return parse_iso_datetime(text)
        except ValueError:
            raise ValidationError(f"{field_name} must be an ISO date-time (YYYY-MM-DDTHH:MM)")

    @app.route("/api/sessions/start", methods=["POST"], endpoint="api_session_start")
    @api_view
    def api_session_start():
        data = json_body()
        appt = container.session_controller.start_session(
            str(data.get("patient_id") or ""),
            str(data.get("professional_id") or ""),
        )
        return jsonify({"success": True, "appointment": to_json(appt)}), 200

    @app.route("/api/sessions/<patient_id>/elapsed", methods=["GET"], endpoint="api_session_elapsed")
    @api_view
    def api_session_elapsed(patient_id: str):
        elapsed = container.timer_store.elapsed(patient_id)
        return jsonify({
            "success": True,
            "active": container.timer_store.is_active(patient_id),
            "elapsed_seconds": int(elapsed.total_seconds()),
            "display": format_elapsed(elapsed),
        }), 200

    @app.route("/api/appointments/<appointment_id>/cancel", methods=["POST"], endpoint="api_appointment_cancel")
    @api_view
    def api_appointment_cancel(appointment_id: str):
        data = json_body()
        appt = container.session_controller.cancel(appointment_id, reason=data.get("reason") or None)
        return jsonify({"success": True, "appointment": to_json(appt)}), 200

    @app.route("/api/appointments/<appointment_id>/no-show", methods=["POST"], endpoint="api_appointment_no_show")
    @api_view
    def api_appointment_no_show(appointment_id: str):
        appt = container.session_controller.mark_no_show(appointment_id)
        return jsonify({"success": True, "appointment": to_json(appt)}), 200

    @app.route("/api/appointments/<appointment_id>/confirm", methods=["POST"], endpoint="api_appointment_confirm")
    @api_view
    def api_appointment_confirm(appointment_id: str):
        appt = container.session_controller.confirm(appointment_id)
        return jsonify({"success": True, "appointment": to_json(appt)}), 200

    @app.route("/api/appointments/<appointment_id>/reopen", methods=["POST"], endpoint="api_appointment_reopen")
    @api_view
    def api_appointment_reopen(appointment_id: str):
        data = json_body()
        appt = container.session_controller.reopen(
            appointment_id,
            operator_id=str(data.get("operator_id") or ""),
            reason=data.get("reason") or None,
        )
        return jsonify({"success": True, "appointment": to_json(appt)}), 200

    @app.route("/api/appointments/block", methods=["POST"], endpoint="api_appointment_block")
    @api_view
    def api_appointment_block():
        data = json_body()
        appt = container.session_controller.block(
            require_non_empty(str(data.get("professional_id") or ""), "Professional"),
            start_time=_parse_when(data.get("start_time"), "Start time"),
            end_time=_parse_when(data.get("end_time"), "End time"),
            notes=data.get("notes") or None,
        )
        return jsonify({"success": True, "appointment": to_json(appt)}), 200
