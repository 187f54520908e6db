from __future__ import annotations

from flask import Flask, jsonify

from ..common.datetime_utils import format_br_date, parse_iso_datetime
from ..common.http import api_view, json_body, to_json
from ..common.validators import require_non_empty
from ..core.exceptions import ValidationError
from ..container import Container
from .model import NoteDraft


def register(app: Flask, container: Container) -> None:
    def _optional_datetime(value, field_name: str):
        if value in (None, ""):
            return None
        try:
            return parse_iso_datetime(str(value))
        except ValueError:
            raise ValidationError(f"{field_name} must be an ISO date-time (YYYY-MM-DDTHH:MM)")

    def _optional_minutes(value):
        if value in (None, ""):
            return None
        try:
            minutes = int(value)
        except (TypeError, ValueError):
            raise ValidationError("Return duration must be a whole number of minutes")
        if minutes <= 0:
            raise ValidationError("Return duration must be positive")
        return minutes

    @app.route("/api/evolutions", methods=["POST"], endpoint="api_evolution_save")
    @api_view
    def api_evolution_save():
        data = json_body()
        attachments = data.get("attachments") or {}
        if not isinstance(attachments, dict):
            raise ValidationError("Attachments must be an object")

        draft = NoteDraft(
            subject=str(data.get("subject") or ""),
            description=str(data.get("description") or ""),
            attachments=attachments,
            date=_optional_datetime(data.get("date"), "Date"),
            return_date=_optional_datetime(data.get("return_date"), "Return date"),
            return_duration_minutes=_optional_minutes(data.get("return_duration_minutes")),
        )
        result = container.evolution_finalizer.save(
            str(data.get("patient_id") or ""),
            require_non_empty(str(data.get("professional_id") or ""), "Professional"),
            draft,
            require_non_empty(str(data.get("appointment_id") or ""), "Appointment"),
        )
        return jsonify({
            "success": True,
            "evolution": to_json(result.record),
            "appointment_completed": result.appointment_completed,
            "follow_up": to_json(result.follow_up) if result.follow_up else None,
            "follow_up_failed": result.follow_up_failed,
        }), 201

    @app.route("/api/appointments/<appointment_id>/complete", methods=["POST"], endpoint="api_appointment_complete")
    @api_view
    def api_appointment_complete(appointment_id: str):
        ok = container.evolution_finalizer.retry_completion(appointment_id)
        if not ok:
            return jsonify({
                "success": False,
                "error": "store_unavailable",
                "message": "Could not complete the appointment yet; try again",
            }), 503
        return jsonify({"success": True}), 200

    @app.route("/api/evolutions/<evolution_id>/invalidate", methods=["POST"], endpoint="api_evolution_invalidate")
    @api_view
    def api_evolution_invalidate(evolution_id: str):
        data = json_body()
        record = container.evolution_finalizer.invalidate(evolution_id, reason=data.get("reason") or None)
        return jsonify({"success": True, "evolution": to_json(record)}), 200

    @app.route("/api/patients/<patient_id>/evolutions", methods=["GET"], endpoint="api_patient_evolutions")
    @api_view
    def api_patient_evolutions(patient_id: str):
        summary = container.evolution_finalizer.visit_summary(patient_id)
        history = container.evolution_finalizer.history(patient_id)
        return jsonify({
            "success": True,
            "total_visits": summary.total_visits,
            "last_visit": format_br_date(summary.last_visit) if summary.last_visit else None,
            "evolutions": [to_json(r) for r in history],
        }), 200
