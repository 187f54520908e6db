from __future__ import annotations

import io

from flask import Flask, jsonify, render_template, request, send_file

from ..common.http import api_view, json_body, to_json
from ..common.validators import require_non_empty
from ..core.enums import ConsentStatus
from ..core.exceptions import NotFoundError
from ..container import Container
from ..identity.provider import ProfessionalCredential


def register(app: Flask, container: Container) -> None:
    def _consent_payload(record):
        data = to_json(record)
        # Signature images are reported as presence flags only.
        data["patient_signature"] = bool(record.patient_signature)
        data["professional_signature_snapshot"] = bool(record.professional_signature_snapshot)
        return data

    @app.route("/api/consents/require", methods=["POST"], endpoint="api_consent_require")
    @api_view
    def api_consent_require():
        data = json_body()
        requirement = container.consent_drafts.require_consent(
            str(data.get("patient_id") or ""),
            require_non_empty(str(data.get("professional_id") or ""), "Professional"),
            require_non_empty(str(data.get("procedure_name") or ""), "Procedure"),
        )
        body = {"success": True, "status": requirement.status, "required": requirement.required}
        if requirement.template is not None:
            body["template"] = {"template_id": requirement.template.template_id, "title": requirement.template.title}
        if requirement.record is not None:
            body["consent"] = _consent_payload(requirement.record)
            body["sign_link"] = container.consent_sync.sign_link(requirement.record.consent_id)
        return jsonify(body), 200

    @app.route("/api/consents/<consent_id>", methods=["GET"], endpoint="api_consent_status")
    @api_view
    def api_consent_status(consent_id: str):
        record = container.consent_sync.status(consent_id)
        return jsonify({"success": True, "status": record.status.value, "consent": _consent_payload(record)}), 200

    @app.route("/api/consents/<consent_id>/link", methods=["GET"], endpoint="api_consent_link")
    @api_view
    def api_consent_link(consent_id: str):
        container.consent_sync.status(consent_id)
        return jsonify({"success": True, "url": container.consent_sync.sign_link(consent_id)}), 200

    @app.route("/api/consents/<consent_id>/qr.png", methods=["GET"], endpoint="api_consent_qr")
    @api_view
    def api_consent_qr(consent_id: str):
        container.consent_sync.status(consent_id)
        png = container.consent_sync.sign_qr_png(consent_id)
        return send_file(io.BytesIO(png), mimetype="image/png")

    @app.route("/api/consents/<consent_id>/finalize", methods=["POST"], endpoint="api_consent_finalize")
    @api_view
    def api_consent_finalize(consent_id: str):
        data = json_body()
        credential = ProfessionalCredential(
            professional_id=str(data.get("professional_id") or ""),
            secret=str(data.get("password") or ""),
        )
        record = container.consent_sync.finalize(consent_id, credential)
        return jsonify({"success": True, "status": record.status.value, "consent": _consent_payload(record)}), 200

    # Patient device. Reached by scanning the QR code; no login session.
    @app.route("/sign", methods=["GET"], endpoint="sign_page")
    def sign_page():
        consent_id = (request.args.get("cid") or "").strip()
        record = container.consents_repo.get_by_id(consent_id) if consent_id else None
        if record is None:
            return render_template("sign.html", record=None, error="Consent not found"), 404
        return render_template(
            "sign.html",
            record=record,
            already_signed=record.status != ConsentStatus.PENDING,
            error=None,
        )

    @app.route("/sign", methods=["POST"], endpoint="sign_submit")
    @api_view
    def sign_submit():
        consent_id = (request.args.get("cid") or "").strip()
        if not consent_id:
            raise NotFoundError("Consent not found")
        data = json_body()
        record = container.consent_sync.submit_signature(consent_id, str(data.get("signature") or ""))
        return jsonify({"success": True, "status": record.status.value, "message": "Signature received"}), 200
