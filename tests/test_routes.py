from __future__ import annotations

import pytest

from src.clinic_attendance.clinic_attendance.main import create_app

from tests.fakes import PASSWORD


@pytest.fixture
def client(monkeypatch, container):
    monkeypatch.setenv("APP_ENV", "testing")
    app = create_app(container=container)
    return app.test_client()


def test_session_start_and_elapsed(client, clock):
    res = client.post("/api/sessions/start", json={"patient_id": "P1", "professional_id": "D1"})
    assert res.status_code == 200
    body = res.get_json()
    assert body["success"] is True
    assert body["appointment"]["status"] == "arrived"

    clock.advance(minutes=3, seconds=9)
    res = client.get("/api/sessions/P1/elapsed")
    assert res.get_json() == {"success": True, "active": True, "elapsed_seconds": 189, "display": "03:09"}


def test_validation_and_configuration_errors(client):
    res = client.post("/api/sessions/start", json={})
    assert res.status_code == 400
    assert res.get_json()["error"] == "validation_error"

    res = client.post("/api/sessions/start", json={"patient_id": "P1", "professional_id": "ORPHAN"})
    assert res.status_code == 500
    assert res.get_json()["error"] == "configuration_error"


def test_appointment_transitions(client):
    appt_id = client.post("/api/sessions/start", json={"patient_id": "P1", "professional_id": "D1"}).get_json()[
        "appointment"
    ]["appointment_id"]

    res = client.post(f"/api/appointments/{appt_id}/no-show")
    assert res.status_code == 422
    assert res.get_json()["error"] == "invalid_transition"

    res = client.post(f"/api/appointments/{appt_id}/cancel", json={"reason": "left"})
    assert res.get_json()["appointment"]["status"] == "canceled"

    res = client.post("/api/appointments/missing/confirm")
    assert res.status_code == 404

    res = client.post(
        "/api/appointments/block",
        json={"professional_id": "D1", "start_time": "2025-03-10T12:00", "end_time": "2025-03-10T13:00"},
    )
    assert res.get_json()["appointment"]["status"] == "blocked"


def test_consent_handshake_over_http(client, png_signature):
    client.post("/api/sessions/start", json={"patient_id": "P1", "professional_id": "D1"})

    res = client.post(
        "/api/consents/require",
        json={"patient_id": "P1", "professional_id": "D1", "procedure_name": "Aplicação de Botox"},
    )
    body = res.get_json()
    assert body["status"] == "pending"
    assert body["template"]["title"] == "Botox"
    consent_id = body["consent"]["consent_id"]
    assert body["sign_link"].endswith(f"/sign?cid={consent_id}")

    res = client.post(f"/api/consents/{consent_id}/finalize", json={"professional_id": "D1", "password": PASSWORD})
    assert res.status_code == 409
    assert res.get_json()["error"] == "not_ready"

    page = client.get(f"/sign?cid={consent_id}")
    assert page.status_code == 200
    assert "MARIA SILVA" in page.get_data(as_text=True)

    res = client.post(f"/sign?cid={consent_id}", json={"signature": png_signature})
    assert res.get_json()["status"] == "signed"

    res = client.post(f"/api/consents/{consent_id}/finalize", json={"professional_id": "D1", "password": "errada"})
    assert res.status_code == 401

    res = client.post(f"/api/consents/{consent_id}/finalize", json={"professional_id": "D1", "password": PASSWORD})
    body = res.get_json()
    assert body["status"] == "completed"
    assert body["consent"]["professional_signature_snapshot"] is True

    res = client.get(f"/api/consents/{consent_id}/qr.png")
    assert res.status_code == 200
    assert res.mimetype == "image/png"


def test_unknown_consent_routes(client):
    assert client.get("/api/consents/nope").status_code == 404
    assert client.get("/sign?cid=nope").status_code == 404
    assert client.post("/sign", json={"signature": "x"}).status_code == 404


def test_evolution_save_is_gated_then_succeeds(client, png_signature):
    appt_id = client.post("/api/sessions/start", json={"patient_id": "P1", "professional_id": "D1"}).get_json()[
        "appointment"
    ]["appointment_id"]
    consent_id = client.post(
        "/api/consents/require",
        json={"patient_id": "P1", "professional_id": "D1", "procedure_name": "Botox"},
    ).get_json()["consent"]["consent_id"]

    note = {
        "patient_id": "P1",
        "professional_id": "D1",
        "appointment_id": appt_id,
        "subject": "Botox",
        "description": "Aplicação em glabela.",
        "return_date": "2025-03-24T10:00",
    }
    res = client.post("/api/evolutions", json=note)
    assert res.status_code == 409
    assert res.get_json()["error"] == "consent_required"

    client.post(f"/sign?cid={consent_id}", json={"signature": png_signature})
    res = client.post("/api/evolutions", json=note)
    assert res.status_code == 201
    body = res.get_json()
    assert body["appointment_completed"] is True
    assert body["follow_up"]["start_time"] == "2025-03-24T10:00:00"

    res = client.post("/api/evolutions", json=note)
    assert res.status_code == 409
    assert res.get_json()["error"] == "session_not_active"

    res = client.get("/api/patients/P1/evolutions")
    assert res.get_json()["total_visits"] == 1
    assert res.get_json()["last_visit"] == "10/03/2025"

    evolution_id = body["evolution"]["evolution_id"]
    res = client.post(f"/api/evolutions/{evolution_id}/invalidate", json={"reason": "duplicate"})
    assert res.get_json()["evolution"]["invalidation_reason"] == "duplicate"
