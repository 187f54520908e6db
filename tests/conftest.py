from __future__ import annotations

import base64
import io
from datetime import datetime

import pytest
from PIL import Image
from werkzeug.security import generate_password_hash

from src.clinic_attendance.clinic_attendance.consents.feed import LocalChangeFeed
from src.clinic_attendance.clinic_attendance.consents.model import ConsentTemplate
from src.clinic_attendance.clinic_attendance.container import wire_services
from src.clinic_attendance.clinic_attendance.directory.model import Clinic, Patient, Professional
from src.clinic_attendance.clinic_attendance.timer.store import InMemoryTimerStore

from tests.fakes import (
    PASSWORD,
    PROFESSIONAL_SIGNATURE,
    FakeClock,
    InMemoryAppointments,
    InMemoryConsents,
    InMemoryDirectory,
    InMemoryEvolutions,
    InMemoryTemplates,
)

BOTOX_CONTENT = (
    "Eu, {PACIENTE_NOME}, CPF {PACIENTE_CPF}, autorizo {PROFISSIONAL_NOME} a realizar "
    "{PROCEDIMENTO} na {CLINICA_NOME} em {DATA_ATUAL}. {OBSERVACAO}"
)


@pytest.fixture
def clock():
    return FakeClock(datetime(2025, 3, 10, 9, 0))


@pytest.fixture
def directory():
    d = InMemoryDirectory()
    d.clinics["CL1"] = Clinic(clinic_id="CL1", name="Clínica Bella")
    d.patients["P1"] = Patient(patient_id="P1", clinic_id="CL1", full_name="Maria Silva")
    d.patients["P2"] = Patient(patient_id="P2", clinic_id="CL1", full_name="Ana Souza")
    d.professionals["D1"] = Professional(
        professional_id="D1",
        clinic_id="CL1",
        full_name="Dra. Paula Lima",
        password_hash=generate_password_hash(PASSWORD),
        signature_data=PROFESSIONAL_SIGNATURE,
    )
    d.professionals["D2"] = Professional(
        professional_id="D2",
        clinic_id="CL1",
        full_name="Dr. Carlos Reis",
        password_hash=generate_password_hash("outra"),
    )
    d.professionals["ORPHAN"] = Professional(
        professional_id="ORPHAN",
        clinic_id=None,
        full_name="Sem Clínica",
        password_hash=generate_password_hash("x"),
    )
    return d


@pytest.fixture
def botox_template():
    return ConsentTemplate(
        template_id="T-BOTOX",
        clinic_id="CL1",
        title="Botox",
        content=BOTOX_CONTENT,
        procedure_keywords=("toxina",),
    )


@pytest.fixture
def templates(botox_template):
    return InMemoryTemplates(
        [
            botox_template,
            ConsentTemplate(
                template_id="T-FILL",
                clinic_id="CL1",
                title="Preenchimento",
                content="Termo de preenchimento para {PACIENTE}.",
                procedure_keywords=("ácido hialurônico",),
            ),
        ]
    )


@pytest.fixture
def feed():
    return LocalChangeFeed()


@pytest.fixture
def appointments():
    return InMemoryAppointments()


@pytest.fixture
def consents(feed):
    return InMemoryConsents(feed)


@pytest.fixture
def evolutions():
    return InMemoryEvolutions()


@pytest.fixture
def timer(clock):
    return InMemoryTimerStore(clock)


@pytest.fixture
def container(clock, feed, timer, appointments, directory, templates, consents, evolutions):
    c = wire_services(
        clock=clock,
        change_feed=feed,
        timer_store=timer,
        appointments_repo=appointments,
        directory_repo=directory,
        templates_repo=templates,
        consents_repo=consents,
        evolutions_repo=evolutions,
        public_base_url="http://clinic.test/",
        consent_poll_seconds=0.05,
        reauth_timeout_seconds=2.0,
    )
    return c


@pytest.fixture
def png_signature() -> str:
    buf = io.BytesIO()
    Image.new("RGB", (8, 4), "white").save(buf, format="PNG")
    return "data:image/png;base64," + base64.b64encode(buf.getvalue()).decode("ascii")
