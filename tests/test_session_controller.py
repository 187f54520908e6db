from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from src.clinic_attendance.clinic_attendance.core.enums import AppointmentStatus
from src.clinic_attendance.clinic_attendance.core.exceptions import (
    ConfigurationError,
    InvalidTransitionError,
    NotFoundError,
    TransientStoreError,
    ValidationError,
)


def _book(appointments, clock, *, patient_id="P1", professional_id="D1", status=AppointmentStatus.SCHEDULED, hour=10):
    start = clock.now().replace(hour=hour, minute=0)
    return appointments.add(
        clinic_id="CL1",
        patient_id=patient_id,
        professional_id=professional_id,
        start_time=start,
        end_time=start + timedelta(minutes=30),
        status=status,
        updated_at=clock.now(),
    )


def test_two_consecutive_starts_leave_exactly_one_arrived(container, appointments, timer):
    first = container.session_controller.start_session("P1", "D1")
    second = container.session_controller.start_session("P1", "D1")

    arrived = appointments.arrived_for("D1")
    assert [a.appointment_id for a in arrived] == [second.appointment_id]
    assert appointments.get_by_id(first.appointment_id).status == AppointmentStatus.COMPLETED
    assert first.appointment_id != second.appointment_id
    assert timer.is_active("P1")


def test_start_uses_earliest_booked_appointment_of_the_day(container, appointments, clock):
    later = _book(appointments, clock, hour=15)
    earlier = _book(appointments, clock, hour=11, status=AppointmentStatus.CONFIRMED)
    _book(appointments, clock, patient_id="P1", professional_id="D2", hour=8)

    started = container.session_controller.start_session("P1", "D1")

    assert started.appointment_id == earlier.appointment_id
    assert started.status == AppointmentStatus.ARRIVED
    assert appointments.get_by_id(later.appointment_id).status == AppointmentStatus.SCHEDULED


def test_start_creates_adhoc_appointment_when_none_booked(container, appointments, clock):
    started = container.session_controller.start_session("P1", "D1")

    assert started.status == AppointmentStatus.ARRIVED
    assert started.start_time == clock.now()
    assert started.end_time - started.start_time == timedelta(minutes=30)
    assert started.clinic_id == "CL1"


def test_stale_arrived_for_another_patient_is_completed(container, appointments, clock):
    stale = _book(appointments, clock, patient_id="P2", status=AppointmentStatus.ARRIVED, hour=8)

    started = container.session_controller.start_session("P1", "D1")

    assert appointments.get_by_id(stale.appointment_id).status == AppointmentStatus.COMPLETED
    assert [a.appointment_id for a in appointments.arrived_for("D1")] == [started.appointment_id]


def test_other_professionals_sessions_are_untouched(container, appointments, clock):
    other = _book(appointments, clock, patient_id="P2", professional_id="D2", status=AppointmentStatus.ARRIVED)

    container.session_controller.start_session("P1", "D1")

    assert appointments.get_by_id(other.appointment_id).status == AppointmentStatus.ARRIVED


def test_unresolved_clinic_raises_before_any_write(container, appointments):
    with pytest.raises(ConfigurationError):
        container.session_controller.start_session("P1", "ORPHAN")
    assert appointments.writes == 0
    assert appointments.rows == {}


def test_missing_patient_id_is_rejected(container):
    with pytest.raises(ValidationError):
        container.session_controller.start_session("  ", "D1")


def test_retry_after_partial_failure_converges(container, appointments, clock):
    stale = _book(appointments, clock, patient_id="P2", status=AppointmentStatus.ARRIVED, hour=8)
    target = _book(appointments, clock, hour=10)
    appointments.fail_status_once(AppointmentStatus.ARRIVED)

    with pytest.raises(TransientStoreError):
        container.session_controller.start_session("P1", "D1")
    assert appointments.get_by_id(stale.appointment_id).status == AppointmentStatus.COMPLETED
    assert appointments.arrived_for("D1") == []

    started = container.session_controller.start_session("P1", "D1")
    assert started.appointment_id == target.appointment_id
    assert len(appointments.arrived_for("D1")) == 1


def test_updated_at_never_moves_backwards(container, appointments, clock):
    appt = _book(appointments, clock)
    before = appointments.get_by_id(appt.appointment_id).updated_at
    clock.advance(hours=-1)

    container.session_controller.confirm(appt.appointment_id)

    assert appointments.get_by_id(appt.appointment_id).updated_at > before


def test_cancel_arrived_clears_timer(container, timer):
    started = container.session_controller.start_session("P1", "D1")
    assert timer.is_active("P1")

    canceled = container.session_controller.cancel(started.appointment_id, reason="patient left")

    assert canceled.status == AppointmentStatus.CANCELED
    assert not timer.is_active("P1")


def test_cancel_terminal_is_a_noop(container, appointments, clock):
    done = _book(appointments, clock, status=AppointmentStatus.COMPLETED)
    writes = appointments.writes

    assert container.session_controller.cancel(done.appointment_id).status == AppointmentStatus.COMPLETED
    assert appointments.writes == writes


def test_no_show_only_from_booked_states(container, appointments, clock):
    booked = _book(appointments, clock)
    assert container.session_controller.mark_no_show(booked.appointment_id).status == AppointmentStatus.NO_SHOW

    arrived = _book(appointments, clock, patient_id="P2", status=AppointmentStatus.ARRIVED)
    with pytest.raises(InvalidTransitionError):
        container.session_controller.mark_no_show(arrived.appointment_id)


def test_confirm_is_idempotent(container, appointments, clock):
    appt = _book(appointments, clock)
    container.session_controller.confirm(appt.appointment_id)
    writes = appointments.writes

    again = container.session_controller.confirm(appt.appointment_id)

    assert again.status == AppointmentStatus.CONFIRMED
    assert appointments.writes == writes


def test_reopen_completed_goes_back_to_confirmed(container, appointments, clock):
    done = _book(appointments, clock, status=AppointmentStatus.COMPLETED)

    reopened = container.session_controller.reopen(done.appointment_id, operator_id="ADMIN", reason="saved by mistake")

    assert reopened.status == AppointmentStatus.CONFIRMED


def test_reopen_requires_terminal_state_and_operator(container, appointments, clock):
    appt = _book(appointments, clock)
    with pytest.raises(InvalidTransitionError):
        container.session_controller.reopen(appt.appointment_id, operator_id="ADMIN")
    with pytest.raises(ValidationError):
        container.session_controller.reopen(appt.appointment_id, operator_id="")


def test_block_creates_patientless_slot(container):
    start = datetime(2025, 3, 10, 12, 0)
    blocked = container.session_controller.block("D1", start_time=start, end_time=start + timedelta(hours=1), notes="Almoço")

    assert blocked.status == AppointmentStatus.BLOCKED
    assert blocked.patient_id is None
    assert blocked.notes == "Almoço"


def test_block_rejects_empty_window(container):
    start = datetime(2025, 3, 10, 12, 0)
    with pytest.raises(ValidationError):
        container.session_controller.block("D1", start_time=start, end_time=start)


def test_unknown_appointment(container):
    with pytest.raises(NotFoundError):
        container.session_controller.confirm("missing")


def test_get_active_session(container):
    assert container.session_controller.get_active_session("D1") is None
    started = container.session_controller.start_session("P1", "D1")
    assert container.session_controller.get_active_session("D1").appointment_id == started.appointment_id
