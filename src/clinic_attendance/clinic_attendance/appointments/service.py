from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Optional

from ..common.datetime_utils import Clock, SystemClock, day_bounds
from ..common.validators import require_non_empty, require_time_window
from ..core.constants import DEFAULT_ADHOC_APPOINTMENT_MINUTES
from ..core.enums import AppointmentStatus
from ..core.exceptions import ConfigurationError, InvalidTransitionError, NotFoundError, ValidationError
from ..directory.repository import DirectoryRepository
from ..timer.store import SessionTimerStore
from .model import Appointment
from .repository import AppointmentRepository
from .transitions import BOOKABLE_STATUSES, REOPENABLE_STATUSES, ensure_transition, is_terminal

logger = logging.getLogger(__name__)


class AttendanceSessionController:
    """Owns the appointment state machine and the one-arrived-per-professional rule.

    The rule is enforced optimistically: read the professional's ``arrived``
    appointments, complete them, then mark the new one. Every step is idempotent
    with respect to its target state, so a retry after a partial failure converges.
    """

    def __init__(
        self,
        appointments: AppointmentRepository,
        directory: DirectoryRepository,
        timer: Optional[SessionTimerStore] = None,
        *,
        clock: Optional[Clock] = None,
        adhoc_minutes: int = DEFAULT_ADHOC_APPOINTMENT_MINUTES,
    ):
        self._appointments = appointments
        self._directory = directory
        self._timer = timer
        self._clock = clock or SystemClock()
        self._adhoc_minutes = int(adhoc_minutes)

    def _resolve_clinic_id(self, professional_id: str) -> str:
        professional = self._directory.get_professional(professional_id)
        if not professional or not professional.clinic_id:
            raise ConfigurationError(
                f"Professional {professional_id} is not linked to a clinic; assign a clinic before attending patients"
            )
        if not self._directory.get_clinic(professional.clinic_id):
            raise ConfigurationError(f"Clinic {professional.clinic_id} could not be resolved")
        return professional.clinic_id

    def _get(self, appointment_id: str) -> Appointment:
        appt = self._appointments.get_by_id(appointment_id)
        if not appt:
            raise NotFoundError("Appointment not found")
        return appt

    def _set_status(self, appt: Appointment, status: AppointmentStatus) -> Appointment:
        now = self._clock.now()
        self._appointments.update_status(appointment_id=appt.appointment_id, status=status, updated_at=now)
        return self._appointments.get_by_id(appt.appointment_id) or appt

    def _complete_stale_sessions(self, professional_id: str) -> list[str]:
        repaired: list[str] = []
        for stale in self._appointments.find(professional_id=professional_id, statuses={AppointmentStatus.ARRIVED}):
            self._set_status(stale, AppointmentStatus.COMPLETED)
            repaired.append(stale.appointment_id)
            logger.warning(
                "Auto-completed stale arrived appointment",
                extra={
                    "appointment_id": stale.appointment_id,
                    "professional_id": professional_id,
                    "patient_id": stale.patient_id,
                },
            )
        return repaired

    def _resolve_or_create(self, *, clinic_id: str, patient_id: str, professional_id: str, now: datetime) -> Appointment:
        start, end = day_bounds(now.date())
        candidates = self._appointments.find(
            professional_id=professional_id,
            patient_id=patient_id,
            statuses=BOOKABLE_STATUSES,
            start_from=start,
            start_to=end,
        )
        if candidates:
            return candidates[0]

        appointment_id = self._appointments.create(
            clinic_id=clinic_id,
            patient_id=patient_id,
            professional_id=professional_id,
            start_time=now,
            end_time=now + timedelta(minutes=self._adhoc_minutes),
            status=AppointmentStatus.SCHEDULED,
            updated_at=now,
            service_id=None,
            notes="Ad-hoc attendance",
        )
        logger.info(
            "Created ad-hoc appointment",
            extra={"appointment_id": appointment_id, "patient_id": patient_id, "professional_id": professional_id},
        )
        return self._get(appointment_id)

    def start_session(self, patient_id: str, professional_id: str) -> Appointment:
        patient_id = require_non_empty(patient_id, "Patient")
        professional_id = require_non_empty(professional_id, "Professional")

        clinic_id = self._resolve_clinic_id(professional_id)
        now = self._clock.now()

        self._complete_stale_sessions(professional_id)

        target = self._resolve_or_create(
            clinic_id=clinic_id, patient_id=patient_id, professional_id=professional_id, now=now
        )
        ensure_transition(target.status, AppointmentStatus.ARRIVED)
        arrived = self._set_status(target, AppointmentStatus.ARRIVED)

        if self._timer is not None:
            self._timer.start(patient_id)

        logger.info(
            "Attendance session started",
            extra={"appointment_id": arrived.appointment_id, "patient_id": patient_id, "professional_id": professional_id},
        )
        return arrived

    def get_active_session(self, professional_id: str) -> Optional[Appointment]:
        arrived = self._appointments.find(professional_id=professional_id, statuses={AppointmentStatus.ARRIVED})
        return arrived[-1] if arrived else None

    def cancel(self, appointment_id: str, *, reason: Optional[str] = None) -> Appointment:
        appt = self._get(appointment_id)
        if is_terminal(appt.status):
            return appt

        ensure_transition(appt.status, AppointmentStatus.CANCELED)
        canceled = self._set_status(appt, AppointmentStatus.CANCELED)

        if appt.status == AppointmentStatus.ARRIVED and appt.patient_id and self._timer is not None:
            self._timer.clear(appt.patient_id)

        logger.info("Appointment canceled", extra={"appointment_id": appointment_id, "reason": reason})
        return canceled

    def mark_no_show(self, appointment_id: str) -> Appointment:
        appt = self._get(appointment_id)
        if appt.status not in BOOKABLE_STATUSES:
            raise InvalidTransitionError(f'Only scheduled or confirmed appointments can be marked no-show (is "{appt.status.value}")')
        return self._set_status(appt, AppointmentStatus.NO_SHOW)

    def confirm(self, appointment_id: str) -> Appointment:
        appt = self._get(appointment_id)
        if appt.status == AppointmentStatus.CONFIRMED:
            return appt
        if appt.status != AppointmentStatus.SCHEDULED:
            raise InvalidTransitionError(f'Only scheduled appointments can be confirmed (is "{appt.status.value}")')
        return self._set_status(appt, AppointmentStatus.CONFIRMED)

    def ensure_completable(self, appointment_id: str, *, patient_id: str, professional_id: str) -> Appointment:
        """Check, without writing, that ``complete`` would accept this appointment for this visit."""

        appt = self._get(require_non_empty(appointment_id, "Appointment"))
        if appt.patient_id != patient_id or appt.professional_id != professional_id:
            raise ValidationError("Appointment belongs to another patient or professional")
        if appt.status != AppointmentStatus.COMPLETED:
            ensure_transition(appt.status, AppointmentStatus.COMPLETED)
        return appt

    def complete(self, appointment_id: str) -> Appointment:
        appt = self._get(appointment_id)
        if appt.status == AppointmentStatus.COMPLETED:
            return appt
        ensure_transition(appt.status, AppointmentStatus.COMPLETED)
        return self._set_status(appt, AppointmentStatus.COMPLETED)

    def reopen(self, appointment_id: str, *, operator_id: str, reason: Optional[str] = None) -> Appointment:
        """Operator override: completed/no_show back to confirmed."""

        operator_id = require_non_empty(operator_id, "Operator")
        appt = self._get(appointment_id)
        if appt.status not in REOPENABLE_STATUSES:
            raise InvalidTransitionError(f'Only completed or no-show appointments can be reopened (is "{appt.status.value}")')

        reopened = self._set_status(appt, AppointmentStatus.CONFIRMED)
        logger.warning(
            "Appointment reopened by operator override",
            extra={
                "appointment_id": appointment_id,
                "operator_id": operator_id,
                "previous_status": appt.status.value,
                "reason": reason,
            },
        )
        return reopened

    def block(
        self,
        professional_id: str,
        *,
        start_time: datetime,
        end_time: datetime,
        notes: Optional[str] = None,
    ) -> Appointment:
        require_time_window(start_time, end_time)
        clinic_id = self._resolve_clinic_id(professional_id)

        appointment_id = self._appointments.create(
            clinic_id=clinic_id,
            patient_id=None,
            professional_id=professional_id,
            start_time=start_time,
            end_time=end_time,
            status=AppointmentStatus.BLOCKED,
            updated_at=self._clock.now(),
            notes=notes,
        )
        logger.info(
            "Agenda blocked",
            extra={"appointment_id": appointment_id, "professional_id": professional_id},
        )
        return self._get(appointment_id)

    def schedule_follow_up(
        self,
        *,
        patient_id: str,
        professional_id: str,
        start_time: datetime,
        duration_minutes: int,
        notes: Optional[str] = None,
    ) -> Appointment:
        clinic_id = self._resolve_clinic_id(professional_id)
        appointment_id = self._appointments.create(
            clinic_id=clinic_id,
            patient_id=patient_id,
            professional_id=professional_id,
            start_time=start_time,
            end_time=start_time + timedelta(minutes=int(duration_minutes)),
            status=AppointmentStatus.SCHEDULED,
            updated_at=self._clock.now(),
            notes=notes,
        )
        return self._get(appointment_id)
