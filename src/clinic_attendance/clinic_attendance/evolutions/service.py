from __future__ import annotations

import logging
from typing import Optional

from ..appointments.service import AttendanceSessionController
from ..common.datetime_utils import Clock, SystemClock
from ..common.validators import require_non_empty
from ..core.constants import DEFAULT_FOLLOW_UP_MINUTES
from ..core.enums import ConsentStatus
from ..core.exceptions import ConsentRequiredError, NotFoundError, SessionNotActiveError, TransientStoreError
from ..consents.drafts import ConsentDraftManager
from ..directory.repository import DirectoryRepository
from ..timer.store import SessionTimerStore
from .model import EvolutionRecord, EvolutionSaveResult, NoteDraft, VisitSummary
from .repository import EvolutionRepository

logger = logging.getLogger(__name__)

_SIGNED_OR_LATER = (ConsentStatus.SIGNED, ConsentStatus.COMPLETED)


class EvolutionFinalizer:
    """Saves the clinical note and closes the attendance session.

    Order matters: gates first (no writes), then the note insert, which is the
    durability boundary. The gates include the appointment itself, so the only
    failure tolerated after the insert is a transient store error.
    """

    def __init__(
        self,
        evolutions: EvolutionRepository,
        sessions: AttendanceSessionController,
        consents: ConsentDraftManager,
        timer: SessionTimerStore,
        directory: DirectoryRepository,
        *,
        clock: Optional[Clock] = None,
    ):
        self._evolutions = evolutions
        self._sessions = sessions
        self._consents = consents
        self._timer = timer
        self._directory = directory
        self._clock = clock or SystemClock()

    def _check_consent(self, *, patient_id: str, professional_id: str, procedure_name: str) -> None:
        template = self._consents.match(professional_id, procedure_name)
        if template is None:
            return

        record = self._consents.find_for_day(patient_id, template.template_id, statuses=_SIGNED_OR_LATER)
        if record is None:
            raise ConsentRequiredError(
                f'"{template.title}" consent must be signed by the patient before saving; '
                "obtain the signature first"
            )

    def save(
        self,
        patient_id: str,
        professional_id: str,
        note_draft: NoteDraft,
        appointment_id: str,
    ) -> EvolutionSaveResult:
        patient_id = require_non_empty(patient_id, "Patient")
        subject = require_non_empty(note_draft.subject, "Procedure")

        if not self._timer.is_active(patient_id):
            raise SessionNotActiveError("No active attendance session for this patient; start the attendance first")

        self._check_consent(patient_id=patient_id, professional_id=professional_id, procedure_name=subject)

        professional = self._directory.get_professional(professional_id)
        if not professional or not professional.clinic_id:
            raise NotFoundError("Professional not found")

        appointment = self._sessions.ensure_completable(
            appointment_id, patient_id=patient_id, professional_id=professional_id
        )
        appointment_id = appointment.appointment_id

        now = self._clock.now()
        evolution_id = self._evolutions.create(
            clinic_id=professional.clinic_id,
            patient_id=patient_id,
            professional_id=professional_id,
            appointment_id=appointment_id,
            date=note_draft.date or now,
            subject=subject,
            description=note_draft.description or "",
            attachments=dict(note_draft.attachments or {}),
            created_at=now,
        )
        record = self._evolutions.get_by_id(evolution_id)
        if record is None:
            raise NotFoundError("Evolution record vanished after insert")
        logger.info(
            "Evolution saved",
            extra={"evolution_id": evolution_id, "patient_id": patient_id, "appointment_id": appointment_id},
        )

        follow_up = None
        follow_up_failed = False
        if note_draft.return_date is not None:
            try:
                follow_up = self._sessions.schedule_follow_up(
                    patient_id=patient_id,
                    professional_id=professional_id,
                    start_time=note_draft.return_date,
                    duration_minutes=note_draft.return_duration_minutes or DEFAULT_FOLLOW_UP_MINUTES,
                    notes=f"Return: {subject}",
                )
            except TransientStoreError:
                follow_up_failed = True
                logger.exception(
                    "Follow-up scheduling failed after the note was saved",
                    extra={"evolution_id": evolution_id, "patient_id": patient_id},
                )

        appointment_completed = self.retry_completion(appointment_id, evolution_id=evolution_id)

        self._timer.clear(patient_id)

        return EvolutionSaveResult(
            record=record,
            appointment_completed=appointment_completed,
            follow_up=follow_up,
            follow_up_failed=follow_up_failed,
        )

    def retry_completion(self, appointment_id: str, *, evolution_id: Optional[str] = None) -> bool:
        """Complete the appointment; returns False on a transient store failure."""

        try:
            self._sessions.complete(appointment_id)
        except TransientStoreError:
            logger.exception(
                "Appointment completion failed; the note is saved and completion can be retried",
                extra={"appointment_id": appointment_id, "evolution_id": evolution_id},
            )
            return False
        return True

    def invalidate(self, evolution_id: str, *, reason: Optional[str] = None) -> EvolutionRecord:
        record = self._evolutions.get_by_id(evolution_id)
        if not record:
            raise NotFoundError("Evolution record not found")
        if record.invalidated_at is not None:
            return record

        self._evolutions.invalidate(evolution_id=evolution_id, invalidated_at=self._clock.now(), reason=reason)
        logger.warning("Evolution record invalidated", extra={"evolution_id": evolution_id, "reason": reason})
        return self._evolutions.get_by_id(evolution_id) or record

    def history(self, patient_id: str) -> list[EvolutionRecord]:
        return list(self._evolutions.list_for_patient(patient_id))

    def visit_summary(self, patient_id: str) -> VisitSummary:
        valid = [r for r in self.history(patient_id) if r.is_valid]
        if not valid:
            return VisitSummary(total_visits=0, last_visit=None)
        return VisitSummary(total_visits=len(valid), last_visit=max(r.date for r in valid).date())
