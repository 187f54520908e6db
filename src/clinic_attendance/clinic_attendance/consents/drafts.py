from __future__ import annotations

import logging
from typing import Optional

from ..common.datetime_utils import Clock, SystemClock, day_bounds
from ..common.validators import require_non_empty
from ..core.enums import ConsentStatus
from ..core.exceptions import ConfigurationError, NotFoundError
from ..directory.repository import DirectoryRepository
from .matcher import match_template
from .model import ConsentRecord, ConsentRequirement, ConsentTemplate
from .placeholders import build_placeholder_values, render_template_content
from .repository import ConsentRepository, ConsentTemplateRepository

logger = logging.getLogger(__name__)

NO_CONSENT = "none"
_OPEN_STATUSES = (ConsentStatus.PENDING, ConsentStatus.SIGNED)


class ConsentDraftManager:
    """Idempotent creation and lookup of the day's consent record.

    Dedup key: (patient, template, clinic-local calendar day). The day comes from
    the injected clock, which runs in the clinic's time zone.
    """

    def __init__(
        self,
        consents: ConsentRepository,
        templates: ConsentTemplateRepository,
        directory: DirectoryRepository,
        *,
        clock: Optional[Clock] = None,
    ):
        self._consents = consents
        self._templates = templates
        self._directory = directory
        self._clock = clock or SystemClock()

    def find_for_day(self, patient_id: str, template_id: Optional[str], *, statuses=None) -> Optional[ConsentRecord]:
        start, end = day_bounds(self._clock.now().date())
        rows = self._consents.find_for_day(
            patient_id=patient_id,
            template_id=template_id,
            day_start=start,
            day_end=end,
            statuses=statuses,
        )
        return rows[0] if rows else None

    def templates_for_professional(self, professional_id: str) -> list[ConsentTemplate]:
        professional = self._directory.get_professional(professional_id)
        if not professional or not professional.clinic_id:
            raise ConfigurationError(f"Professional {professional_id} is not linked to a clinic")
        return list(self._templates.list_for_clinic(professional.clinic_id))

    def match(self, professional_id: str, procedure_name: str) -> Optional[ConsentTemplate]:
        return match_template(procedure_name, self.templates_for_professional(professional_id))

    def ensure_pending(
        self,
        patient_id: str,
        professional_id: str,
        template: ConsentTemplate,
        procedure_name: str,
    ) -> ConsentRecord:
        existing = self.find_for_day(patient_id, template.template_id, statuses=_OPEN_STATUSES)
        if existing:
            return existing

        patient = self._directory.get_patient(patient_id)
        if not patient:
            raise NotFoundError("Patient not found")
        professional = self._directory.get_professional(professional_id)
        if not professional:
            raise NotFoundError("Professional not found")
        clinic = self._directory.get_clinic(template.clinic_id)
        if not clinic:
            raise ConfigurationError(f"Clinic {template.clinic_id} could not be resolved")

        now = self._clock.now()
        snapshot = render_template_content(
            template.content,
            build_placeholder_values(
                patient_name=patient.full_name,
                professional_name=professional.full_name,
                clinic_name=clinic.name,
                procedure_name=procedure_name,
                today=now.date(),
            ),
        )
        consent_id = self._consents.create_pending(
            clinic_id=template.clinic_id,
            patient_id=patient_id,
            professional_id=professional_id,
            template_id=template.template_id,
            procedure_name=procedure_name,
            content_snapshot=snapshot,
            created_at=now,
        )
        logger.info(
            "Created pending consent",
            extra={"consent_id": consent_id, "patient_id": patient_id, "template_id": template.template_id},
        )

        record = self._consents.get_by_id(consent_id)
        if not record:
            raise NotFoundError("Consent record vanished after insert")
        return record

    def require_consent(self, patient_id: str, professional_id: str, procedure_name: str) -> ConsentRequirement:
        patient_id = require_non_empty(patient_id, "Patient")
        template = self.match(professional_id, procedure_name)
        if template is None:
            return ConsentRequirement(status=NO_CONSENT)

        done = self.find_for_day(patient_id, template.template_id, statuses=(ConsentStatus.COMPLETED,))
        if done:
            return ConsentRequirement(status=done.status.value, template=template, record=done)

        record = self.ensure_pending(patient_id, professional_id, template, procedure_name.strip())
        return ConsentRequirement(status=record.status.value, template=template, record=record)
