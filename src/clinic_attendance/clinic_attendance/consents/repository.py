from __future__ import annotations

from datetime import datetime
from typing import Collection, Optional, Protocol, Sequence

from ..core.enums import ConsentStatus
from .model import ConsentRecord, ConsentTemplate


class ConsentTemplateRepository(Protocol):
    def list_for_clinic(self, clinic_id: str) -> Sequence[ConsentTemplate]:
        """Active (not soft-deleted) templates in creation order."""

        raise NotImplementedError


class ConsentRepository(Protocol):
    def get_by_id(self, consent_id: str) -> Optional[ConsentRecord]:
        raise NotImplementedError

    def find_for_day(
        self,
        *,
        patient_id: str,
        template_id: Optional[str],
        day_start: datetime,
        day_end: datetime,
        statuses: Optional[Collection[ConsentStatus]] = None,
    ) -> Sequence[ConsentRecord]:
        """Records created in ``[day_start, day_end)``, newest first."""

        raise NotImplementedError

    def create_pending(
        self,
        *,
        clinic_id: str,
        patient_id: str,
        professional_id: str,
        template_id: Optional[str],
        procedure_name: str,
        content_snapshot: str,
        created_at: datetime,
    ) -> str:
        raise NotImplementedError

    def mark_signed(self, *, consent_id: str, patient_signature: str, signed_at: datetime) -> bool:
        """pending -> signed. Returns False when the record was not pending."""

        raise NotImplementedError

    def mark_completed(
        self,
        *,
        consent_id: str,
        professional_signature_snapshot: Optional[str],
        completed_at: datetime,
    ) -> bool:
        """signed -> completed. Returns False when the record was not signed."""

        raise NotImplementedError
