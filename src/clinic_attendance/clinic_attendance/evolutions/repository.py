from __future__ import annotations

from datetime import datetime
from typing import Any, Mapping, Optional, Protocol, Sequence

from .model import EvolutionRecord


class EvolutionRepository(Protocol):
    def get_by_id(self, evolution_id: str) -> Optional[EvolutionRecord]:
        raise NotImplementedError

    def list_for_patient(self, patient_id: str) -> Sequence[EvolutionRecord]:
        """Newest first by ``date``, including invalidated records."""

        raise NotImplementedError

    def create(
        self,
        *,
        clinic_id: str,
        patient_id: str,
        professional_id: str,
        appointment_id: Optional[str],
        date: datetime,
        subject: str,
        description: str,
        attachments: Mapping[str, Any],
        created_at: datetime,
    ) -> str:
        raise NotImplementedError

    def invalidate(self, *, evolution_id: str, invalidated_at: datetime, reason: Optional[str] = None) -> bool:
        """Soft delete. Returns False when already invalidated or missing."""

        raise NotImplementedError
