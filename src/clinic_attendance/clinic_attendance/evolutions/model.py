from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Mapping, Optional

from ..appointments.model import Appointment


@dataclass(frozen=True)
class EvolutionRecord:
    """Clinical note for one session. Only ``invalidated_at`` changes after creation."""

    evolution_id: str
    clinic_id: str
    patient_id: str
    professional_id: str
    appointment_id: Optional[str]
    date: datetime
    subject: str
    description: str
    attachments: Mapping[str, Any] = field(default_factory=dict)
    created_at: Optional[datetime] = None
    invalidated_at: Optional[datetime] = None
    invalidation_reason: Optional[str] = None

    @property
    def is_valid(self) -> bool:
        return self.invalidated_at is None


@dataclass(frozen=True)
class NoteDraft:
    """What the professional typed; ``subject`` is the procedure performed."""

    subject: str
    description: str = ""
    attachments: Mapping[str, Any] = field(default_factory=dict)
    date: Optional[datetime] = None
    return_date: Optional[datetime] = None
    return_duration_minutes: Optional[int] = None


@dataclass(frozen=True)
class EvolutionSaveResult:
    record: EvolutionRecord
    appointment_completed: bool
    follow_up: Optional[Appointment] = None
    follow_up_failed: bool = False


@dataclass(frozen=True)
class VisitSummary:
    total_visits: int
    last_visit: Optional[date]
