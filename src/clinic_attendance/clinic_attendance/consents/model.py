from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.enums import ConsentStatus, TemplateType


@dataclass(frozen=True)
class ConsentTemplate:
    template_id: str
    clinic_id: str
    title: str
    content: str
    procedure_keywords: tuple[str, ...] = ()
    template_type: TemplateType = TemplateType.TERMO


@dataclass(frozen=True)
class ConsentRecord:
    """Per-visit legal agreement; ``content_snapshot`` is frozen at creation."""

    consent_id: str
    clinic_id: str
    patient_id: str
    professional_id: str
    template_id: Optional[str]
    procedure_name: str
    content_snapshot: str
    status: ConsentStatus
    created_at: datetime
    patient_signature: Optional[str] = None
    professional_signature_snapshot: Optional[str] = None
    professional_validated_with_password: bool = False
    signed_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


@dataclass(frozen=True)
class ConsentRequirement:
    """Answer to "does this procedure need a consent, and where is it?"."""

    status: str
    template: Optional[ConsentTemplate] = None
    record: Optional[ConsentRecord] = None

    @property
    def required(self) -> bool:
        return self.template is not None
