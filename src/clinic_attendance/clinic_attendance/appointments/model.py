from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.enums import AppointmentStatus


@dataclass(frozen=True)
class Appointment:
    """Domain entity: one slot on a professional's agenda."""

    appointment_id: str
    clinic_id: str
    patient_id: Optional[str]
    professional_id: str
    start_time: datetime
    end_time: datetime
    status: AppointmentStatus
    updated_at: datetime
    service_id: Optional[str] = None
    notes: Optional[str] = None
