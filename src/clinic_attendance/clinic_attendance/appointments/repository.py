from __future__ import annotations

from datetime import datetime
from typing import Collection, Optional, Protocol, Sequence

from ..core.enums import AppointmentStatus
from .model import Appointment


class AppointmentRepository(Protocol):
    def get_by_id(self, appointment_id: str) -> Optional[Appointment]:
        raise NotImplementedError

    def find(
        self,
        *,
        professional_id: Optional[str] = None,
        patient_id: Optional[str] = None,
        statuses: Optional[Collection[AppointmentStatus]] = None,
        start_from: Optional[datetime] = None,
        start_to: Optional[datetime] = None,
    ) -> Sequence[Appointment]:
        """Filtered listing ordered by ``start_time`` ascending; ``start_to`` is exclusive."""

        raise NotImplementedError

    def create(
        self,
        *,
        clinic_id: str,
        patient_id: Optional[str],
        professional_id: str,
        start_time: datetime,
        end_time: datetime,
        status: AppointmentStatus,
        updated_at: datetime,
        service_id: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> str:
        raise NotImplementedError

    def update_status(self, *, appointment_id: str, status: AppointmentStatus, updated_at: datetime) -> bool:
        """Last-write-wins status update. ``updated_at`` never moves backwards."""

        raise NotImplementedError
