from __future__ import annotations

from typing import Optional, Protocol

from .model import Clinic, Patient, Professional


class DirectoryRepository(Protocol):
    """Read-only lookups owned by the CRUD side of the system."""

    def get_clinic(self, clinic_id: str) -> Optional[Clinic]:
        raise NotImplementedError

    def get_patient(self, patient_id: str) -> Optional[Patient]:
        raise NotImplementedError

    def get_professional(self, professional_id: str) -> Optional[Professional]:
        raise NotImplementedError
