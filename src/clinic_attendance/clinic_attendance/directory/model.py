from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Clinic:
    clinic_id: str
    name: str


@dataclass(frozen=True)
class Patient:
    patient_id: str
    clinic_id: str
    full_name: str


@dataclass(frozen=True)
class Professional:
    professional_id: str
    clinic_id: Optional[str]
    full_name: str
    password_hash: str
    signature_data: Optional[str] = None
    is_active: bool = True
