from __future__ import annotations

from enum import Enum


class AppointmentStatus(str, Enum):
    """Appointment lifecycle states as stored in the database."""

    SCHEDULED = "scheduled"
    CONFIRMED = "confirmed"
    ARRIVED = "arrived"
    COMPLETED = "completed"
    NO_SHOW = "no_show"
    BLOCKED = "blocked"
    CANCELED = "canceled"


class ConsentStatus(str, Enum):
    """Consent record states. ``completed`` is immutable."""

    PENDING = "pending"
    SIGNED = "signed"
    COMPLETED = "completed"


class TemplateType(str, Enum):
    TERMO = "termo"
    POS = "pos"
