from __future__ import annotations

from ..core.enums import AppointmentStatus
from ..core.exceptions import InvalidTransitionError

S = AppointmentStatus

# Forward transitions only. Reopen (completed|no_show -> confirmed) goes through
# AttendanceSessionController.reopen.
ALLOWED_TRANSITIONS: dict[AppointmentStatus, frozenset[AppointmentStatus]] = {
    S.SCHEDULED: frozenset({S.CONFIRMED, S.ARRIVED, S.NO_SHOW, S.CANCELED}),
    S.CONFIRMED: frozenset({S.ARRIVED, S.NO_SHOW, S.CANCELED}),
    S.ARRIVED: frozenset({S.COMPLETED, S.CANCELED}),
    S.BLOCKED: frozenset({S.CANCELED}),
    S.COMPLETED: frozenset(),
    S.NO_SHOW: frozenset(),
    S.CANCELED: frozenset(),
}

TERMINAL_STATUSES = frozenset({S.COMPLETED, S.NO_SHOW, S.CANCELED})
REOPENABLE_STATUSES = frozenset({S.COMPLETED, S.NO_SHOW})
BOOKABLE_STATUSES = frozenset({S.SCHEDULED, S.CONFIRMED})


def is_terminal(status: AppointmentStatus) -> bool:
    return status in TERMINAL_STATUSES


def ensure_transition(current: AppointmentStatus, target: AppointmentStatus) -> None:
    allowed = ALLOWED_TRANSITIONS.get(current, frozenset())
    if target not in allowed:
        if not allowed:
            raise InvalidTransitionError(f'Status "{current.value}" is terminal and cannot change to "{target.value}"')
        valid = ", ".join(sorted(s.value for s in allowed))
        raise InvalidTransitionError(
            f"Transition not allowed: {current.value} -> {target.value}. Valid transitions: {valid}"
        )
