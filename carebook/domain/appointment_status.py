from enum import Enum
from typing import Dict, FrozenSet, Union


class AppointmentStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    RESCHEDULED = "rescheduled"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    REJECTED = "rejected"


class Role(str, Enum):
    DOCTOR = "doctor"
    PATIENT = "patient"


class RescheduleDecision(str, Enum):
    APPROVED = "approved"
    REJECTED = "rejected"
    SUPERSEDED = "superseded"


class InvalidTransition(ValueError):
    def __init__(self, current: str, target: str):
        self.current = current
        self.target = target
        super().__init__(f"Cannot change appointment status from '{current}' to '{target}'")


S = AppointmentStatus

TRANSITIONS: Dict[AppointmentStatus, FrozenSet[AppointmentStatus]] = {
    S.PENDING: frozenset({S.CONFIRMED, S.REJECTED, S.CANCELLED, S.RESCHEDULED}),
    S.CONFIRMED: frozenset({S.COMPLETED, S.CANCELLED, S.RESCHEDULED}),
    S.RESCHEDULED: frozenset({S.COMPLETED, S.CANCELLED, S.RESCHEDULED}),
    S.COMPLETED: frozenset(),
    S.CANCELLED: frozenset(),
    S.REJECTED: frozenset(),
}

# Statuses that still occupy the doctor's calendar
LIVE_STATUSES: FrozenSet[AppointmentStatus] = frozenset({S.PENDING, S.CONFIRMED, S.RESCHEDULED})
RESCHEDULABLE_STATUSES = LIVE_STATUSES
UPCOMING_STATUSES: FrozenSet[AppointmentStatus] = frozenset({S.CONFIRMED, S.RESCHEDULED})
CLOSED_STATUSES: FrozenSet[AppointmentStatus] = frozenset({S.CANCELLED, S.REJECTED})
TERMINAL_STATUSES: FrozenSet[AppointmentStatus] = frozenset(s for s, targets in TRANSITIONS.items() if not targets)

# Status changes each role may request through the status endpoint
ROLE_STATUS_CHANGES: Dict[Role, FrozenSet[AppointmentStatus]] = {
    Role.PATIENT: frozenset({S.CANCELLED}),
    Role.DOCTOR: frozenset({S.CONFIRMED, S.REJECTED, S.CANCELLED, S.COMPLETED}),
}


def parse_status(value: Union[str, AppointmentStatus]) -> AppointmentStatus:
    try:
        return AppointmentStatus(value)
    except ValueError:
        valid = ", ".join(s.value for s in AppointmentStatus)
        raise ValueError(f"Invalid status '{value}'. Must be one of: {valid}")


def can_transition(current: Union[str, AppointmentStatus], target: Union[str, AppointmentStatus]) -> bool:
    return AppointmentStatus(target) in TRANSITIONS[AppointmentStatus(current)]


def ensure_transition(current: Union[str, AppointmentStatus], target: Union[str, AppointmentStatus]) -> AppointmentStatus:
    """Return ``target`` as an enum member or raise InvalidTransition."""
    current_status = parse_status(current)
    target_status = parse_status(target)
    if target_status not in TRANSITIONS[current_status]:
        raise InvalidTransition(current_status.value, target_status.value)
    return target_status


def counterparty(role: Union[str, Role]) -> Role:
    return Role.PATIENT if Role(role) is Role.DOCTOR else Role.DOCTOR
