"""Partition appointments into the four dashboard buckets.

The same rules back the ``/buckets`` endpoints and the Python client, so
they only rely on three attributes of a record: ``status``,
``appointment_date`` and ``pending_reschedule`` (with ``active`` and
``proposed_by``). Records are never reordered.
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from .appointment_status import AppointmentStatus, CLOSED_STATUSES, Role, UPCOMING_STATUSES

_UPCOMING = frozenset(s.value for s in UPCOMING_STATUSES)
_CLOSED = frozenset(s.value for s in CLOSED_STATUSES)


@dataclass
class AppointmentBuckets:
    pending: List[Any] = field(default_factory=list)
    upcoming: List[Any] = field(default_factory=list)
    completed: List[Any] = field(default_factory=list)
    cancelled: List[Any] = field(default_factory=list)

    def counts(self) -> Dict[str, int]:
        return {
            "pending": len(self.pending),
            "upcoming": len(self.upcoming),
            "completed": len(self.completed),
            "cancelled": len(self.cancelled),
        }


def has_patient_proposal(appointment: Any) -> bool:
    proposal = getattr(appointment, "pending_reschedule", None)
    if proposal is None:
        return False
    proposed_by = getattr(proposal, "proposed_by", None)
    return bool(getattr(proposal, "active", False)) and _value(proposed_by) == Role.PATIENT.value


def _value(raw: Any) -> Optional[str]:
    if raw is None:
        return None
    return raw.value if hasattr(raw, "value") else str(raw)


def _naive_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment
    return moment.astimezone(timezone.utc).replace(tzinfo=None)


def _is_after(when: Optional[datetime], now: datetime) -> bool:
    if when is None:
        return False
    # Naive values are UTC
    return _naive_utc(when) > _naive_utc(now)


def classify_appointments(appointments: Iterable[Any], now: Optional[datetime] = None) -> AppointmentBuckets:
    now = now or datetime.utcnow()
    buckets = AppointmentBuckets()
    for appointment in appointments:
        status = _value(getattr(appointment, "status", None))

        if status == AppointmentStatus.PENDING.value or has_patient_proposal(appointment):
            buckets.pending.append(appointment)
        elif status in _UPCOMING and _is_after(getattr(appointment, "appointment_date", None), now):
            buckets.upcoming.append(appointment)
        elif status == AppointmentStatus.COMPLETED.value:
            buckets.completed.append(appointment)
        elif status in _CLOSED:
            buckets.cancelled.append(appointment)
    return buckets
