from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Optional

import pytest

from carebook.domain.appointment_status import (
    AppointmentStatus,
    InvalidTransition,
    TERMINAL_STATUSES,
    can_transition,
    counterparty,
    ensure_transition,
    parse_status,
)
from carebook.domain.buckets import classify_appointments, has_patient_proposal
from carebook.domain.medication_schedule import (
    MealRelation,
    ScheduleRow,
    build_schedule_rows,
    compact_schedule,
    validate_frequency,
)

NOW = datetime(2024, 6, 1, 12, 0)


@dataclass
class Proposal:
    active: bool = False
    proposed_by: Optional[str] = None


@dataclass
class Appt:
    id: int
    status: str
    appointment_date: datetime
    pending_reschedule: Proposal = field(default_factory=Proposal)


def test_terminal_statuses_have_no_exits():
    assert TERMINAL_STATUSES == {AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED, AppointmentStatus.REJECTED}
    for status in TERMINAL_STATUSES:
        for target in AppointmentStatus:
            assert not can_transition(status, target)


def test_pending_can_be_confirmed_or_rejected():
    assert ensure_transition("pending", "confirmed") is AppointmentStatus.CONFIRMED
    assert ensure_transition("pending", "rejected") is AppointmentStatus.REJECTED


def test_pending_cannot_be_completed():
    with pytest.raises(InvalidTransition) as exc:
        ensure_transition("pending", "completed")
    assert exc.value.current == "pending"
    assert exc.value.target == "completed"


def test_confirmed_cannot_be_rejected():
    assert not can_transition("confirmed", "rejected")
    assert can_transition("confirmed", "completed")
    assert can_transition("rescheduled", "rescheduled")


def test_parse_status_rejects_unknown():
    with pytest.raises(ValueError):
        parse_status("archived")


def test_counterparty():
    assert counterparty("doctor").value == "patient"
    assert counterparty("patient").value == "doctor"


def test_classifier_example_scenario():
    future = NOW + timedelta(days=2)
    past = NOW - timedelta(days=2)
    appts = [
        Appt(1, "pending", future),
        Appt(2, "confirmed", future),
        Appt(3, "confirmed", past),
        Appt(4, "completed", past),
        Appt(5, "cancelled", future),
        Appt(6, "rejected", past),
        Appt(7, "confirmed", future, Proposal(active=True, proposed_by="patient")),
        Appt(8, "rescheduled", future, Proposal(active=True, proposed_by="doctor")),
    ]

    buckets = classify_appointments(appts, now=NOW)

    assert [a.id for a in buckets.pending] == [1, 7]
    assert [a.id for a in buckets.upcoming] == [2, 8]
    assert [a.id for a in buckets.completed] == [4]
    assert [a.id for a in buckets.cancelled] == [5, 6]
    assert buckets.counts() == {"pending": 2, "upcoming": 2, "completed": 1, "cancelled": 2}


def test_classifier_puts_each_record_in_at_most_one_bucket():
    future = NOW + timedelta(hours=1)
    appts = [Appt(i, s.value, future) for i, s in enumerate(AppointmentStatus)]
    buckets = classify_appointments(appts, now=NOW)
    seen = [a.id for bucket in (buckets.pending, buckets.upcoming, buckets.completed, buckets.cancelled) for a in bucket]
    assert len(seen) == len(set(seen))


def test_past_confirmed_is_in_no_bucket():
    buckets = classify_appointments([Appt(1, "confirmed", NOW - timedelta(minutes=1))], now=NOW)
    assert sum(buckets.counts().values()) == 0


def test_classifier_handles_aware_datetimes():
    aware_future = (NOW + timedelta(hours=3)).replace(tzinfo=timezone.utc)
    buckets = classify_appointments([Appt(1, "confirmed", aware_future)], now=NOW)
    assert [a.id for a in buckets.upcoming] == [1]


def test_inactive_patient_proposal_is_ignored():
    appt = Appt(1, "confirmed", NOW + timedelta(days=1), Proposal(active=False, proposed_by="patient"))
    assert not has_patient_proposal(appt)


def test_validate_frequency_bounds():
    assert validate_frequency("3") == 3
    for bad in (0, 7, "x", 2.5, None):
        with pytest.raises(ValueError):
            validate_frequency(bad)


def test_build_schedule_rows_pads_and_truncates():
    existing = [
        {"time": "08:00", "mealRelation": "post-breakfast", "quantity": 1},
        {"time": "20:00", "meal_relation": "post-dinner", "quantity": "1"},
    ]
    rows = build_schedule_rows(3, existing)
    assert len(rows) == 3
    assert rows[0] == ScheduleRow("08:00", MealRelation.POST_BREAKFAST, "1")
    assert rows[2].is_blank

    shorter = build_schedule_rows(1, existing)
    assert len(shorter) == 1
    assert len(existing) == 2


def test_build_schedule_rows_is_repeatable():
    existing = [
        {"time": "08:00", "mealRelation": "pre-breakfast", "quantity": 1},
        {"time": "13:00", "mealRelation": "post-lunch", "quantity": 2},
        {"time": "21:00", "mealRelation": "post-dinner", "quantity": 1},
    ]
    for n in range(1, 7):
        first = build_schedule_rows(n, existing)
        second = build_schedule_rows(n, existing)
        assert first == second
        assert len(first) == len(second) == n
        # feeding the derived rows back in is stable too
        assert build_schedule_rows(n, first) == first


def test_compact_schedule_drops_blank_rows():
    rows = [{"time": "08:00"}, {}, {"quantity": "2"}, {"time": "22:00"}]
    compacted = compact_schedule(rows, 3)
    assert [r.time for r in compacted] == ["08:00", None]
    assert compacted[1].quantity == "2"


def test_unknown_meal_relation_is_rejected():
    with pytest.raises(ValueError):
        build_schedule_rows(1, [{"time": "08:00", "mealRelation": "brunch"}])
