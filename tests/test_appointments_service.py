from datetime import timedelta

import pytest
from fastapi import HTTPException

from carebook.application.services.appointments_service import AppointmentsService

from fakes import NOW, FakeApptRepo, FakeSlotsRepo, clock

DOCTOR = "doc-user"
PATIENT = "pat-user"


def make_service(**kwargs):
    repo = FakeApptRepo()
    slots = FakeSlotsRepo()
    svc = AppointmentsService(repo=repo, slots=slots, clock=clock, **kwargs)
    return svc, repo, slots


def book_on_new_slot(svc, slots, days=1):
    slot = slots.add(1, NOW + timedelta(days=days))
    return svc.book_slot(PATIENT, slot.id, "Persistent headache"), slot


def confirmed(svc, slots, days=1):
    appt, slot = book_on_new_slot(svc, slots, days)
    return svc.update_status(DOCTOR, "doctor", appt.id, "confirmed"), slot


def test_book_slot_success():
    svc, repo, slots = make_service()
    appt, slot = book_on_new_slot(svc, slots)
    assert appt.id == 1
    assert appt.status == "pending"
    assert appt.appointment_date == slot.date_time
    assert appt.consultation_fee == 500.0
    assert slot.is_booked and slot.appointment_id == appt.id and slot.booked_by == 1


def test_book_slot_twice_is_refused():
    svc, repo, slots = make_service()
    _, slot = book_on_new_slot(svc, slots)
    with pytest.raises(HTTPException) as exc:
        svc.book_slot("pat-user-2", slot.id, "Checkup")
    assert exc.value.status_code == 400


def test_book_slot_auto_confirm():
    svc, repo, slots = make_service(auto_confirm_slot_bookings=True)
    appt, _ = book_on_new_slot(svc, slots)
    assert appt.status == "confirmed"


def test_book_requires_reason():
    svc, repo, slots = make_service()
    slot = slots.add(1, NOW + timedelta(days=1))
    with pytest.raises(HTTPException) as exc:
        svc.book_slot(PATIENT, slot.id, "   ")
    assert exc.value.status_code == 400
    assert not slot.is_booked


def test_book_without_slot_or_doctor_is_400():
    svc, _, _ = make_service()
    with pytest.raises(HTTPException) as exc:
        svc.book(PATIENT, "Fever")
    assert exc.value.status_code == 400


def test_request_custom_in_past_is_400():
    svc, _, _ = make_service()
    with pytest.raises(HTTPException) as exc:
        svc.request_custom(PATIENT, 1, (NOW - timedelta(hours=1)).isoformat(), "Fever")
    assert exc.value.status_code == 400


def test_request_custom_accepts_z_suffix():
    svc, _, _ = make_service()
    appt = svc.request_custom(PATIENT, 1, "2030-01-05T10:00:00Z", "Fever")
    assert appt.status == "pending"
    assert appt.slot_id is None
    assert appt.appointment_date.isoformat() == "2030-01-05T10:00:00"


def test_doctor_confirms_then_completes():
    svc, _, slots = make_service()
    appt, _ = confirmed(svc, slots)
    assert appt.status == "confirmed"
    done = svc.update_status(DOCTOR, "doctor", appt.id, "completed", doctor_notes="Rest", diagnosis="Migraine")
    assert done.status == "completed"
    assert done.diagnosis == "Migraine"


def test_patient_can_only_cancel():
    svc, _, slots = make_service()
    appt, _ = book_on_new_slot(svc, slots)
    with pytest.raises(HTTPException) as exc:
        svc.update_status(PATIENT, "patient", appt.id, "confirmed")
    assert exc.value.status_code == 403


def test_confirmed_cannot_be_rejected():
    svc, _, slots = make_service()
    appt, _ = confirmed(svc, slots)
    with pytest.raises(HTTPException) as exc:
        svc.update_status(DOCTOR, "doctor", appt.id, "rejected")
    assert exc.value.status_code == 400


def test_cancel_releases_slot():
    svc, _, slots = make_service()
    appt, slot = book_on_new_slot(svc, slots)
    out = svc.update_status(PATIENT, "patient", appt.id, "cancelled", reason="Feeling better")
    assert out.status == "cancelled"
    assert out.cancelled_by == "patient"
    assert out.cancelled_at == NOW
    assert not slot.is_booked and slot.is_available


def test_reject_sets_default_reason():
    svc, _, slots = make_service()
    appt, slot = book_on_new_slot(svc, slots)
    out = svc.update_status(DOCTOR, "doctor", appt.id, "rejected")
    assert out.rejection_reason == "No reason provided"
    assert not slot.is_booked


def test_other_doctor_cannot_touch_appointment():
    svc, _, slots = make_service()
    appt, _ = book_on_new_slot(svc, slots)
    with pytest.raises(HTTPException) as exc:
        svc.update_status("doc-user-2", "doctor", appt.id, "confirmed")
    assert exc.value.status_code == 403


def test_get_for_non_participant_is_404():
    svc, _, slots = make_service()
    appt, _ = book_on_new_slot(svc, slots)
    assert svc.get_for_user(PATIENT, "patient", appt.id).id == appt.id
    with pytest.raises(HTTPException) as exc:
        svc.get_for_user("pat-user-2", "patient", appt.id)
    assert exc.value.status_code == 404


def test_patient_proposal_approved_by_doctor():
    svc, _, slots = make_service()
    appt, _ = confirmed(svc, slots)
    original = appt.appointment_date
    new_time = NOW + timedelta(days=3)

    proposed = svc.propose_reschedule(PATIENT, "patient", appt.id, proposed_date_time=new_time.isoformat(), reason="Travel")
    assert proposed.pending_reschedule.active
    assert proposed.pending_reschedule.proposed_by == "patient"
    assert proposed.status == "confirmed"

    out = svc.decide_reschedule(DOCTOR, "doctor", appt.id, "approved")
    assert out.status == "rescheduled"
    assert out.appointment_date == new_time
    assert out.reason_for_visit == "Persistent headache"
    assert not out.pending_reschedule.active
    assert out.pending_reschedule.decision == "approved"
    assert out.pending_reschedule.decided_by == "doctor"
    assert out.rescheduled_from.original_date == original
    assert out.rescheduled_from.rescheduled_by == "patient"


def test_proposal_to_slot_moves_the_booking():
    svc, _, slots = make_service()
    appt, old_slot = confirmed(svc, slots)
    new_slot = slots.add(1, NOW + timedelta(days=4))

    svc.propose_reschedule(DOCTOR, "doctor", appt.id, proposed_slot_id=new_slot.id)
    out = svc.decide_reschedule(PATIENT, "patient", appt.id, "approved")

    assert out.slot_id == new_slot.id
    assert out.appointment_date == new_slot.date_time
    assert new_slot.is_booked and new_slot.appointment_id == appt.id
    assert not old_slot.is_booked


def test_proposer_cannot_decide():
    svc, _, slots = make_service()
    appt, _ = confirmed(svc, slots)
    svc.propose_reschedule(DOCTOR, "doctor", appt.id, proposed_date_time=NOW + timedelta(days=2, hours=1))
    with pytest.raises(HTTPException) as exc:
        svc.decide_reschedule(DOCTOR, "doctor", appt.id, "approved")
    assert exc.value.status_code == 403


def test_only_one_active_proposal():
    svc, _, slots = make_service()
    appt, _ = confirmed(svc, slots)
    svc.propose_reschedule(PATIENT, "patient", appt.id, proposed_date_time=NOW + timedelta(days=2))
    with pytest.raises(HTTPException) as exc:
        svc.propose_reschedule(DOCTOR, "doctor", appt.id, proposed_date_time=NOW + timedelta(days=5))
    assert exc.value.status_code == 409


def test_rejected_proposal_keeps_the_date():
    svc, _, slots = make_service()
    appt, _ = confirmed(svc, slots)
    original = appt.appointment_date
    svc.propose_reschedule(PATIENT, "patient", appt.id, proposed_date_time=NOW + timedelta(days=2))
    out = svc.decide_reschedule(DOCTOR, "doctor", appt.id, "rejected")
    assert out.status == "confirmed"
    assert out.appointment_date == original
    assert out.pending_reschedule.decision == "rejected"
    assert out.pending_reschedule.decision_reason == "Reschedule rejected"


def test_cancel_supersedes_active_proposal():
    svc, _, slots = make_service()
    appt, _ = confirmed(svc, slots)
    svc.propose_reschedule(PATIENT, "patient", appt.id, proposed_date_time=NOW + timedelta(days=2))
    out = svc.update_status(DOCTOR, "doctor", appt.id, "cancelled")
    assert not out.pending_reschedule.active
    assert out.pending_reschedule.decision == "superseded"


def test_approval_conflicting_with_other_booking_is_409():
    svc, repo, slots = make_service()
    first, _ = confirmed(svc, slots, days=1)
    second, _ = confirmed(svc, slots, days=2)
    svc.propose_reschedule(PATIENT, "patient", first.id, proposed_date_time=second.appointment_date)
    with pytest.raises(HTTPException) as exc:
        svc.decide_reschedule(DOCTOR, "doctor", first.id, "approved")
    assert exc.value.status_code == 409
    assert repo.get(first.id).pending_reschedule.active


def test_invalid_decision_is_400():
    svc, _, slots = make_service()
    appt, _ = confirmed(svc, slots)
    with pytest.raises(HTTPException) as exc:
        svc.decide_reschedule(DOCTOR, "doctor", appt.id, "maybe")
    assert exc.value.status_code == 400


def test_patient_reschedules_to_slot_directly():
    svc, _, slots = make_service()
    appt, old_slot = book_on_new_slot(svc, slots)
    new_slot = slots.add(1, NOW + timedelta(days=6))
    out = svc.reschedule_to_slot(PATIENT, appt.id, new_slot.id, reason="Clash")
    assert out.status == "rescheduled"
    assert out.slot_id == new_slot.id
    assert not old_slot.is_booked


def test_review_only_after_completion():
    svc, repo, slots = make_service()
    appt, _ = confirmed(svc, slots)
    with pytest.raises(HTTPException):
        svc.review(PATIENT, appt.id, 5)
    svc.update_status(DOCTOR, "doctor", appt.id, "completed")
    out = svc.review(PATIENT, appt.id, 4, "Helpful")
    assert out.rating == 4
    assert repo.ratings[1] == (4.0, 1)


def test_buckets_for_patient():
    svc, _, slots = make_service()
    pending, _ = book_on_new_slot(svc, slots, days=1)
    upcoming, _ = confirmed(svc, slots, days=2)
    buckets = svc.buckets_for(PATIENT, "patient")
    assert [a.id for a in buckets.pending] == [pending.id]
    assert [a.id for a in buckets.upcoming] == [upcoming.id]


def test_doctor_patients_summary():
    svc, _, slots = make_service()
    book_on_new_slot(svc, slots, days=1)
    confirmed(svc, slots, days=2)
    summaries = svc.doctor_patients(DOCTOR)
    assert len(summaries) == 1
    assert summaries[0].total == 2
    assert summaries[0].pending == 1
    assert summaries[0].next_appointment == NOW + timedelta(days=1)


class FailingApptRepo(FakeApptRepo):
    def __init__(self):
        super().__init__()
        self.fail_create = False
        self.fail_save = False

    def create(self, appointment):
        if self.fail_create:
            raise RuntimeError("database unavailable")
        return super().create(appointment)

    def save(self, appointment):
        if self.fail_save:
            raise RuntimeError("database unavailable")
        return super().save(appointment)


def make_failing_service():
    repo = FailingApptRepo()
    slots = FakeSlotsRepo()
    return AppointmentsService(repo=repo, slots=slots, clock=clock), repo, slots


def test_failed_booking_releases_the_slot():
    svc, repo, slots = make_failing_service()
    slot = slots.add(1, NOW + timedelta(days=1))
    repo.fail_create = True

    with pytest.raises(RuntimeError):
        svc.book_slot(PATIENT, slot.id, "Back pain")
    assert not slots.get(slot.id).is_booked
    assert slots.get(slot.id).booked_by is None

    repo.fail_create = False
    appt = svc.book_slot("pat-user-2", slot.id, "Back pain")
    assert slots.get(slot.id).appointment_id == appt.id


def test_failed_direct_reschedule_restores_both_slots():
    svc, repo, slots = make_failing_service()
    appt, old_slot = book_on_new_slot(svc, slots)
    new_slot = slots.add(1, NOW + timedelta(days=6))
    repo.fail_save = True

    with pytest.raises(RuntimeError):
        svc.reschedule_to_slot(PATIENT, appt.id, new_slot.id)
    assert not slots.get(new_slot.id).is_booked
    assert slots.get(old_slot.id).is_booked
    assert slots.get(old_slot.id).appointment_id == appt.id


def test_failed_approval_releases_the_proposed_slot():
    svc, repo, slots = make_failing_service()
    appt, old_slot = confirmed(svc, slots)
    new_slot = slots.add(1, NOW + timedelta(days=4))
    svc.propose_reschedule(DOCTOR, "doctor", appt.id, proposed_slot_id=new_slot.id)
    repo.fail_save = True

    with pytest.raises(RuntimeError):
        svc.decide_reschedule(PATIENT, "patient", appt.id, "approved")
    assert not slots.get(new_slot.id).is_booked
    assert slots.get(old_slot.id).appointment_id == appt.id
