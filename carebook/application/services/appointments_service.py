import logging
from dataclasses import dataclass, field, replace
from typing import Callable, Dict, List, Optional, Tuple
from datetime import datetime
from fastapi import HTTPException

from ..ports.appointments_repo import (
    AppointmentsRepository,
    AppointmentDto,
    DoctorRefDto,
    PatientRefDto,
    PendingRescheduleDto,
    RescheduleHistoryDto,
)
from ..ports.slots_repo import SlotsRepository, SlotDto
from ...domain.appointment_status import (
    AppointmentStatus,
    InvalidTransition,
    LIVE_STATUSES,
    RESCHEDULABLE_STATUSES,
    RescheduleDecision,
    Role,
    ROLE_STATUS_CHANGES,
    ensure_transition,
    parse_status,
)
from ...domain.buckets import AppointmentBuckets, classify_appointments
from ...utils import parse_datetime

logger = logging.getLogger(__name__)

MAX_REASON_LENGTH = 500
APPOINTMENT_TYPES = ("consultation", "follow-up", "check-up", "emergency", "routine")
CONSULTATION_TYPES = ("in-person", "telemedicine", "both")


@dataclass
class DoctorPatientSummary:
    patient_id: int
    patient_name: Optional[str]
    total: int = 0
    completed: int = 0
    pending: int = 0
    cancelled: int = 0
    last_appointment: Optional[datetime] = None
    next_appointment: Optional[datetime] = None


@dataclass
class AppointmentsService:
    repo: AppointmentsRepository
    slots: SlotsRepository
    auto_confirm_slot_bookings: bool = False
    clock: Callable[[], datetime] = field(default=datetime.utcnow)

    # ------------------------------------------------------------------
    # lookups
    # ------------------------------------------------------------------
    def _doctor_for(self, user_id: str) -> DoctorRefDto:
        doctor = self.repo.get_doctor_by_user(user_id)
        if not doctor:
            raise HTTPException(status_code=404, detail="Doctor profile not found")
        return doctor

    def _patient_for(self, user_id: str) -> PatientRefDto:
        patient = self.repo.get_patient_by_user(user_id)
        if not patient:
            raise HTTPException(status_code=404, detail="Patient profile not found")
        return patient

    def _get(self, appointment_id: int) -> AppointmentDto:
        appt = self.repo.get(appointment_id)
        if not appt:
            raise HTTPException(status_code=404, detail="Appointment not found")
        return appt

    def _participant(self, appt: AppointmentDto, user_id: str, user_type: str) -> Role:
        if user_type == Role.DOCTOR.value:
            doctor = self.repo.get_doctor_by_user(user_id)
            if doctor and doctor.id == appt.doctor_id:
                return Role.DOCTOR
        elif user_type == Role.PATIENT.value:
            patient = self.repo.get_patient_by_user(user_id)
            if patient and patient.id == appt.patient_id:
                return Role.PATIENT
        raise HTTPException(status_code=403, detail="Access denied")

    def _transition(self, appt: AppointmentDto, target: AppointmentStatus) -> str:
        try:
            return ensure_transition(appt.status, target).value
        except InvalidTransition as e:
            raise HTTPException(status_code=400, detail=str(e))

    def _validate_reason(self, reason: Optional[str]) -> str:
        reason = (reason or "").strip()
        if not reason:
            raise HTTPException(status_code=400, detail="Reason for visit is required")
        if len(reason) > MAX_REASON_LENGTH:
            raise HTTPException(status_code=400, detail=f"Reason for visit cannot exceed {MAX_REASON_LENGTH} characters")
        return reason

    def _validate_types(self, appointment_type: str, consultation_type: Optional[str]) -> None:
        if appointment_type not in APPOINTMENT_TYPES:
            raise HTTPException(status_code=400, detail=f"Invalid appointment type. Must be one of: {list(APPOINTMENT_TYPES)}")
        if consultation_type is not None and consultation_type not in CONSULTATION_TYPES:
            raise HTTPException(status_code=400, detail=f"Invalid consultation type. Must be one of: {list(CONSULTATION_TYPES)}")

    def _release_slot(self, appt: AppointmentDto) -> None:
        if not appt.slot_id:
            return
        slot = self.slots.get(appt.slot_id)
        if slot and slot.appointment_id in (None, appt.id):
            slot.release()
            self.slots.save(slot)

    def _undo_slot_changes(self, claimed_slot_id: Optional[int], previous: Optional[SlotDto] = None) -> None:
        """Release a claimed slot and put the previous slot back after a failed write."""
        try:
            if claimed_slot_id is not None:
                claimed = self.slots.get(claimed_slot_id)
                if claimed:
                    claimed.release()
                    self.slots.save(claimed)
            if previous is not None:
                self.slots.save(previous)
        except Exception as e:
            logger.error(f"Could not restore slots (claimed={claimed_slot_id}, previous={previous.id if previous else None}): {e}")

    def _snapshot_slot(self, slot_id: Optional[int]) -> Optional[SlotDto]:
        slot = self.slots.get(slot_id) if slot_id else None
        return replace(slot) if slot else None

    def _supersede_proposal(self, appt: AppointmentDto, role: Role) -> None:
        proposal = appt.pending_reschedule
        if proposal.active:
            proposal.active = False
            proposal.decision = RescheduleDecision.SUPERSEDED.value
            proposal.decided_by = role.value
            proposal.decision_at = self.clock()

    # ------------------------------------------------------------------
    # booking
    # ------------------------------------------------------------------
    def book(self, user_id: str, reason_for_visit: Optional[str], slot_id: Optional[int] = None,
             doctor_id: Optional[int] = None, requested_date_time=None, appointment_type: str = "consultation",
             consultation_type: Optional[str] = None, symptoms: Optional[List[str]] = None,
             duration: Optional[int] = None) -> AppointmentDto:
        if slot_id is not None:
            return self.book_slot(user_id, slot_id, reason_for_visit, appointment_type, consultation_type, symptoms)
        if doctor_id is not None and requested_date_time:
            return self.request_custom(user_id, doctor_id, requested_date_time, reason_for_visit,
                                       appointment_type, consultation_type, symptoms, duration)
        raise HTTPException(status_code=400, detail="Provide slotId, or doctorId with requestedDateTime")

    def book_slot(self, user_id: str, slot_id: int, reason_for_visit: Optional[str], appointment_type: str = "consultation",
                  consultation_type: Optional[str] = None, symptoms: Optional[List[str]] = None) -> AppointmentDto:
        patient = self._patient_for(user_id)
        reason = self._validate_reason(reason_for_visit)
        self._validate_types(appointment_type, consultation_type)

        slot = self.slots.get(slot_id)
        if not slot:
            raise HTTPException(status_code=404, detail="Slot not found")
        if not slot.is_bookable(self.clock()):
            raise HTTPException(status_code=400, detail="Slot is not available for booking")
        if not self.slots.claim(slot_id, patient.id):
            raise HTTPException(status_code=409, detail="Slot has just been booked by another patient")

        if consultation_type is None:
            consultation_type = "in-person" if slot.consultation_type == "both" else slot.consultation_type

        # the slot is claimed from here on; any failure must hand it back
        try:
            doctor = self.repo.get_doctor(slot.doctor_id)
            fee = slot.consultation_fee
            if fee is None and doctor:
                fee = doctor.consultation_fee
            appt = self.repo.create(AppointmentDto(
                id=None,
                doctor_id=slot.doctor_id,
                patient_id=patient.id,
                slot_id=slot.id,
                appointment_date=slot.date_time,
                duration=slot.duration,
                appointment_type=appointment_type,
                consultation_type=consultation_type,
                reason_for_visit=reason,
                symptoms=list(symptoms or []),
                consultation_fee=fee,
                status=AppointmentStatus.PENDING.value,
                last_modified_by=user_id,
            ))
        except Exception:
            logger.error(f"Booking on slot {slot_id} failed, releasing the slot")
            self._undo_slot_changes(slot_id)
            raise

        claimed = self.slots.get(slot_id)
        if claimed:
            claimed.book(patient.id, appt.id)
            self.slots.save(claimed)

        if self.auto_confirm_slot_bookings:
            appt.status = self._transition(appt, AppointmentStatus.CONFIRMED)
            appt = self.repo.save(appt)

        logger.info(f"Appointment {appt.id} booked on slot {slot_id} by patient {patient.id}")
        return appt

    def request_custom(self, user_id: str, doctor_id: int, requested_date_time, reason_for_visit: Optional[str],
                       appointment_type: str = "consultation", consultation_type: Optional[str] = None,
                       symptoms: Optional[List[str]] = None, duration: Optional[int] = None) -> AppointmentDto:
        patient = self._patient_for(user_id)
        reason = self._validate_reason(reason_for_visit)
        self._validate_types(appointment_type, consultation_type)

        try:
            when = parse_datetime(requested_date_time)
        except ValueError:
            raise HTTPException(status_code=400, detail="Invalid requestedDateTime. Use ISO-8601")
        if when is None or when <= self.clock():
            raise HTTPException(status_code=400, detail="Requested date/time must be in the future")

        doctor = self.repo.get_doctor(doctor_id)
        if not doctor:
            raise HTTPException(status_code=404, detail="Doctor not found")

        appt = self.repo.create(AppointmentDto(
            id=None,
            doctor_id=doctor.id,
            patient_id=patient.id,
            appointment_date=when,
            duration=duration or 30,
            appointment_type=appointment_type,
            consultation_type=consultation_type or "in-person",
            reason_for_visit=reason,
            symptoms=list(symptoms or []),
            consultation_fee=doctor.consultation_fee,
            status=AppointmentStatus.PENDING.value,
            last_modified_by=user_id,
        ))
        logger.info(f"Custom appointment request {appt.id} for doctor {doctor.id} by patient {patient.id}")
        return appt

    # ------------------------------------------------------------------
    # reads
    # ------------------------------------------------------------------
    def list_for_doctor(self, user_id: str, status: Optional[str] = None, date_from=None, date_to=None,
                        page: int = 1, limit: Optional[int] = 10) -> Tuple[List[AppointmentDto], int]:
        doctor = self._doctor_for(user_id)
        if status:
            try:
                parse_status(status)
            except ValueError as e:
                raise HTTPException(status_code=400, detail=str(e))
        try:
            start = parse_datetime(date_from)
            end = parse_datetime(date_to)
        except ValueError:
            raise HTTPException(status_code=400, detail="Invalid date filter. Use ISO-8601")
        offset = (max(page, 1) - 1) * limit if limit else 0
        return self.repo.list_for_doctor(doctor.id, status=status, date_from=start, date_to=end, offset=offset, limit=limit)

    def list_for_patient(self, user_id: str, status: Optional[str] = None, limit: Optional[int] = None) -> List[AppointmentDto]:
        patient = self._patient_for(user_id)
        if status:
            try:
                parse_status(status)
            except ValueError as e:
                raise HTTPException(status_code=400, detail=str(e))
        return self.repo.list_for_patient(patient.id, status=status, limit=limit)

    def buckets_for(self, user_id: str, user_type: str) -> AppointmentBuckets:
        if user_type == Role.DOCTOR.value:
            appts, _ = self.repo.list_for_doctor(self._doctor_for(user_id).id)
        elif user_type == Role.PATIENT.value:
            appts = self.repo.list_for_patient(self._patient_for(user_id).id)
        else:
            raise HTTPException(status_code=403, detail="Access denied")
        return classify_appointments(appts, now=self.clock())

    def get_for_user(self, user_id: str, user_type: str, appointment_id: int) -> AppointmentDto:
        appt = self._get(appointment_id)
        try:
            self._participant(appt, user_id, user_type)
        except HTTPException:
            raise HTTPException(status_code=404, detail="Appointment not found")
        return appt

    # ------------------------------------------------------------------
    # status changes
    # ------------------------------------------------------------------
    def update_status(self, user_id: str, user_type: str, appointment_id: int, status: str,
                      reason: Optional[str] = None, doctor_notes: Optional[str] = None,
                      diagnosis: Optional[str] = None, treatment_plan: Optional[str] = None) -> AppointmentDto:
        try:
            target = parse_status(status)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))

        appt = self._get(appointment_id)
        role = self._participant(appt, user_id, user_type)
        if target not in ROLE_STATUS_CHANGES[role]:
            if role is Role.PATIENT:
                raise HTTPException(status_code=403, detail="Patients can only cancel appointments")
            raise HTTPException(status_code=403, detail=f"Doctors cannot set status '{target.value}'")

        appt.status = self._transition(appt, target)
        now = self.clock()

        if target is AppointmentStatus.REJECTED:
            appt.rejection_reason = reason or "No reason provided"
            self._release_slot(appt)
        elif target is AppointmentStatus.CANCELLED:
            appt.cancellation_reason = reason
            appt.cancelled_by = role.value
            appt.cancelled_at = now
            self._release_slot(appt)
        elif target is AppointmentStatus.COMPLETED:
            if doctor_notes is not None:
                appt.doctor_notes = doctor_notes
            if diagnosis is not None:
                appt.diagnosis = diagnosis
            if treatment_plan is not None:
                appt.treatment_plan = treatment_plan
        elif target is AppointmentStatus.CONFIRMED and doctor_notes is not None:
            appt.doctor_notes = doctor_notes

        if target not in LIVE_STATUSES:
            self._supersede_proposal(appt, role)

        appt.last_modified_by = user_id
        appt = self.repo.save(appt)
        logger.info(f"Appointment {appointment_id} moved to {target.value} by {role.value}")
        return appt

    # ------------------------------------------------------------------
    # rescheduling
    # ------------------------------------------------------------------
    def _ensure_reschedulable(self, appt: AppointmentDto) -> None:
        if AppointmentStatus(appt.status) not in RESCHEDULABLE_STATUSES:
            raise HTTPException(status_code=400, detail=f"Cannot reschedule an appointment that is {appt.status}")

    def _usable_slot(self, appt: AppointmentDto, slot_id: int) -> SlotDto:
        slot = self.slots.get(slot_id)
        if not slot:
            raise HTTPException(status_code=404, detail="Slot not found")
        if slot.doctor_id != appt.doctor_id:
            raise HTTPException(status_code=400, detail="Slot must belong to the same doctor")
        if not slot.is_bookable(self.clock()):
            raise HTTPException(status_code=400, detail="Slot is not available for booking")
        return slot

    def _move(self, appt: AppointmentDto, when: datetime, new_slot: Optional[SlotDto], moved_by: str, reason: Optional[str]) -> None:
        original = appt.appointment_date
        if new_slot is not None:
            if appt.slot_id and appt.slot_id != new_slot.id:
                self._release_slot(appt)
            new_slot.book(appt.patient_id, appt.id)
            self.slots.save(new_slot)
            appt.slot_id = new_slot.id
            appt.duration = new_slot.duration
        elif appt.slot_id:
            current = self.slots.get(appt.slot_id)
            if current:
                current.date_time = when
                self.slots.save(current)
        appt.appointment_date = when
        appt.rescheduled_from = RescheduleHistoryDto(
            original_date=original,
            rescheduled_by=moved_by,
            rescheduled_at=self.clock(),
            reason=reason,
        )

    def reschedule_to_slot(self, user_id: str, appointment_id: int, new_slot_id: int, reason: Optional[str] = None) -> AppointmentDto:
        appt = self._get(appointment_id)
        role = self._participant(appt, user_id, Role.PATIENT.value)
        self._ensure_reschedulable(appt)

        new_slot = self._usable_slot(appt, new_slot_id)
        target = self._transition(appt, AppointmentStatus.RESCHEDULED)
        if not self.slots.claim(new_slot.id, appt.patient_id):
            raise HTTPException(status_code=409, detail="Slot has just been booked by another patient")

        previous = self._snapshot_slot(appt.slot_id)
        try:
            self._supersede_proposal(appt, role)
            self._move(appt, new_slot.date_time, new_slot, role.value, reason)
            appt.status = target
            appt.last_modified_by = user_id
            appt = self.repo.save(appt)
        except Exception:
            logger.error(f"Rescheduling appointment {appointment_id} to slot {new_slot_id} failed, restoring slots")
            self._undo_slot_changes(new_slot.id, previous)
            raise
        logger.info(f"Appointment {appointment_id} rescheduled to slot {new_slot_id} by patient")
        return appt

    def propose_reschedule(self, user_id: str, user_type: str, appointment_id: int, proposed_slot_id: Optional[int] = None,
                           proposed_date_time=None, reason: Optional[str] = None) -> AppointmentDto:
        appt = self._get(appointment_id)
        role = self._participant(appt, user_id, user_type)
        self._ensure_reschedulable(appt)
        if appt.pending_reschedule.active:
            raise HTTPException(status_code=409, detail="A reschedule request is already pending for this appointment")

        now = self.clock()
        if proposed_slot_id is not None:
            when = self._usable_slot(appt, proposed_slot_id).date_time
        elif proposed_date_time:
            try:
                when = parse_datetime(proposed_date_time)
            except ValueError:
                raise HTTPException(status_code=400, detail="Invalid proposedDateTime. Use ISO-8601")
            if when <= now:
                raise HTTPException(status_code=400, detail="Proposed date/time must be in the future")
        else:
            raise HTTPException(status_code=400, detail="Provide proposedSlotId or proposedDateTime")

        appt.pending_reschedule = PendingRescheduleDto(
            active=True,
            proposed_by=role.value,
            proposed_at=now,
            proposed_slot_id=proposed_slot_id,
            proposed_date_time=when,
            reason=reason,
        )
        appt.last_modified_by = user_id
        appt = self.repo.save(appt)
        logger.info(f"Reschedule proposed for appointment {appointment_id} by {role.value}")
        return appt

    def decide_reschedule(self, user_id: str, user_type: str, appointment_id: int, decision: str,
                          reason: Optional[str] = None) -> AppointmentDto:
        if decision not in (RescheduleDecision.APPROVED.value, RescheduleDecision.REJECTED.value):
            raise HTTPException(status_code=400, detail="Decision must be 'approved' or 'rejected'")

        appt = self._get(appointment_id)
        role = self._participant(appt, user_id, user_type)
        proposal = appt.pending_reschedule
        if not proposal.active:
            raise HTTPException(status_code=400, detail="No active reschedule request for this appointment")
        if proposal.proposed_by == role.value:
            raise HTTPException(status_code=403, detail="Only the other party can respond to this reschedule request")

        now = self.clock()
        if decision == RescheduleDecision.REJECTED.value:
            proposal.active = False
            proposal.decision = decision
            proposal.decided_by = role.value
            proposal.decision_at = now
            proposal.decision_reason = reason or "Reschedule rejected"
            appt.last_modified_by = user_id
            appt = self.repo.save(appt)
            logger.info(f"Reschedule for appointment {appointment_id} rejected by {role.value}")
            return appt

        target = self._transition(appt, AppointmentStatus.RESCHEDULED)
        new_slot = None
        when = proposal.proposed_date_time
        if proposal.proposed_slot_id is not None:
            new_slot = self.slots.get(proposal.proposed_slot_id)
            if not new_slot or not new_slot.is_bookable(now):
                raise HTTPException(status_code=400, detail="Proposed slot is no longer available")
            when = new_slot.date_time
        if when is None or when <= now:
            raise HTTPException(status_code=400, detail="Proposed date/time is no longer in the future")
        if self.repo.find_conflict(appt.doctor_id, when, exclude_id=appt.id):
            raise HTTPException(status_code=409, detail="Doctor already has an appointment at the proposed time")
        if new_slot is None and appt.slot_id and self.slots.find_active_at(appt.doctor_id, when, exclude_id=appt.slot_id):
            raise HTTPException(status_code=409, detail="Doctor already has a slot at the proposed time")
        if new_slot is not None and not self.slots.claim(new_slot.id, appt.patient_id):
            raise HTTPException(status_code=409, detail="Proposed slot has just been booked by another patient")

        previous = self._snapshot_slot(appt.slot_id)
        try:
            self._move(appt, when, new_slot, proposal.proposed_by, proposal.reason)
            appt.status = target
            proposal.active = False
            proposal.decision = decision
            proposal.decided_by = role.value
            proposal.decision_at = now
            proposal.decision_reason = reason
            appt.last_modified_by = user_id
            appt = self.repo.save(appt)
        except Exception:
            logger.error(f"Approving reschedule for appointment {appointment_id} failed, restoring slots")
            self._undo_slot_changes(new_slot.id if new_slot else None, previous)
            raise
        logger.info(f"Reschedule for appointment {appointment_id} approved by {role.value}")
        return appt

    # ------------------------------------------------------------------
    # reviews and doctor views
    # ------------------------------------------------------------------
    def review(self, user_id: str, appointment_id: int, rating: int, feedback: Optional[str] = None) -> AppointmentDto:
        appt = self._get(appointment_id)
        self._participant(appt, user_id, Role.PATIENT.value)
        if appt.status != AppointmentStatus.COMPLETED.value:
            raise HTTPException(status_code=400, detail="Only completed appointments can be reviewed")
        if rating is None or not 1 <= int(rating) <= 5:
            raise HTTPException(status_code=400, detail="Rating must be between 1 and 5")

        appt.rating = int(rating)
        appt.patient_feedback = feedback
        appt.last_modified_by = user_id
        appt = self.repo.save(appt)

        ratings = self.repo.ratings_for_doctor(appt.doctor_id)
        average = round(sum(ratings) / len(ratings), 1) if ratings else 0.0
        self.repo.update_doctor_rating(appt.doctor_id, average, len(ratings))
        return appt

    def doctor_patients(self, user_id: str) -> List[DoctorPatientSummary]:
        doctor = self._doctor_for(user_id)
        appts, _ = self.repo.list_for_doctor(doctor.id)
        now = self.clock()
        summaries: Dict[int, DoctorPatientSummary] = {}
        for appt in appts:
            summary = summaries.setdefault(appt.patient_id, DoctorPatientSummary(appt.patient_id, appt.patient_name))
            summary.total += 1
            status = AppointmentStatus(appt.status)
            if status is AppointmentStatus.COMPLETED:
                summary.completed += 1
            elif status is AppointmentStatus.PENDING:
                summary.pending += 1
            elif status in (AppointmentStatus.CANCELLED, AppointmentStatus.REJECTED):
                summary.cancelled += 1

            if appt.appointment_date <= now:
                if summary.last_appointment is None or appt.appointment_date > summary.last_appointment:
                    summary.last_appointment = appt.appointment_date
            elif status in LIVE_STATUSES:
                if summary.next_appointment is None or appt.appointment_date < summary.next_appointment:
                    summary.next_appointment = appt.appointment_date

        return sorted(
            summaries.values(),
            key=lambda s: s.last_appointment or s.next_appointment or datetime.min,
            reverse=True,
        )
