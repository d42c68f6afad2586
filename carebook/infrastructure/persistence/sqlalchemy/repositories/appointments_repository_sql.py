from typing import List, Optional, Tuple
from datetime import datetime
from sqlalchemy import func
from sqlmodel import Session, select

from .....db.models import Appointment, Doctor, Patient, User
from .....application.ports.appointments_repo import (
    AppointmentsRepository,
    AppointmentDto,
    DoctorRefDto,
    PatientRefDto,
    PendingRescheduleDto,
    RescheduleHistoryDto,
)
from .....domain.appointment_status import LIVE_STATUSES
from .....utils import dump_json_list, load_json_list

# Appointment columns copied straight from the DTO
PLAIN_FIELDS = (
    "doctor_id", "patient_id", "slot_id", "appointment_date", "duration", "appointment_type",
    "consultation_type", "reason_for_visit", "status", "doctor_notes", "diagnosis", "treatment_plan",
    "rejection_reason", "cancellation_reason", "cancelled_by", "cancelled_at", "consultation_fee",
    "rating", "patient_feedback", "last_modified_by",
)
PROPOSAL_FIELDS = (
    "active", "proposed_by", "proposed_at", "proposed_slot_id", "proposed_date_time", "reason",
    "decision", "decided_by", "decision_at", "decision_reason",
)


class SqlAppointmentsRepository(AppointmentsRepository):
    def __init__(self, session: Session):
        self.session = session

    def _commit(self) -> None:
        try:
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise

    def _user_name(self, user_id: str) -> str:
        user = self.session.get(User, user_id)
        return f"{user.first_name} {user.last_name}" if user else "Unknown"

    def _appt_to_dto(self, a: Appointment) -> AppointmentDto:
        doctor = self.session.get(Doctor, a.doctor_id)
        patient = self.session.get(Patient, a.patient_id)
        history = None
        if a.rescheduled_from_date is not None:
            history = RescheduleHistoryDto(
                original_date=a.rescheduled_from_date,
                rescheduled_by=a.rescheduled_by,
                rescheduled_at=a.rescheduled_at,
                reason=a.rescheduled_reason,
            )
        return AppointmentDto(
            id=a.id,
            symptoms=load_json_list(a.symptoms),
            pending_reschedule=PendingRescheduleDto(
                **{name: getattr(a, f"reschedule_{name}") for name in PROPOSAL_FIELDS}
            ),
            rescheduled_from=history,
            doctor_name=f"Dr. {self._user_name(doctor.user_id)}" if doctor else None,
            patient_name=self._user_name(patient.user_id) if patient else None,
            created_at=a.created_at,
            updated_at=a.updated_at,
            **{name: getattr(a, name) for name in PLAIN_FIELDS},
        )

    def _apply(self, a: Appointment, dto: AppointmentDto) -> None:
        for name in PLAIN_FIELDS:
            setattr(a, name, getattr(dto, name))
        a.symptoms = dump_json_list(dto.symptoms)
        for name in PROPOSAL_FIELDS:
            setattr(a, f"reschedule_{name}", getattr(dto.pending_reschedule, name))
        history = dto.rescheduled_from
        a.rescheduled_from_date = history.original_date if history else None
        a.rescheduled_by = history.rescheduled_by if history else None
        a.rescheduled_at = history.rescheduled_at if history else None
        a.rescheduled_reason = history.reason if history else None
        a.updated_at = datetime.utcnow()

    # participants
    def get_doctor(self, doctor_id: int) -> Optional[DoctorRefDto]:
        d = self.session.get(Doctor, doctor_id)
        if not d:
            return None
        return DoctorRefDto(id=d.id, user_id=d.user_id, name=f"Dr. {self._user_name(d.user_id)}", consultation_fee=d.consultation_fee)

    def get_doctor_by_user(self, user_id: str) -> Optional[DoctorRefDto]:
        d = self.session.exec(select(Doctor).where(Doctor.user_id == user_id)).first()
        if not d:
            return None
        return DoctorRefDto(id=d.id, user_id=d.user_id, name=f"Dr. {self._user_name(d.user_id)}", consultation_fee=d.consultation_fee)

    def get_patient_by_user(self, user_id: str) -> Optional[PatientRefDto]:
        p = self.session.exec(select(Patient).where(Patient.user_id == user_id)).first()
        if not p:
            return None
        return PatientRefDto(id=p.id, user_id=p.user_id, name=self._user_name(p.user_id))

    # appointments
    def get(self, appointment_id: int) -> Optional[AppointmentDto]:
        a = self.session.get(Appointment, appointment_id)
        return self._appt_to_dto(a) if a else None

    def create(self, dto: AppointmentDto) -> AppointmentDto:
        appt = Appointment(
            doctor_id=dto.doctor_id,
            patient_id=dto.patient_id,
            appointment_date=dto.appointment_date,
            reason_for_visit=dto.reason_for_visit,
        )
        self._apply(appt, dto)
        self.session.add(appt)
        self._commit()
        self.session.refresh(appt)
        return self._appt_to_dto(appt)

    def save(self, dto: AppointmentDto) -> AppointmentDto:
        appt = self.session.get(Appointment, dto.id)
        if not appt:
            raise LookupError(f"Appointment {dto.id} does not exist")
        self._apply(appt, dto)
        self.session.add(appt)
        self._commit()
        self.session.refresh(appt)
        return self._appt_to_dto(appt)

    def list_for_doctor(self, doctor_id: int, status: Optional[str] = None, date_from: Optional[datetime] = None,
                        date_to: Optional[datetime] = None, offset: int = 0, limit: Optional[int] = None) -> Tuple[List[AppointmentDto], int]:
        query = select(Appointment).where(Appointment.doctor_id == doctor_id)
        count_query = select(func.count()).select_from(Appointment).where(Appointment.doctor_id == doctor_id)
        if status:
            query = query.where(Appointment.status == status)
            count_query = count_query.where(Appointment.status == status)
        if date_from:
            query = query.where(Appointment.appointment_date >= date_from)
            count_query = count_query.where(Appointment.appointment_date >= date_from)
        if date_to:
            query = query.where(Appointment.appointment_date <= date_to)
            count_query = count_query.where(Appointment.appointment_date <= date_to)

        total = self.session.exec(count_query).one()
        query = query.order_by(Appointment.appointment_date.desc()).offset(offset)
        if limit:
            query = query.limit(limit)
        rows = self.session.exec(query).all()
        return [self._appt_to_dto(r) for r in rows], int(total)

    def list_for_patient(self, patient_id: int, status: Optional[str] = None, limit: Optional[int] = None) -> List[AppointmentDto]:
        query = select(Appointment).where(Appointment.patient_id == patient_id)
        if status:
            query = query.where(Appointment.status == status)
        query = query.order_by(Appointment.appointment_date.desc())
        if limit:
            query = query.limit(limit)
        return [self._appt_to_dto(r) for r in self.session.exec(query).all()]

    def find_conflict(self, doctor_id: int, when: datetime, exclude_id: Optional[int] = None) -> bool:
        query = (
            select(Appointment)
            .where(Appointment.doctor_id == doctor_id)
            .where(Appointment.appointment_date == when)
            .where(Appointment.status.in_([s.value for s in LIVE_STATUSES]))
        )
        if exclude_id is not None:
            query = query.where(Appointment.id != exclude_id)
        return self.session.exec(query).first() is not None

    # reviews
    def ratings_for_doctor(self, doctor_id: int) -> List[int]:
        rows = self.session.exec(
            select(Appointment.rating)
            .where(Appointment.doctor_id == doctor_id)
            .where(Appointment.rating.is_not(None))
        ).all()
        return [int(r) for r in rows]

    def update_doctor_rating(self, doctor_id: int, average_rating: float, total_reviews: int) -> None:
        d = self.session.get(Doctor, doctor_id)
        if not d:
            return
        d.average_rating = average_rating
        d.total_reviews = total_reviews
        d.updated_at = datetime.utcnow()
        self.session.add(d)
        self._commit()
