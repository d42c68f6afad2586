from dataclasses import dataclass, field
from typing import List, Optional, Protocol, Tuple
from datetime import datetime


@dataclass
class DoctorRefDto:
    id: int
    user_id: str
    name: str
    consultation_fee: Optional[float] = None


@dataclass
class PatientRefDto:
    id: int
    user_id: str
    name: str


@dataclass
class PendingRescheduleDto:
    active: bool = False
    proposed_by: Optional[str] = None
    proposed_at: Optional[datetime] = None
    proposed_slot_id: Optional[int] = None
    proposed_date_time: Optional[datetime] = None
    reason: Optional[str] = None
    decision: Optional[str] = None
    decided_by: Optional[str] = None
    decision_at: Optional[datetime] = None
    decision_reason: Optional[str] = None


@dataclass
class RescheduleHistoryDto:
    original_date: datetime
    rescheduled_by: str
    rescheduled_at: datetime
    reason: Optional[str] = None


@dataclass
class AppointmentDto:
    id: Optional[int]
    doctor_id: int
    patient_id: int
    appointment_date: datetime
    reason_for_visit: str
    status: str = "pending"
    slot_id: Optional[int] = None
    duration: int = 30
    appointment_type: str = "consultation"
    consultation_type: str = "in-person"
    symptoms: List[str] = field(default_factory=list)
    doctor_notes: Optional[str] = None
    diagnosis: Optional[str] = None
    treatment_plan: Optional[str] = None
    rejection_reason: Optional[str] = None
    cancellation_reason: Optional[str] = None
    cancelled_by: Optional[str] = None
    cancelled_at: Optional[datetime] = None
    consultation_fee: Optional[float] = None
    rating: Optional[int] = None
    patient_feedback: Optional[str] = None
    pending_reschedule: PendingRescheduleDto = field(default_factory=PendingRescheduleDto)
    rescheduled_from: Optional[RescheduleHistoryDto] = None
    last_modified_by: Optional[str] = None
    doctor_name: Optional[str] = None
    patient_name: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class AppointmentsRepository(Protocol):
    def get_doctor(self, doctor_id: int) -> Optional[DoctorRefDto]:
        ...

    def get_doctor_by_user(self, user_id: str) -> Optional[DoctorRefDto]:
        ...

    def get_patient_by_user(self, user_id: str) -> Optional[PatientRefDto]:
        ...

    def get(self, appointment_id: int) -> Optional[AppointmentDto]:
        ...

    def create(self, appointment: AppointmentDto) -> AppointmentDto:
        ...

    def save(self, appointment: AppointmentDto) -> AppointmentDto:
        ...

    def list_for_doctor(self, doctor_id: int, status: Optional[str] = None, date_from: Optional[datetime] = None,
                        date_to: Optional[datetime] = None, offset: int = 0, limit: Optional[int] = None) -> Tuple[List[AppointmentDto], int]:
        ...

    def list_for_patient(self, patient_id: int, status: Optional[str] = None, limit: Optional[int] = None) -> List[AppointmentDto]:
        ...

    def find_conflict(self, doctor_id: int, when: datetime, exclude_id: Optional[int] = None) -> bool:
        """True when another live appointment of the doctor starts at ``when``."""
        ...

    def ratings_for_doctor(self, doctor_id: int) -> List[int]:
        ...

    def update_doctor_rating(self, doctor_id: int, average_rating: float, total_reviews: int) -> None:
        ...
