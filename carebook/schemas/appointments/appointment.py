# carebook/schemas/appointment.py
from pydantic import Field
from typing import List, Optional
from datetime import datetime

from ..common.common import CamelModel


class BookAppointmentRequest(CamelModel):
    """Either ``slotId``, or ``doctorId`` with ``requestedDateTime``."""
    slot_id: Optional[int] = None
    doctor_id: Optional[int] = None
    requested_date_time: Optional[datetime] = None
    reason_for_visit: str = Field(..., max_length=500)
    appointment_type: str = "consultation"
    consultation_type: Optional[str] = None
    symptoms: List[str] = []
    duration: Optional[int] = Field(None, ge=15, le=240)


class StatusUpdateRequest(CamelModel):
    status: str
    reason: Optional[str] = None
    doctor_notes: Optional[str] = None
    diagnosis: Optional[str] = None
    treatment_plan: Optional[str] = None


class RescheduleRequest(CamelModel):
    new_slot_id: int
    reason: Optional[str] = None


class ProposeRescheduleRequest(CamelModel):
    proposed_slot_id: Optional[int] = None
    proposed_date_time: Optional[datetime] = None
    reason: Optional[str] = None


class RescheduleDecisionRequest(CamelModel):
    decision: str
    reason: Optional[str] = None


class ReviewRequest(CamelModel):
    rating: int = Field(..., ge=1, le=5)
    feedback: Optional[str] = Field(None, max_length=1000)


class PendingRescheduleSchema(CamelModel):
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


class RescheduleHistorySchema(CamelModel):
    original_date: datetime
    rescheduled_by: str
    rescheduled_at: datetime
    reason: Optional[str] = None


class AppointmentResponse(CamelModel):
    id: int
    doctor_id: int
    patient_id: int
    doctor_name: Optional[str] = None
    patient_name: Optional[str] = None
    slot_id: Optional[int] = None
    appointment_date: datetime
    duration: int = 30
    appointment_type: str = "consultation"
    consultation_type: str = "in-person"
    reason_for_visit: str
    symptoms: List[str] = []
    status: str
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
    pending_reschedule: PendingRescheduleSchema = Field(default_factory=PendingRescheduleSchema)
    rescheduled_from: Optional[RescheduleHistorySchema] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class AppointmentBucketsResponse(CamelModel):
    pending: List[AppointmentResponse] = []
    upcoming: List[AppointmentResponse] = []
    completed: List[AppointmentResponse] = []
    cancelled: List[AppointmentResponse] = []


class DoctorPatientResponse(CamelModel):
    patient_id: int
    patient_name: Optional[str] = None
    total: int = 0
    completed: int = 0
    pending: int = 0
    cancelled: int = 0
    last_appointment: Optional[datetime] = None
    next_appointment: Optional[datetime] = None
