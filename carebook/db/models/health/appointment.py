# carebook/db/models/health/appointment.py
from typing import Optional
from sqlmodel import SQLModel, Field, Relationship
from datetime import datetime

class Appointment(SQLModel, table=True):
    __tablename__ = "appointments"
    id: Optional[int] = Field(default=None, primary_key=True)
    doctor_id: int = Field(foreign_key="doctors.id", index=True)
    patient_id: int = Field(foreign_key="patients.id", index=True)
    slot_id: Optional[int] = Field(default=None, foreign_key="slots.id")
    appointment_date: datetime = Field(index=True)
    duration: int = Field(default=30)
    appointment_type: str = Field(default="consultation")
    consultation_type: str = Field(default="in-person")
    reason_for_visit: str = Field(max_length=500)
    symptoms: str = Field(default="[]")
    status: str = Field(default="pending", index=True)
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

    # Reschedule proposal
    reschedule_active: bool = Field(default=False)
    reschedule_proposed_by: Optional[str] = None
    reschedule_proposed_at: Optional[datetime] = None
    reschedule_proposed_slot_id: Optional[int] = None
    reschedule_proposed_date_time: Optional[datetime] = None
    reschedule_reason: Optional[str] = None
    reschedule_decision: Optional[str] = None
    reschedule_decided_by: Optional[str] = None
    reschedule_decision_at: Optional[datetime] = None
    reschedule_decision_reason: Optional[str] = None

    # Last applied reschedule
    rescheduled_from_date: Optional[datetime] = None
    rescheduled_by: Optional[str] = None
    rescheduled_at: Optional[datetime] = None
    rescheduled_reason: Optional[str] = None

    last_modified_by: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    # Relationships
    doctor: Optional["Doctor"] = Relationship(back_populates="appointments")
