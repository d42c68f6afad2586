# carebook/db/models/health/slot.py
from typing import Optional
from sqlmodel import SQLModel, Field
from datetime import datetime

class Slot(SQLModel, table=True):
    __tablename__ = "slots"
    id: Optional[int] = Field(default=None, primary_key=True)
    doctor_id: int = Field(foreign_key="doctors.id", index=True)
    date_time: datetime = Field(index=True)
    duration: int = Field(default=30)
    consultation_type: str = Field(default="in-person")
    slot_type: str = Field(default="consultation")
    consultation_fee: Optional[float] = None
    notes: Optional[str] = Field(default=None, max_length=500)
    is_available: bool = Field(default=True)
    is_booked: bool = Field(default=False)
    booked_by: Optional[int] = Field(default=None, foreign_key="patients.id")
    appointment_id: Optional[int] = Field(default=None)
    status: str = Field(default="active")
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
