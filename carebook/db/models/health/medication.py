# carebook/db/models/health/medication.py
from typing import Optional
from sqlmodel import SQLModel, Field, Relationship
from datetime import datetime

class Medication(SQLModel, table=True):
    __tablename__ = "medications"
    id: Optional[int] = Field(default=None, primary_key=True)
    patient_id: int = Field(foreign_key="patients.id", index=True)
    name: str = Field(max_length=200)
    dosage: Optional[str] = None
    frequency: int = Field(default=1)
    # JSON list of {time, meal_relation, quantity}
    schedule: str = Field(default="[]")
    route: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    prescribed_by: Optional[str] = None
    reason: Optional[str] = None
    notes: Optional[str] = None
    is_active: bool = Field(default=True)
    created_by_doctor_id: Optional[int] = Field(default=None, foreign_key="doctors.id")
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    # Relationships
    patient: Optional["Patient"] = Relationship(back_populates="medications")
