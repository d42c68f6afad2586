# carebook/db/models/health/education.py
from typing import Optional
from sqlmodel import SQLModel, Field, Relationship
from datetime import datetime

class DoctorEducation(SQLModel, table=True):
    __tablename__ = "doctor_education"
    id: Optional[int] = Field(default=None, primary_key=True)
    doctor_id: int = Field(foreign_key="doctors.id", index=True)
    institution: str = Field(max_length=200)
    degree: str = Field(max_length=20)
    field_of_study: Optional[str] = Field(default=None, max_length=200)
    graduation_year: Optional[int] = None
    honors: Optional[str] = Field(default=None, max_length=200)
    created_at: datetime = Field(default_factory=datetime.utcnow)

    # Relationships
    doctor: Optional["Doctor"] = Relationship(back_populates="education")
