# carebook/db/models/health/doctor.py
from typing import Optional, List
from sqlmodel import SQLModel, Field, Relationship
from datetime import datetime

class Doctor(SQLModel, table=True):
    __tablename__ = "doctors"
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: str = Field(foreign_key="users.id", unique=True, index=True)
    license_number: Optional[str] = Field(default=None, max_length=50)
    license_state: Optional[str] = Field(default=None, max_length=50)
    primary_specialty: Optional[str] = Field(default=None, index=True)
    secondary_specialties: str = Field(default="[]")
    years_of_experience: Optional[int] = Field(default=None)
    languages: str = Field(default="[]")
    bio: Optional[str] = Field(default=None, max_length=2000)
    consultation_fee: Optional[float] = Field(default=None)
    accepts_insurance: bool = Field(default=False)
    telemedicine_enabled: bool = Field(default=False)
    is_accepting_new_patients: bool = Field(default=True)
    average_rating: float = Field(default=0.0)
    total_reviews: int = Field(default=0)
    is_verified: bool = Field(default=False)
    status: str = Field(default="pending")
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    # Relationships
    appointments: List["Appointment"] = Relationship(back_populates="doctor")
    education: List["DoctorEducation"] = Relationship(back_populates="doctor")
