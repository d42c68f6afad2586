# carebook/schemas/doctor.py
from pydantic import Field
from typing import List, Optional
from datetime import datetime

from ..common.common import CamelModel


class DoctorUpdate(CamelModel):
    license_number: Optional[str] = None
    license_state: Optional[str] = None
    primary_specialty: Optional[str] = None
    secondary_specialties: Optional[List[str]] = None
    years_of_experience: Optional[int] = Field(None, ge=0, le=70)
    languages: Optional[List[str]] = None
    bio: Optional[str] = Field(None, max_length=2000)
    consultation_fee: Optional[float] = Field(None, ge=0)
    accepts_insurance: Optional[bool] = None
    telemedicine_enabled: Optional[bool] = None
    is_accepting_new_patients: Optional[bool] = None


class EducationCreate(CamelModel):
    institution: str = Field(..., min_length=1, max_length=200)
    degree: str = Field(..., min_length=1, max_length=20)
    field_of_study: Optional[str] = Field(None, max_length=200)
    graduation_year: Optional[int] = None
    honors: Optional[str] = Field(None, max_length=200)


class EducationUpdate(CamelModel):
    institution: Optional[str] = Field(None, min_length=1, max_length=200)
    degree: Optional[str] = Field(None, min_length=1, max_length=20)
    field_of_study: Optional[str] = Field(None, max_length=200)
    graduation_year: Optional[int] = None
    honors: Optional[str] = Field(None, max_length=200)


class EducationResponse(CamelModel):
    id: int
    doctor_id: int
    institution: str
    degree: str
    field_of_study: Optional[str] = None
    graduation_year: Optional[int] = None
    honors: Optional[str] = None


class DoctorResponse(CamelModel):
    id: int
    user_id: str
    first_name: str = ""
    last_name: str = ""
    full_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    profile_picture: Optional[str] = None
    license_number: Optional[str] = None
    license_state: Optional[str] = None
    primary_specialty: Optional[str] = None
    secondary_specialties: List[str] = []
    years_of_experience: Optional[int] = None
    languages: List[str] = []
    bio: Optional[str] = None
    consultation_fee: Optional[float] = None
    accepts_insurance: bool = False
    telemedicine_enabled: bool = False
    is_accepting_new_patients: bool = True
    average_rating: float = 0.0
    total_reviews: int = 0
    is_verified: bool = False
    status: str = "pending"
    created_at: Optional[datetime] = None
    education: List[EducationResponse] = []


class DashboardStats(CamelModel):
    today_appointments: int = 0
    pending_requests: int = 0
    upcoming_appointments: int = 0
    total_patients: int = 0
    available_slots: int = 0
    profile_completion: int = 0
    average_rating: float = 0.0
    total_reviews: int = 0
