from dataclasses import dataclass, field
from typing import List, Optional, Protocol, Tuple
from datetime import datetime


@dataclass
class EducationDto:
    id: Optional[int]
    doctor_id: int
    institution: str
    degree: str
    field_of_study: Optional[str] = None
    graduation_year: Optional[int] = None
    honors: Optional[str] = None


@dataclass
class DoctorProfileDto:
    id: int
    user_id: str
    first_name: str = ""
    last_name: str = ""
    email: Optional[str] = None
    phone: Optional[str] = None
    profile_picture: Optional[str] = None
    license_number: Optional[str] = None
    license_state: Optional[str] = None
    primary_specialty: Optional[str] = None
    secondary_specialties: List[str] = field(default_factory=list)
    years_of_experience: Optional[int] = None
    languages: List[str] = field(default_factory=list)
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
    education: List[EducationDto] = field(default_factory=list)

    @property
    def full_name(self) -> str:
        return f"Dr. {self.first_name} {self.last_name}".strip()


@dataclass
class DoctorFilters:
    specialty: Optional[str] = None
    accepting_new_patients: Optional[bool] = None
    sort_by: str = "rating"
    sort_order: str = "desc"
    offset: int = 0
    limit: int = 10


class DoctorsRepository(Protocol):
    def list(self, filters: DoctorFilters) -> Tuple[List[DoctorProfileDto], int]:
        ...

    def get(self, doctor_id: int) -> Optional[DoctorProfileDto]:
        ...

    def get_by_user(self, user_id: str) -> Optional[DoctorProfileDto]:
        ...

    def save(self, profile: DoctorProfileDto) -> DoctorProfileDto:
        ...

    def specialties(self) -> List[str]:
        ...

    def get_education(self, doctor_id: int, education_id: int) -> Optional[EducationDto]:
        ...

    def add_education(self, entry: EducationDto) -> EducationDto:
        ...

    def save_education(self, entry: EducationDto) -> EducationDto:
        ...

    def delete_education(self, education_id: int) -> None:
        ...
