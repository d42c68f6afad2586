from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple
from datetime import datetime, timedelta
from fastapi import HTTPException

from ..ports.doctor_repo import DoctorsRepository, DoctorProfileDto, DoctorFilters, EducationDto
from ..ports.appointments_repo import AppointmentsRepository
from ..ports.slots_repo import SlotsRepository
from ...domain.appointment_status import AppointmentStatus, LIVE_STATUSES

SORT_FIELDS = ("rating", "experience", "fee")
DEGREES = ("MD", "DO", "MBBS", "PhD", "Other")
EDUCATION_FIELDS = ("institution", "degree", "field_of_study", "graduation_year", "honors")
EARLIEST_GRADUATION_YEAR = 1950
EDITABLE_FIELDS = (
    "license_number",
    "license_state",
    "primary_specialty",
    "secondary_specialties",
    "years_of_experience",
    "languages",
    "bio",
    "consultation_fee",
    "accepts_insurance",
    "telemedicine_enabled",
    "is_accepting_new_patients",
)
COMPLETION_FIELDS = (
    "license_number",
    "license_state",
    "primary_specialty",
    "years_of_experience",
    "consultation_fee",
    "bio",
    "languages",
    "secondary_specialties",
)


def profile_completion(profile: DoctorProfileDto) -> int:
    filled = 0
    for name in COMPLETION_FIELDS:
        value = getattr(profile, name)
        if value not in (None, "", []):
            filled += 1
    return round(filled * 100 / len(COMPLETION_FIELDS))


@dataclass
class DoctorsService:
    repo: DoctorsRepository
    appointments: Optional[AppointmentsRepository] = None
    slots: Optional[SlotsRepository] = None
    clock: Callable[[], datetime] = field(default=datetime.utcnow)

    def list(self, specialty: Optional[str] = None, accepting_new_patients: Optional[bool] = None,
             page: int = 1, limit: int = 10, sort_by: str = "rating", sort_order: str = "desc") -> Tuple[List[DoctorProfileDto], int]:
        if sort_by not in SORT_FIELDS:
            raise HTTPException(status_code=400, detail=f"Invalid sortBy. Must be one of: {list(SORT_FIELDS)}")
        if sort_order not in ("asc", "desc"):
            raise HTTPException(status_code=400, detail="Invalid sortOrder. Must be 'asc' or 'desc'")
        page = max(page, 1)
        return self.repo.list(DoctorFilters(
            specialty=specialty,
            accepting_new_patients=accepting_new_patients,
            sort_by=sort_by,
            sort_order=sort_order,
            offset=(page - 1) * limit,
            limit=limit,
        ))

    def get(self, doctor_id: int) -> DoctorProfileDto:
        profile = self.repo.get(doctor_id)
        if not profile:
            raise HTTPException(status_code=404, detail="Doctor not found")
        return profile

    def get_mine(self, user_id: str) -> DoctorProfileDto:
        profile = self.repo.get_by_user(user_id)
        if not profile:
            raise HTTPException(status_code=404, detail="Doctor profile not found")
        return profile

    def update_mine(self, user_id: str, changes: Dict[str, Any]) -> DoctorProfileDto:
        profile = self.get_mine(user_id)
        for name, value in changes.items():
            if name not in EDITABLE_FIELDS or value is None:
                continue
            setattr(profile, name, value)
        if profile.years_of_experience is not None and profile.years_of_experience < 0:
            raise HTTPException(status_code=400, detail="Years of experience cannot be negative")
        if profile.consultation_fee is not None and profile.consultation_fee < 0:
            raise HTTPException(status_code=400, detail="Consultation fee cannot be negative")
        return self.repo.save(profile)

    def specialties(self) -> List[str]:
        return self.repo.specialties()

    # ------------------------------------------------------------------
    # education
    # ------------------------------------------------------------------
    def _validate_education(self, entry: EducationDto) -> None:
        if not (entry.institution or "").strip() or not (entry.degree or "").strip():
            raise HTTPException(status_code=400, detail="Institution and degree are required")
        if entry.degree not in DEGREES:
            raise HTTPException(status_code=400, detail=f"Invalid degree. Must be one of: {list(DEGREES)}")
        year = entry.graduation_year
        if year is not None and not EARLIEST_GRADUATION_YEAR <= year <= self.clock().year:
            raise HTTPException(
                status_code=400,
                detail=f"Graduation year must be between {EARLIEST_GRADUATION_YEAR} and {self.clock().year}",
            )
        entry.institution = entry.institution.strip()

    def _education_entry(self, doctor_id: int, education_id: int) -> EducationDto:
        entry = self.repo.get_education(doctor_id, education_id)
        if not entry:
            raise HTTPException(status_code=404, detail="Education entry not found")
        return entry

    def add_education(self, user_id: str, data: Dict[str, Any]) -> EducationDto:
        profile = self.get_mine(user_id)
        entry = EducationDto(
            id=None,
            doctor_id=profile.id,
            institution=data.get("institution") or "",
            degree=data.get("degree") or "",
            field_of_study=data.get("field_of_study"),
            graduation_year=data.get("graduation_year"),
            honors=data.get("honors"),
        )
        self._validate_education(entry)
        return self.repo.add_education(entry)

    def update_education(self, user_id: str, education_id: int, changes: Dict[str, Any]) -> EducationDto:
        entry = self._education_entry(self.get_mine(user_id).id, education_id)
        for name, value in changes.items():
            if name in EDUCATION_FIELDS:
                setattr(entry, name, value)
        self._validate_education(entry)
        return self.repo.save_education(entry)

    def delete_education(self, user_id: str, education_id: int) -> None:
        entry = self._education_entry(self.get_mine(user_id).id, education_id)
        self.repo.delete_education(entry.id)

    def dashboard(self, user_id: str) -> Dict[str, Any]:
        profile = self.get_mine(user_id)
        now = self.clock()
        day_start = now.replace(hour=0, minute=0, second=0, microsecond=0)
        day_end = day_start + timedelta(days=1)

        stats = {
            "todayAppointments": 0,
            "pendingRequests": 0,
            "upcomingAppointments": 0,
            "totalPatients": 0,
            "availableSlots": 0,
            "profileCompletion": profile_completion(profile),
            "averageRating": profile.average_rating,
            "totalReviews": profile.total_reviews,
        }
        if self.appointments is not None:
            appts, _ = self.appointments.list_for_doctor(profile.id)
            patients = set()
            for appt in appts:
                patients.add(appt.patient_id)
                status = AppointmentStatus(appt.status)
                if status is AppointmentStatus.PENDING:
                    stats["pendingRequests"] += 1
                if status in LIVE_STATUSES and day_start <= appt.appointment_date < day_end:
                    stats["todayAppointments"] += 1
                if status in (AppointmentStatus.CONFIRMED, AppointmentStatus.RESCHEDULED) and appt.appointment_date > now:
                    stats["upcomingAppointments"] += 1
            stats["totalPatients"] = len(patients)
        if self.slots is not None:
            _, stats["availableSlots"] = self.slots.list_for_doctor(profile.id, "available", date_from=now, limit=1)
        return stats
