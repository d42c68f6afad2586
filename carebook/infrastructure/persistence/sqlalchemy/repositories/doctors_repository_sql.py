from typing import List, Optional, Tuple
from datetime import datetime
from sqlalchemy import func
from sqlmodel import Session, select

from .....db.models import Doctor, DoctorEducation, User
from .....application.ports.doctor_repo import DoctorsRepository, DoctorProfileDto, DoctorFilters, EducationDto
from .....utils import dump_json_list, load_json_list

PROFILE_FIELDS = (
    "license_number", "license_state", "primary_specialty", "years_of_experience", "bio", "consultation_fee",
    "accepts_insurance", "telemedicine_enabled", "is_accepting_new_patients", "average_rating", "total_reviews",
    "is_verified", "status",
)
LIST_FIELDS = ("secondary_specialties", "languages")
EDUCATION_FIELDS = ("doctor_id", "institution", "degree", "field_of_study", "graduation_year", "honors")
SORT_COLUMNS = {
    "rating": Doctor.average_rating,
    "experience": Doctor.years_of_experience,
    "fee": Doctor.consultation_fee,
}


class SqlDoctorsRepository(DoctorsRepository):
    def __init__(self, session: Session):
        self.session = session

    def _commit(self) -> None:
        try:
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise

    def _edu_to_dto(self, e: DoctorEducation) -> EducationDto:
        return EducationDto(id=e.id, **{name: getattr(e, name) for name in EDUCATION_FIELDS})

    def _to_dto(self, d: Doctor) -> DoctorProfileDto:
        user = self.session.get(User, d.user_id)
        education = self.session.exec(
            select(DoctorEducation).where(DoctorEducation.doctor_id == d.id).order_by(DoctorEducation.id.asc())
        ).all()
        return DoctorProfileDto(
            id=d.id,
            user_id=d.user_id,
            first_name=user.first_name if user else "",
            last_name=user.last_name if user else "",
            email=user.email if user else None,
            phone=user.phone if user else None,
            profile_picture=user.profile_picture if user else None,
            created_at=d.created_at,
            education=[self._edu_to_dto(e) for e in education],
            **{name: load_json_list(getattr(d, name)) for name in LIST_FIELDS},
            **{name: getattr(d, name) for name in PROFILE_FIELDS},
        )

    def list(self, filters: DoctorFilters) -> Tuple[List[DoctorProfileDto], int]:
        conditions = []
        if filters.specialty:
            conditions.append(Doctor.primary_specialty.ilike(f"%{filters.specialty}%"))
        if filters.accepting_new_patients is not None:
            conditions.append(Doctor.is_accepting_new_patients == filters.accepting_new_patients)

        total = self.session.exec(select(func.count()).select_from(Doctor).where(*conditions)).one()
        column = SORT_COLUMNS.get(filters.sort_by, Doctor.average_rating)
        order = column.asc() if filters.sort_order == "asc" else column.desc()
        rows = self.session.exec(
            select(Doctor).where(*conditions).order_by(order, Doctor.id.asc()).offset(filters.offset).limit(filters.limit)
        ).all()
        return [self._to_dto(d) for d in rows], int(total)

    def get(self, doctor_id: int) -> Optional[DoctorProfileDto]:
        d = self.session.get(Doctor, doctor_id)
        return self._to_dto(d) if d else None

    def get_by_user(self, user_id: str) -> Optional[DoctorProfileDto]:
        d = self.session.exec(select(Doctor).where(Doctor.user_id == user_id)).first()
        return self._to_dto(d) if d else None

    def save(self, dto: DoctorProfileDto) -> DoctorProfileDto:
        d = self.session.get(Doctor, dto.id)
        if not d:
            raise LookupError(f"Doctor {dto.id} does not exist")
        for name in PROFILE_FIELDS:
            setattr(d, name, getattr(dto, name))
        for name in LIST_FIELDS:
            setattr(d, name, dump_json_list(getattr(dto, name)))
        d.updated_at = datetime.utcnow()
        self.session.add(d)
        self._commit()
        self.session.refresh(d)
        return self._to_dto(d)

    def specialties(self) -> List[str]:
        rows = self.session.exec(
            select(Doctor.primary_specialty).where(Doctor.primary_specialty.is_not(None)).distinct()
        ).all()
        return sorted(r for r in rows if r)

    def get_education(self, doctor_id: int, education_id: int) -> Optional[EducationDto]:
        e = self.session.exec(
            select(DoctorEducation).where(DoctorEducation.id == education_id).where(DoctorEducation.doctor_id == doctor_id)
        ).first()
        return self._edu_to_dto(e) if e else None

    def add_education(self, dto: EducationDto) -> EducationDto:
        e = DoctorEducation(**{name: getattr(dto, name) for name in EDUCATION_FIELDS})
        self.session.add(e)
        self._commit()
        self.session.refresh(e)
        return self._edu_to_dto(e)

    def save_education(self, dto: EducationDto) -> EducationDto:
        e = self.session.get(DoctorEducation, dto.id)
        if not e:
            raise LookupError(f"Education entry {dto.id} does not exist")
        for name in EDUCATION_FIELDS:
            setattr(e, name, getattr(dto, name))
        self.session.add(e)
        self._commit()
        self.session.refresh(e)
        return self._edu_to_dto(e)

    def delete_education(self, education_id: int) -> None:
        e = self.session.get(DoctorEducation, education_id)
        if not e:
            return
        self.session.delete(e)
        self._commit()
