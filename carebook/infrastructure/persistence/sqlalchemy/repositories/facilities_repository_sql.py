from typing import List, Optional, Tuple
from datetime import datetime
from sqlalchemy import func, or_
from sqlmodel import Session, select

from .....db.models import HealthcareFacility, FacilityReview
from .....application.ports.facility_repo import (
    FacilitiesRepository,
    FacilityDto,
    FacilityFilters,
    FacilityReviewDto,
)
from .....utils import dump_json_list, load_json_list

FACILITY_FIELDS = (
    "name", "type", "sub_category", "description", "phone", "email", "website", "street", "area", "city",
    "state", "pincode", "country", "rating_overall", "rating_count", "status", "owner_user_id",
)


class SqlFacilitiesRepository(FacilitiesRepository):
    def __init__(self, session: Session):
        self.session = session

    def _to_dto(self, f: HealthcareFacility) -> FacilityDto:
        return FacilityDto(
            id=f.id,
            specialties=load_json_list(f.specialties),
            created_at=f.created_at,
            **{name: getattr(f, name) for name in FACILITY_FIELDS},
        )

    def list(self, filters: FacilityFilters) -> Tuple[List[FacilityDto], int]:
        conditions = [HealthcareFacility.status == "active"]
        if filters.type:
            conditions.append(HealthcareFacility.type == filters.type)
        if filters.city:
            conditions.append(HealthcareFacility.city.ilike(f"%{filters.city}%"))
        if filters.state:
            conditions.append(HealthcareFacility.state.ilike(f"%{filters.state}%"))
        if filters.pincode:
            conditions.append(HealthcareFacility.pincode == filters.pincode)
        if filters.specialty:
            # specialties is a JSON text column
            conditions.append(HealthcareFacility.specialties.ilike(f"%{filters.specialty}%"))
        if filters.search:
            pattern = f"%{filters.search}%"
            conditions.append(or_(
                HealthcareFacility.name.ilike(pattern),
                HealthcareFacility.description.ilike(pattern),
            ))

        total = self.session.exec(select(func.count()).select_from(HealthcareFacility).where(*conditions)).one()
        if filters.sort_by == "name":
            order = (HealthcareFacility.name.asc(),)
        else:
            order = (HealthcareFacility.rating_overall.desc(), HealthcareFacility.rating_count.desc())
        rows = self.session.exec(
            select(HealthcareFacility).where(*conditions).order_by(*order).offset(filters.skip).limit(filters.limit)
        ).all()
        return [self._to_dto(f) for f in rows], int(total)

    def get(self, facility_id: int) -> Optional[FacilityDto]:
        f = self.session.get(HealthcareFacility, facility_id)
        return self._to_dto(f) if f else None

    def create(self, dto: FacilityDto) -> FacilityDto:
        f = HealthcareFacility(
            specialties=dump_json_list(dto.specialties),
            **{name: getattr(dto, name) for name in FACILITY_FIELDS},
        )
        self.session.add(f)
        self.session.commit()
        self.session.refresh(f)
        return self._to_dto(f)

    def save(self, dto: FacilityDto) -> FacilityDto:
        f = self.session.get(HealthcareFacility, dto.id)
        if not f:
            raise LookupError(f"Facility {dto.id} does not exist")
        for name in FACILITY_FIELDS:
            setattr(f, name, getattr(dto, name))
        f.specialties = dump_json_list(dto.specialties)
        f.updated_at = datetime.utcnow()
        self.session.add(f)
        self.session.commit()
        self.session.refresh(f)
        return self._to_dto(f)

    def add_review(self, dto: FacilityReviewDto) -> FacilityReviewDto:
        review = FacilityReview(facility_id=dto.facility_id, user_id=dto.user_id, rating=dto.rating, comment=dto.comment)
        self.session.add(review)
        self.session.commit()
        self.session.refresh(review)
        return FacilityReviewDto(
            id=review.id,
            facility_id=review.facility_id,
            user_id=review.user_id,
            rating=review.rating,
            comment=review.comment,
            created_at=review.created_at,
        )

    def ratings(self, facility_id: int) -> List[int]:
        return list(self.session.exec(
            select(FacilityReview.rating).where(FacilityReview.facility_id == facility_id)
        ).all())
