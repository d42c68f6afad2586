import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple
from fastapi import HTTPException

from ..ports.facility_repo import FacilitiesRepository, FacilityDto, FacilityFilters, FacilityReviewDto

logger = logging.getLogger(__name__)

FACILITY_TYPES = ("pharmacy", "clinic", "hospital", "lab", "diagnostic_center", "primary_care")
SORT_FIELDS = ("rating", "name")
EDITABLE_FIELDS = (
    "name", "sub_category", "description", "phone", "email", "website",
    "street", "area", "city", "state", "pincode", "country", "specialties",
)
MAX_LIMIT = 100


@dataclass
class FacilitiesService:
    repo: FacilitiesRepository

    def list(self, type: Optional[str] = None, city: Optional[str] = None, state: Optional[str] = None,
             pincode: Optional[str] = None, specialty: Optional[str] = None, search: Optional[str] = None,
             limit: int = 20, skip: int = 0, sort_by: str = "rating") -> Tuple[List[FacilityDto], int]:
        if type is not None and type not in FACILITY_TYPES:
            raise HTTPException(status_code=400, detail=f"Invalid facility type. Must be one of: {list(FACILITY_TYPES)}")
        if sort_by not in SORT_FIELDS:
            raise HTTPException(status_code=400, detail=f"Invalid sortBy. Must be one of: {list(SORT_FIELDS)}")
        return self.repo.list(FacilityFilters(
            type=type,
            city=city,
            state=state,
            pincode=pincode,
            specialty=specialty,
            search=(search or "").strip() or None,
            sort_by=sort_by,
            skip=max(skip, 0),
            limit=min(max(limit, 1), MAX_LIMIT),
        ))

    def get(self, facility_id: int) -> FacilityDto:
        facility = self.repo.get(facility_id)
        if not facility:
            raise HTTPException(status_code=404, detail="Facility not found")
        return facility

    def create(self, owner_user_id: str, data: Dict[str, Any]) -> FacilityDto:
        name = (data.get("name") or "").strip()
        if not name:
            raise HTTPException(status_code=400, detail="Facility name is required")
        if data.get("type") not in FACILITY_TYPES:
            raise HTTPException(status_code=400, detail=f"Invalid facility type. Must be one of: {list(FACILITY_TYPES)}")
        facility = FacilityDto(id=None, name=name, type=data["type"], owner_user_id=owner_user_id)
        for field_name in EDITABLE_FIELDS:
            if field_name != "name" and data.get(field_name) is not None:
                setattr(facility, field_name, data[field_name])
        facility = self.repo.create(facility)
        logger.info(f"Facility {facility.id} created by {owner_user_id}")
        return facility

    def update(self, user_id: str, facility_id: int, data: Dict[str, Any]) -> FacilityDto:
        facility = self.get(facility_id)
        if facility.owner_user_id != user_id:
            raise HTTPException(status_code=403, detail="Only the facility owner can update it")
        for field_name in EDITABLE_FIELDS:
            if data.get(field_name) is not None:
                setattr(facility, field_name, data[field_name])
        if not facility.name.strip():
            raise HTTPException(status_code=400, detail="Facility name is required")
        return self.repo.save(facility)

    def add_review(self, user_id: str, facility_id: int, rating: int, comment: Optional[str] = None) -> FacilityDto:
        facility = self.get(facility_id)
        if rating is None or not 1 <= int(rating) <= 5:
            raise HTTPException(status_code=400, detail="Rating must be between 1 and 5")
        self.repo.add_review(FacilityReviewDto(id=None, facility_id=facility_id, user_id=user_id, rating=int(rating), comment=comment))
        ratings = self.repo.ratings(facility_id)
        facility.rating_count = len(ratings)
        facility.rating_overall = round(sum(ratings) / len(ratings), 1) if ratings else 0.0
        return self.repo.save(facility)
