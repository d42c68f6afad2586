from dataclasses import dataclass, field
from typing import List, Optional, Protocol, Tuple
from datetime import datetime


@dataclass
class FacilityDto:
    id: Optional[int]
    name: str
    type: str
    sub_category: Optional[str] = None
    description: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    website: Optional[str] = None
    street: Optional[str] = None
    area: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    pincode: Optional[str] = None
    country: str = "India"
    specialties: List[str] = field(default_factory=list)
    rating_overall: float = 0.0
    rating_count: int = 0
    status: str = "active"
    owner_user_id: Optional[str] = None
    created_at: Optional[datetime] = None


@dataclass
class FacilityReviewDto:
    id: Optional[int]
    facility_id: int
    user_id: str
    rating: int
    comment: Optional[str] = None
    created_at: Optional[datetime] = None


@dataclass
class FacilityFilters:
    type: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    pincode: Optional[str] = None
    specialty: Optional[str] = None
    search: Optional[str] = None
    sort_by: str = "rating"
    skip: int = 0
    limit: int = 20


class FacilitiesRepository(Protocol):
    def list(self, filters: FacilityFilters) -> Tuple[List[FacilityDto], int]:
        ...

    def get(self, facility_id: int) -> Optional[FacilityDto]:
        ...

    def create(self, facility: FacilityDto) -> FacilityDto:
        ...

    def save(self, facility: FacilityDto) -> FacilityDto:
        ...

    def add_review(self, review: FacilityReviewDto) -> FacilityReviewDto:
        ...

    def ratings(self, facility_id: int) -> List[int]:
        ...
