# carebook/schemas/facility.py
from pydantic import Field
from typing import List, Optional
from datetime import datetime

from ..common.common import CamelModel


class FacilityCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=200)
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
    country: Optional[str] = None
    specialties: Optional[List[str]] = None


class FacilityUpdate(FacilityCreate):
    name: Optional[str] = Field(None, max_length=200)
    type: Optional[str] = None


class FacilityReviewCreate(CamelModel):
    rating: int = Field(..., ge=1, le=5)
    comment: Optional[str] = Field(None, max_length=1000)


class FacilityResponse(CamelModel):
    id: int
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
    specialties: List[str] = []
    rating_overall: float = 0.0
    rating_count: int = 0
    status: str = "active"
    created_at: Optional[datetime] = None
