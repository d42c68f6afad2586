# carebook/db/models/facilities/facility.py
from typing import Optional, List
from sqlmodel import SQLModel, Field, Relationship
from datetime import datetime

class HealthcareFacility(SQLModel, table=True):
    __tablename__ = "healthcare_facilities"
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(max_length=200, index=True)
    type: str = Field(index=True)
    sub_category: Optional[str] = None
    description: Optional[str] = Field(default=None, max_length=2000)
    phone: Optional[str] = None
    email: Optional[str] = None
    website: Optional[str] = None
    street: Optional[str] = None
    area: Optional[str] = None
    city: Optional[str] = Field(default=None, index=True)
    state: Optional[str] = Field(default=None, index=True)
    pincode: Optional[str] = Field(default=None, index=True)
    country: str = Field(default="India")
    specialties: str = Field(default="[]")
    rating_overall: float = Field(default=0.0)
    rating_count: int = Field(default=0)
    status: str = Field(default="active")
    owner_user_id: Optional[str] = Field(default=None, foreign_key="users.id")
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    # Relationships
    reviews: List["FacilityReview"] = Relationship(back_populates="facility")


class FacilityReview(SQLModel, table=True):
    __tablename__ = "facility_reviews"
    id: Optional[int] = Field(default=None, primary_key=True)
    facility_id: int = Field(foreign_key="healthcare_facilities.id", index=True)
    user_id: str = Field(foreign_key="users.id")
    rating: int
    comment: Optional[str] = Field(default=None, max_length=1000)
    created_at: datetime = Field(default_factory=datetime.utcnow)

    facility: Optional[HealthcareFacility] = Relationship(back_populates="reviews")
