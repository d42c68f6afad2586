# carebook/db/models/facilities/care_provider.py
from typing import Optional
from sqlmodel import SQLModel, Field
from datetime import datetime

class CareProvider(SQLModel, table=True):
    __tablename__ = "care_providers"
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: str = Field(foreign_key="users.id", unique=True, index=True)
    provider_type: Optional[str] = Field(default=None, index=True)
    services: str = Field(default="[]")
    years_of_experience: Optional[int] = None
    hourly_rate: Optional[float] = None
    city: Optional[str] = None
    bio: Optional[str] = Field(default=None, max_length=2000)
    accepts_new_clients: bool = Field(default=True)
    average_rating: float = Field(default=0.0)
    is_verified: bool = Field(default=False)
    status: str = Field(default="pending")
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
