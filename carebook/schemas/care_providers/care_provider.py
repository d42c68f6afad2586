# carebook/schemas/care_provider.py
from pydantic import Field
from typing import List, Optional
from datetime import datetime

from ..common.common import CamelModel


class CareProviderUpdate(CamelModel):
    provider_type: Optional[str] = None
    services: Optional[List[str]] = None
    years_of_experience: Optional[int] = Field(None, ge=0)
    hourly_rate: Optional[float] = Field(None, ge=0)
    city: Optional[str] = None
    bio: Optional[str] = Field(None, max_length=2000)
    accepts_new_clients: Optional[bool] = None


class CareProviderResponse(CamelModel):
    id: int
    user_id: str
    first_name: str = ""
    last_name: str = ""
    email: Optional[str] = None
    phone: Optional[str] = None
    provider_type: Optional[str] = None
    services: List[str] = []
    years_of_experience: Optional[int] = None
    hourly_rate: Optional[float] = None
    city: Optional[str] = None
    bio: Optional[str] = None
    accepts_new_clients: bool = True
    average_rating: float = 0.0
    is_verified: bool = False
    status: str = "pending"
    created_at: Optional[datetime] = None


class CareProviderDashboardStats(CamelModel):
    profile_completion: int = 0
    is_verified: bool = False
    status: str = "pending"
    average_rating: float = 0.0
    accepting_new_clients: bool = True
    services_count: int = 0
