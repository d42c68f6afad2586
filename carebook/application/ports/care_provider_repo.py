from dataclasses import dataclass, field
from typing import List, Optional, Protocol, Tuple
from datetime import datetime


@dataclass
class CareProviderDto:
    id: int
    user_id: str
    first_name: str = ""
    last_name: str = ""
    email: Optional[str] = None
    phone: Optional[str] = None
    provider_type: Optional[str] = None
    services: List[str] = field(default_factory=list)
    years_of_experience: Optional[int] = None
    hourly_rate: Optional[float] = None
    city: Optional[str] = None
    bio: Optional[str] = None
    accepts_new_clients: bool = True
    average_rating: float = 0.0
    is_verified: bool = False
    status: str = "pending"
    created_at: Optional[datetime] = None


@dataclass
class CareProviderFilters:
    provider_type: Optional[str] = None
    service: Optional[str] = None
    accepting_clients: Optional[bool] = None
    offset: int = 0
    limit: int = 10


class CareProvidersRepository(Protocol):
    def list(self, filters: CareProviderFilters) -> Tuple[List[CareProviderDto], int]:
        ...

    def get(self, provider_id: int) -> Optional[CareProviderDto]:
        ...

    def get_by_user(self, user_id: str) -> Optional[CareProviderDto]:
        ...

    def save(self, provider: CareProviderDto) -> CareProviderDto:
        ...
