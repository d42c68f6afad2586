from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple
from fastapi import HTTPException

from ..ports.care_provider_repo import CareProvidersRepository, CareProviderDto, CareProviderFilters

EDITABLE_FIELDS = ("provider_type", "services", "years_of_experience", "hourly_rate", "city", "bio", "accepts_new_clients")
# Fields that count towards profile completion
COMPLETION_FIELDS = ("provider_type", "services", "years_of_experience", "hourly_rate", "city", "bio")


def profile_completion(provider: CareProviderDto) -> int:
    filled = sum(1 for name in COMPLETION_FIELDS if getattr(provider, name) not in (None, "", []))
    return round(filled * 100 / len(COMPLETION_FIELDS))


@dataclass
class CareProvidersService:
    repo: CareProvidersRepository

    def list(self, provider_type: Optional[str] = None, service: Optional[str] = None,
             accepting_clients: Optional[bool] = None, page: int = 1, limit: int = 10) -> Tuple[List[CareProviderDto], int]:
        page = max(page, 1)
        return self.repo.list(CareProviderFilters(
            provider_type=provider_type,
            service=service,
            accepting_clients=accepting_clients,
            offset=(page - 1) * limit,
            limit=limit,
        ))

    def get(self, provider_id: int) -> CareProviderDto:
        provider = self.repo.get(provider_id)
        if not provider:
            raise HTTPException(status_code=404, detail="Care provider not found")
        return provider

    def get_mine(self, user_id: str) -> CareProviderDto:
        provider = self.repo.get_by_user(user_id)
        if not provider:
            raise HTTPException(status_code=404, detail="Care provider profile not found")
        return provider

    def update_mine(self, user_id: str, changes: Dict[str, Any]) -> CareProviderDto:
        provider = self.get_mine(user_id)
        for name, value in changes.items():
            if name in EDITABLE_FIELDS and value is not None:
                setattr(provider, name, value)
        if provider.hourly_rate is not None and provider.hourly_rate < 0:
            raise HTTPException(status_code=400, detail="Hourly rate cannot be negative")
        return self.repo.save(provider)

    def dashboard(self, user_id: str) -> Dict[str, Any]:
        provider = self.get_mine(user_id)
        return {
            "profileCompletion": profile_completion(provider),
            "isVerified": provider.is_verified,
            "status": provider.status,
            "averageRating": provider.average_rating,
            "acceptingNewClients": provider.accepts_new_clients,
            "servicesCount": len(provider.services),
        }
