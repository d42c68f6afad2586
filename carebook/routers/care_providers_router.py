import logging
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query

from ..exceptions import create_success_response
from ..utils import pagination_meta
from ..application.services.care_providers_service import CareProvidersService
from ..schemas.care_providers.care_provider import (
    CareProviderDashboardStats,
    CareProviderResponse,
    CareProviderUpdate,
)
from .deps import CurrentUser, get_care_providers_service, require_role

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/care-providers", tags=["Care Providers"])


@router.get("")
def list_care_providers(
    provider_type: Optional[str] = Query(None, alias="providerType"),
    service: Optional[str] = None,
    accepting_clients: Optional[bool] = Query(None, alias="acceptingClients"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    providers_service: CareProvidersService = Depends(get_care_providers_service),
):
    try:
        providers, total = providers_service.list(provider_type, service, accepting_clients, page, limit)
        return create_success_response({
            "careProviders": [CareProviderResponse.model_validate(p).to_wire() for p in providers],
            "pagination": pagination_meta(page, limit, total),
        })
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error listing care providers: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to retrieve care providers")


@router.get("/profile/me")
def get_my_profile(
    current_user: CurrentUser = Depends(require_role("careprovider")),
    providers_service: CareProvidersService = Depends(get_care_providers_service),
):
    try:
        return create_success_response(CareProviderResponse.model_validate(providers_service.get_mine(current_user.id)).to_wire())
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error retrieving care provider profile: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to retrieve profile")


@router.put("/profile/me")
def update_my_profile(
    payload: CareProviderUpdate,
    current_user: CurrentUser = Depends(require_role("careprovider")),
    providers_service: CareProvidersService = Depends(get_care_providers_service),
):
    try:
        provider = providers_service.update_mine(current_user.id, payload.model_dump(exclude_unset=True))
        return create_success_response(CareProviderResponse.model_validate(provider).to_wire(), "Profile updated successfully")
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error updating care provider profile: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to update profile")


@router.get("/stats/dashboard")
def get_dashboard_stats(
    current_user: CurrentUser = Depends(require_role("careprovider")),
    providers_service: CareProvidersService = Depends(get_care_providers_service),
):
    try:
        stats = CareProviderDashboardStats.model_validate(providers_service.dashboard(current_user.id))
        return create_success_response(stats.to_wire())
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error computing care provider dashboard stats: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to retrieve dashboard stats")


@router.get("/{provider_id}")
def get_care_provider(provider_id: int, providers_service: CareProvidersService = Depends(get_care_providers_service)):
    try:
        return create_success_response(CareProviderResponse.model_validate(providers_service.get(provider_id)).to_wire())
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error retrieving care provider {provider_id}: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to retrieve care provider")
