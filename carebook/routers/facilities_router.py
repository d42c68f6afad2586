import logging
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query

from ..exceptions import create_success_response
from ..application.services.facilities_service import FACILITY_TYPES, FacilitiesService
from ..schemas.facilities.facility import FacilityCreate, FacilityResponse, FacilityReviewCreate, FacilityUpdate
from .deps import CurrentUser, get_current_user, get_facilities_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/healthcare-facilities", tags=["Healthcare Facilities"])


@router.get("")
def list_facilities(
    type: Optional[str] = None,
    city: Optional[str] = None,
    state: Optional[str] = None,
    pincode: Optional[str] = None,
    specialty: Optional[str] = None,
    search: Optional[str] = None,
    limit: int = Query(20, ge=1, le=100),
    skip: int = Query(0, ge=0),
    sort_by: str = Query("rating", alias="sortBy"),
    facilities_service: FacilitiesService = Depends(get_facilities_service),
):
    try:
        facilities, total = facilities_service.list(type, city, state, pincode, specialty, search, limit, skip, sort_by)
        return create_success_response({
            "facilities": [FacilityResponse.model_validate(f).to_wire() for f in facilities],
            "total": total,
            "skip": skip,
            "limit": limit,
        })
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error listing facilities: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to retrieve facilities")


@router.get("/meta/types")
def get_facility_types():
    return create_success_response({"types": list(FACILITY_TYPES)})


@router.get("/{facility_id}")
def get_facility(facility_id: int, facilities_service: FacilitiesService = Depends(get_facilities_service)):
    try:
        return create_success_response(FacilityResponse.model_validate(facilities_service.get(facility_id)).to_wire())
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error retrieving facility {facility_id}: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to retrieve facility")


@router.post("", status_code=201)
def create_facility(
    payload: FacilityCreate,
    current_user: CurrentUser = Depends(get_current_user),
    facilities_service: FacilitiesService = Depends(get_facilities_service),
):
    try:
        facility = facilities_service.create(current_user.id, payload.model_dump(exclude_unset=True))
        return create_success_response(FacilityResponse.model_validate(facility).to_wire(), "Facility created successfully")
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error creating facility: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to create facility")


@router.put("/{facility_id}")
def update_facility(
    facility_id: int,
    payload: FacilityUpdate,
    current_user: CurrentUser = Depends(get_current_user),
    facilities_service: FacilitiesService = Depends(get_facilities_service),
):
    try:
        facility = facilities_service.update(current_user.id, facility_id, payload.model_dump(exclude_unset=True))
        return create_success_response(FacilityResponse.model_validate(facility).to_wire(), "Facility updated successfully")
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error updating facility {facility_id}: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to update facility")


@router.post("/{facility_id}/reviews", status_code=201)
def add_facility_review(
    facility_id: int,
    payload: FacilityReviewCreate,
    current_user: CurrentUser = Depends(get_current_user),
    facilities_service: FacilitiesService = Depends(get_facilities_service),
):
    try:
        facility = facilities_service.add_review(current_user.id, facility_id, payload.rating, payload.comment)
        return create_success_response(FacilityResponse.model_validate(facility).to_wire(), "Review added successfully")
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error reviewing facility {facility_id}: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to add review")
