import logging
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query

from ..exceptions import create_success_response
from ..utils import pagination_meta
from ..application.services.doctors_service import DoctorsService
from ..schemas.doctors.doctor import (
    DashboardStats,
    DoctorResponse,
    DoctorUpdate,
    EducationCreate,
    EducationResponse,
    EducationUpdate,
)
from .deps import CurrentUser, get_doctors_service, require_role

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/doctors", tags=["Doctors"])


@router.get("")
def list_doctors(
    specialty: Optional[str] = None,
    accepting_new_patients: Optional[bool] = Query(None, alias="acceptingNewPatients"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    sort_by: str = Query("rating", alias="sortBy"),
    sort_order: str = Query("desc", alias="sortOrder"),
    doctors_service: DoctorsService = Depends(get_doctors_service),
):
    try:
        doctors, total = doctors_service.list(specialty, accepting_new_patients, page, limit, sort_by, sort_order)
        return create_success_response({
            "doctors": [DoctorResponse.model_validate(d).to_wire() for d in doctors],
            "pagination": pagination_meta(page, limit, total),
        })
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error listing doctors: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to retrieve doctors")


@router.get("/meta/specialties")
def get_specialties(doctors_service: DoctorsService = Depends(get_doctors_service)):
    try:
        return create_success_response({"specialties": doctors_service.specialties()})
    except Exception as e:
        logger.error(f"Error listing specialties: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to retrieve specialties")


@router.get("/profile/me")
def get_my_profile(
    current_user: CurrentUser = Depends(require_role("doctor")),
    doctors_service: DoctorsService = Depends(get_doctors_service),
):
    try:
        profile = doctors_service.get_mine(current_user.id)
        return create_success_response(DoctorResponse.model_validate(profile).to_wire())
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error retrieving doctor profile: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to retrieve profile")


@router.put("/profile/me")
def update_my_profile(
    payload: DoctorUpdate,
    current_user: CurrentUser = Depends(require_role("doctor")),
    doctors_service: DoctorsService = Depends(get_doctors_service),
):
    try:
        profile = doctors_service.update_mine(current_user.id, payload.model_dump(exclude_unset=True))
        return create_success_response(DoctorResponse.model_validate(profile).to_wire(), "Profile updated successfully")
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error updating doctor profile: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to update profile")


@router.post("/profile/education", status_code=201)
def add_education(
    payload: EducationCreate,
    current_user: CurrentUser = Depends(require_role("doctor")),
    doctors_service: DoctorsService = Depends(get_doctors_service),
):
    try:
        entry = doctors_service.add_education(current_user.id, payload.model_dump(exclude_unset=True))
        return create_success_response(EducationResponse.model_validate(entry).to_wire(), "Education entry added successfully")
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error adding education entry: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to add education entry")


@router.put("/profile/education/{education_id}")
def update_education(
    education_id: int,
    payload: EducationUpdate,
    current_user: CurrentUser = Depends(require_role("doctor")),
    doctors_service: DoctorsService = Depends(get_doctors_service),
):
    try:
        entry = doctors_service.update_education(current_user.id, education_id, payload.model_dump(exclude_unset=True))
        return create_success_response(EducationResponse.model_validate(entry).to_wire(), "Education entry updated successfully")
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error updating education entry {education_id}: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to update education entry")


@router.delete("/profile/education/{education_id}")
def delete_education(
    education_id: int,
    current_user: CurrentUser = Depends(require_role("doctor")),
    doctors_service: DoctorsService = Depends(get_doctors_service),
):
    try:
        doctors_service.delete_education(current_user.id, education_id)
        return create_success_response(None, "Education entry deleted successfully")
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error deleting education entry {education_id}: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to delete education entry")


@router.get("/stats/dashboard")
def get_dashboard_stats(
    current_user: CurrentUser = Depends(require_role("doctor")),
    doctors_service: DoctorsService = Depends(get_doctors_service),
):
    try:
        stats = DashboardStats.model_validate(doctors_service.dashboard(current_user.id))
        return create_success_response(stats.to_wire())
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error computing dashboard stats: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to retrieve dashboard stats")


@router.get("/{doctor_id}")
def get_doctor(doctor_id: int, doctors_service: DoctorsService = Depends(get_doctors_service)):
    try:
        return create_success_response(DoctorResponse.model_validate(doctors_service.get(doctor_id)).to_wire())
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error retrieving doctor {doctor_id}: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to retrieve doctor")
