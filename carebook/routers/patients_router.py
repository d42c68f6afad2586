import logging
from fastapi import APIRouter, Depends, HTTPException

from ..exceptions import create_success_response
from ..application.ports.patient_repo import MedicationDto, PatientProfileDto
from ..application.services.patients_service import PatientsService
from ..schemas.patients.patient import (
    AllergyCreate,
    HealthOverviewUpdate,
    MedicationCreate,
    MedicationResponse,
    MedicalHistoryUpdate,
    MedicationUpdate,
    PatientDashboardStats,
    PatientProfileResponse,
    PatientProfileUpdate,
    VitalSignsUpdate,
)
from .deps import CurrentUser, get_patients_service, require_role

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/patients", tags=["Patients"])


def _profile(profile: PatientProfileDto) -> dict:
    return PatientProfileResponse.model_validate(profile).to_wire()


def _medication(medication: MedicationDto) -> dict:
    return MedicationResponse.model_validate(medication).to_wire()


# =========================
# Patient self-service
# =========================
@router.get("/profile/me")
def get_my_profile(
    current_user: CurrentUser = Depends(require_role("patient")),
    patients_service: PatientsService = Depends(get_patients_service),
):
    try:
        return create_success_response(_profile(patients_service.get_mine(current_user.id)))
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error retrieving patient profile: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to retrieve profile")


@router.put("/profile/me")
def update_my_profile(
    payload: PatientProfileUpdate,
    current_user: CurrentUser = Depends(require_role("patient")),
    patients_service: PatientsService = Depends(get_patients_service),
):
    try:
        profile = patients_service.update_mine(
            current_user.id,
            blood_type=payload.blood_type,
            emergency_contact=payload.emergency_contact.model_dump(exclude_unset=True) if payload.emergency_contact else None,
        )
        return create_success_response(_profile(profile), "Profile updated successfully")
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error updating patient profile: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to update profile")


@router.put("/profile/vital-signs")
def update_vital_signs(
    payload: VitalSignsUpdate,
    current_user: CurrentUser = Depends(require_role("patient")),
    patients_service: PatientsService = Depends(get_patients_service),
):
    try:
        profile = patients_service.update_vital_signs(current_user.id, **payload.model_dump(exclude_unset=True))
        return create_success_response(_profile(profile), "Vital signs updated successfully")
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error updating vital signs: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to update vital signs")


@router.put("/profile/medical-history")
def update_medical_history(
    payload: MedicalHistoryUpdate,
    current_user: CurrentUser = Depends(require_role("patient")),
    patients_service: PatientsService = Depends(get_patients_service),
):
    try:
        profile = patients_service.update_medical_history(current_user.id, payload.model_dump(exclude_unset=True, mode="json"))
        return create_success_response(_profile(profile), "Medical history updated successfully")
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error updating medical history: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to update medical history")


@router.get("/stats/dashboard")
def get_dashboard_stats(
    current_user: CurrentUser = Depends(require_role("patient")),
    patients_service: PatientsService = Depends(get_patients_service),
):
    try:
        stats = PatientDashboardStats.model_validate(patients_service.dashboard(current_user.id))
        return create_success_response(stats.to_wire())
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error computing patient dashboard stats: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to retrieve dashboard stats")


@router.post("/profile/allergies", status_code=201)
def add_allergy(
    payload: AllergyCreate,
    current_user: CurrentUser = Depends(require_role("patient")),
    patients_service: PatientsService = Depends(get_patients_service),
):
    try:
        profile = patients_service.add_allergy(current_user.id, payload.allergen, payload.reaction, payload.severity)
        return create_success_response(_profile(profile), "Allergy added successfully")
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error adding allergy: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to add allergy")


@router.post("/profile/medication", status_code=201)
def add_my_medication(
    payload: MedicationCreate,
    current_user: CurrentUser = Depends(require_role("patient")),
    patients_service: PatientsService = Depends(get_patients_service),
):
    try:
        medication = patients_service.add_my_medication(current_user.id, payload.model_dump(exclude_unset=True))
        return create_success_response(_medication(medication), "Medication added successfully")
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error adding medication: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to add medication")


@router.put("/profile/medication/{medication_id}")
def update_my_medication(
    medication_id: int,
    payload: MedicationUpdate,
    current_user: CurrentUser = Depends(require_role("patient")),
    patients_service: PatientsService = Depends(get_patients_service),
):
    try:
        medication = patients_service.update_my_medication(current_user.id, medication_id, payload.model_dump(exclude_unset=True))
        return create_success_response(_medication(medication), "Medication updated successfully")
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error updating medication {medication_id}: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to update medication")


# =========================
# Doctor access
# =========================
@router.get("/profile/by-id/{patient_id}")
def get_patient_profile(
    patient_id: int,
    current_user: CurrentUser = Depends(require_role("doctor")),
    patients_service: PatientsService = Depends(get_patients_service),
):
    try:
        return create_success_response(_profile(patients_service.get_for_doctor(current_user.id, patient_id)))
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error retrieving patient {patient_id}: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to retrieve patient")


@router.put("/profile/{patient_id}/health-overview")
def update_health_overview(
    patient_id: int,
    payload: HealthOverviewUpdate,
    current_user: CurrentUser = Depends(require_role("doctor")),
    patients_service: PatientsService = Depends(get_patients_service),
):
    try:
        profile = patients_service.update_health_overview(current_user.id, patient_id, payload.model_dump(exclude_unset=True))
        return create_success_response(_profile(profile), "Health overview updated successfully")
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error updating health overview of {patient_id}: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to update health overview")


@router.post("/profile/{patient_id}/medication", status_code=201)
def add_patient_medication(
    patient_id: int,
    payload: MedicationCreate,
    current_user: CurrentUser = Depends(require_role("doctor")),
    patients_service: PatientsService = Depends(get_patients_service),
):
    try:
        medication = patients_service.add_medication_for(current_user.id, patient_id, payload.model_dump(exclude_unset=True))
        return create_success_response(_medication(medication), "Medication added successfully")
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error adding medication for {patient_id}: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to add medication")


@router.put("/profile/{patient_id}/medication/{medication_id}")
def update_patient_medication(
    patient_id: int,
    medication_id: int,
    payload: MedicationUpdate,
    current_user: CurrentUser = Depends(require_role("doctor")),
    patients_service: PatientsService = Depends(get_patients_service),
):
    try:
        medication = patients_service.update_medication_for(
            current_user.id, patient_id, medication_id, payload.model_dump(exclude_unset=True)
        )
        return create_success_response(_medication(medication), "Medication updated successfully")
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error updating medication {medication_id} of {patient_id}: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to update medication")


@router.delete("/profile/{patient_id}/medication/{medication_id}")
def delete_patient_medication(
    patient_id: int,
    medication_id: int,
    current_user: CurrentUser = Depends(require_role("doctor")),
    patients_service: PatientsService = Depends(get_patients_service),
):
    try:
        patients_service.delete_medication_for(current_user.id, patient_id, medication_id)
        return create_success_response(None, "Medication deleted successfully")
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error deleting medication {medication_id} of {patient_id}: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to delete medication")
