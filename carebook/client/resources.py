from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple, Type, Union

from pydantic import BaseModel

from ..schemas.common.common import CamelModel, Pagination
from ..schemas.auth.auth import AuthResponse, ChangePasswordRequest, RegisterRequest, UpdateProfileRequest, UserResponse
from ..schemas.appointments.appointment import (
    AppointmentBucketsResponse,
    AppointmentResponse,
    BookAppointmentRequest,
    DoctorPatientResponse,
    ProposeRescheduleRequest,
)
from ..schemas.slots.slot import SlotCreate, SlotResponse, SlotUpdate
from ..schemas.doctors.doctor import (
    DashboardStats,
    DoctorResponse,
    DoctorUpdate,
    EducationCreate,
    EducationResponse,
    EducationUpdate,
)
from ..schemas.patients.patient import (
    HealthOverviewUpdate,
    MedicalHistoryUpdate,
    MedicationCreate,
    MedicationResponse,
    MedicationUpdate,
    PatientDashboardStats,
    PatientProfileResponse,
)
from ..schemas.facilities.facility import FacilityCreate, FacilityResponse
from ..schemas.care_providers.care_provider import CareProviderDashboardStats, CareProviderResponse, CareProviderUpdate
from .api import ApiClient

DateLike = Union[datetime, str]


def _body(model: Type[CamelModel], data: Dict[str, Any]) -> Dict[str, Any]:
    """Validate snake_case or camelCase input and render it camelCase."""
    return model.model_validate(data).model_dump(by_alias=True, exclude_unset=True, mode="json")


def _parse_list(model: Type[BaseModel], items: Optional[List[Dict[str, Any]]]) -> list:
    return [model.model_validate(item) for item in items or []]


def _iso(value: Optional[DateLike]) -> Optional[str]:
    if isinstance(value, datetime):
        return value.isoformat()
    return value


class _Resource:
    def __init__(self, client: ApiClient):
        self.client = client


class AuthAPI(_Resource):
    def register(self, **fields) -> AuthResponse:
        data = AuthResponse.model_validate(self.client.post("/api/auth/register", _body(RegisterRequest, fields)))
        if self.client.session is not None:
            self.client.session.login(data.token, data.user, data.refresh_token)
        return data

    def login(self, email: str, password: str) -> AuthResponse:
        data = AuthResponse.model_validate(self.client.post("/api/auth/login", {"email": email, "password": password}))
        if self.client.session is not None:
            self.client.session.login(data.token, data.user, data.refresh_token)
        return data

    def me(self) -> UserResponse:
        return UserResponse.model_validate(self.client.get("/api/auth/me"))

    def logout(self) -> None:
        try:
            self.client.post("/api/auth/logout")
        finally:
            if self.client.session is not None:
                self.client.session.logout()

    def refresh(self, refresh_token: str) -> str:
        return self.client.post("/api/auth/refresh", {"refreshToken": refresh_token})["token"]

    def change_password(self, current_password: str, new_password: str) -> None:
        self.client.put("/api/auth/change-password", _body(ChangePasswordRequest, {
            "current_password": current_password,
            "new_password": new_password,
        }))

    def update_profile(self, **fields) -> UserResponse:
        return UserResponse.model_validate(self.client.put("/api/auth/update-profile", _body(UpdateProfileRequest, fields)))


class AppointmentsAPI(_Resource):
    base = "/api/appointments"

    def _one(self, data: Dict[str, Any]) -> AppointmentResponse:
        return AppointmentResponse.model_validate(data)

    # booking
    def book_slot(self, slot_id: int, reason_for_visit: str, **extra) -> AppointmentResponse:
        body = _body(BookAppointmentRequest, {"slot_id": slot_id, "reason_for_visit": reason_for_visit, **extra})
        return self._one(self.client.post(self.base, body))

    def request_custom(self, doctor_id: int, requested_date_time: DateLike, reason_for_visit: str, **extra) -> AppointmentResponse:
        body = _body(BookAppointmentRequest, {
            "doctor_id": doctor_id,
            "requested_date_time": requested_date_time,
            "reason_for_visit": reason_for_visit,
            **extra,
        })
        return self._one(self.client.post(self.base, body))

    # reads
    def get_doctor_appointments(self, status: Optional[str] = None, from_date: Optional[DateLike] = None,
                                to_date: Optional[DateLike] = None, page: int = 1,
                                limit: int = 10) -> Tuple[List[AppointmentResponse], Pagination]:
        data = self.client.get(f"{self.base}/doctor/my", params={
            "status": status,
            "fromDate": _iso(from_date),
            "toDate": _iso(to_date),
            "page": page,
            "limit": limit,
        })
        return _parse_list(AppointmentResponse, data["appointments"]), Pagination.model_validate(data["pagination"])

    def get_my_appointments(self, status: Optional[str] = None, limit: Optional[int] = None) -> List[AppointmentResponse]:
        data = self.client.get(f"{self.base}/patient/my", params={"status": status, "limit": limit})
        return _parse_list(AppointmentResponse, data["appointments"])

    def get_appointment(self, appointment_id: int) -> AppointmentResponse:
        return self._one(self.client.get(f"{self.base}/{appointment_id}"))

    def get_buckets(self, role: str) -> AppointmentBucketsResponse:
        if role not in ("doctor", "patient"):
            raise ValueError("role must be 'doctor' or 'patient'")
        return AppointmentBucketsResponse.model_validate(self.client.get(f"{self.base}/{role}/my/buckets"))

    def get_doctor_patients(self) -> List[DoctorPatientResponse]:
        return _parse_list(DoctorPatientResponse, self.client.get(f"{self.base}/doctor/patients")["patients"])

    # status changes
    def update_status(self, appointment_id: int, status: str, **fields) -> AppointmentResponse:
        body = {"status": status}
        body.update({k: v for k, v in {
            "reason": fields.get("reason"),
            "doctorNotes": fields.get("doctor_notes"),
            "diagnosis": fields.get("diagnosis"),
            "treatmentPlan": fields.get("treatment_plan"),
        }.items() if v is not None})
        return self._one(self.client.put(f"{self.base}/{appointment_id}/status", body))

    def approve_appointment(self, appointment_id: int, doctor_notes: Optional[str] = None) -> AppointmentResponse:
        return self.update_status(appointment_id, "confirmed", doctor_notes=doctor_notes)

    def reject_appointment(self, appointment_id: int, reason: Optional[str] = None) -> AppointmentResponse:
        return self.update_status(appointment_id, "rejected", reason=reason)

    def complete_appointment(self, appointment_id: int, doctor_notes: Optional[str] = None, diagnosis: Optional[str] = None,
                             treatment_plan: Optional[str] = None) -> AppointmentResponse:
        return self.update_status(appointment_id, "completed", doctor_notes=doctor_notes, diagnosis=diagnosis,
                                  treatment_plan=treatment_plan)

    def cancel_appointment(self, appointment_id: int, reason: Optional[str] = None) -> AppointmentResponse:
        return self.update_status(appointment_id, "cancelled", reason=reason)

    # rescheduling
    def propose_reschedule(self, appointment_id: int, proposed_slot_id: Optional[int] = None,
                           proposed_date_time: Optional[DateLike] = None, reason: Optional[str] = None) -> AppointmentResponse:
        body = _body(ProposeRescheduleRequest, {
            "proposed_slot_id": proposed_slot_id,
            "proposed_date_time": proposed_date_time,
            "reason": reason,
        })
        return self._one(self.client.post(f"{self.base}/{appointment_id}/reschedule/propose", body))

    def decide_reschedule(self, appointment_id: int, decision: str, reason: Optional[str] = None) -> AppointmentResponse:
        body = {"decision": decision, "reason": reason}
        return self._one(self.client.put(f"{self.base}/{appointment_id}/reschedule/decision", body))

    def reschedule_to_slot(self, appointment_id: int, new_slot_id: int, reason: Optional[str] = None) -> AppointmentResponse:
        body = {"newSlotId": new_slot_id, "reason": reason}
        return self._one(self.client.put(f"{self.base}/{appointment_id}/reschedule", body))

    def review(self, appointment_id: int, rating: int, feedback: Optional[str] = None) -> AppointmentResponse:
        body = {"rating": rating, "feedback": feedback}
        return self._one(self.client.put(f"{self.base}/{appointment_id}/review", body))


class SlotsAPI(_Resource):
    base = "/api/appointments/slots"

    def get_my_slots(self, status: str = "all", from_date: Optional[DateLike] = None, to_date: Optional[DateLike] = None,
                     page: int = 1, limit: int = 50) -> Tuple[List[SlotResponse], Pagination]:
        data = self.client.get(f"{self.base}/my", params={
            "status": status,
            "fromDate": _iso(from_date),
            "toDate": _iso(to_date),
            "page": page,
            "limit": limit,
        })
        return _parse_list(SlotResponse, data["slots"]), Pagination.model_validate(data["pagination"])

    def create_slot(self, date_time: DateLike, **fields) -> SlotResponse:
        return SlotResponse.model_validate(self.client.post(self.base, _body(SlotCreate, {"date_time": date_time, **fields})))

    def update_slot(self, slot_id: int, **changes) -> SlotResponse:
        return SlotResponse.model_validate(self.client.put(f"{self.base}/{slot_id}", _body(SlotUpdate, changes)))

    def delete_slot(self, slot_id: int) -> None:
        self.client.delete(f"{self.base}/{slot_id}")

    def delete_all_slots(self) -> int:
        return int(self.client.delete(f"{self.base}/all")["deletedCount"])

    def get_doctor_slots(self, doctor_id: int) -> List[SlotResponse]:
        return _parse_list(SlotResponse, self.client.get(f"{self.base}/doctor/{doctor_id}")["slots"])


class DoctorAPI(_Resource):
    base = "/api/doctors"

    def list_doctors(self, specialty: Optional[str] = None, accepting_new_patients: Optional[bool] = None, page: int = 1,
                     limit: int = 10, sort_by: str = "rating", sort_order: str = "desc") -> Tuple[List[DoctorResponse], Pagination]:
        data = self.client.get(self.base, params={
            "specialty": specialty,
            "acceptingNewPatients": accepting_new_patients,
            "page": page,
            "limit": limit,
            "sortBy": sort_by,
            "sortOrder": sort_order,
        })
        return _parse_list(DoctorResponse, data["doctors"]), Pagination.model_validate(data["pagination"])

    def get_specialties(self) -> List[str]:
        return list(self.client.get(f"{self.base}/meta/specialties")["specialties"])

    def get_doctor(self, doctor_id: int) -> DoctorResponse:
        return DoctorResponse.model_validate(self.client.get(f"{self.base}/{doctor_id}"))

    def get_my_profile(self) -> DoctorResponse:
        return DoctorResponse.model_validate(self.client.get(f"{self.base}/profile/me"))

    def update_my_profile(self, **changes) -> DoctorResponse:
        return DoctorResponse.model_validate(self.client.put(f"{self.base}/profile/me", _body(DoctorUpdate, changes)))

    def get_dashboard_stats(self) -> DashboardStats:
        return DashboardStats.model_validate(self.client.get(f"{self.base}/stats/dashboard"))

    def add_education(self, data: Dict[str, Any]) -> EducationResponse:
        return EducationResponse.model_validate(self.client.post(f"{self.base}/profile/education", _body(EducationCreate, data)))

    def update_education(self, education_id: int, data: Dict[str, Any]) -> EducationResponse:
        body = _body(EducationUpdate, data)
        return EducationResponse.model_validate(self.client.put(f"{self.base}/profile/education/{education_id}", body))

    def delete_education(self, education_id: int) -> None:
        self.client.delete(f"{self.base}/profile/education/{education_id}")


class PatientAPI(_Resource):
    base = "/api/patients"

    def get_my_profile(self) -> PatientProfileResponse:
        return PatientProfileResponse.model_validate(self.client.get(f"{self.base}/profile/me"))

    def update_medical_history(self, data: Dict[str, Any]) -> PatientProfileResponse:
        body = _body(MedicalHistoryUpdate, data)
        return PatientProfileResponse.model_validate(self.client.put(f"{self.base}/profile/medical-history", body))

    def get_dashboard_stats(self) -> PatientDashboardStats:
        return PatientDashboardStats.model_validate(self.client.get(f"{self.base}/stats/dashboard"))


class DoctorPatientsAPI(_Resource):
    """Doctor-side access to the records of their own patients."""
    base = "/api/patients/profile"

    def get_patient_profile(self, patient_id: int) -> PatientProfileResponse:
        return PatientProfileResponse.model_validate(self.client.get(f"{self.base}/by-id/{patient_id}"))

    def update_health_overview(self, patient_id: int, data: Dict[str, Any]) -> PatientProfileResponse:
        body = _body(HealthOverviewUpdate, data)
        return PatientProfileResponse.model_validate(self.client.put(f"{self.base}/{patient_id}/health-overview", body))

    def add_medication(self, patient_id: int, data: Dict[str, Any]) -> MedicationResponse:
        body = _body(MedicationCreate, data)
        return MedicationResponse.model_validate(self.client.post(f"{self.base}/{patient_id}/medication", body))

    def update_medication(self, patient_id: int, medication_id: int, data: Dict[str, Any]) -> MedicationResponse:
        body = _body(MedicationUpdate, data)
        return MedicationResponse.model_validate(self.client.put(f"{self.base}/{patient_id}/medication/{medication_id}", body))

    def delete_medication(self, patient_id: int, medication_id: int) -> None:
        self.client.delete(f"{self.base}/{patient_id}/medication/{medication_id}")


class CareProviderAPI(_Resource):
    base = "/api/care-providers"

    def list_providers(self, provider_type: Optional[str] = None, service: Optional[str] = None,
                       accepting_clients: Optional[bool] = None, page: int = 1,
                       limit: int = 10) -> Tuple[List[CareProviderResponse], Pagination]:
        data = self.client.get(self.base, params={
            "providerType": provider_type,
            "service": service,
            "acceptingClients": accepting_clients,
            "page": page,
            "limit": limit,
        })
        return _parse_list(CareProviderResponse, data["careProviders"]), Pagination.model_validate(data["pagination"])

    def get_provider(self, provider_id: int) -> CareProviderResponse:
        return CareProviderResponse.model_validate(self.client.get(f"{self.base}/{provider_id}"))

    def get_my_profile(self) -> CareProviderResponse:
        return CareProviderResponse.model_validate(self.client.get(f"{self.base}/profile/me"))

    def update_my_profile(self, **changes) -> CareProviderResponse:
        return CareProviderResponse.model_validate(self.client.put(f"{self.base}/profile/me", _body(CareProviderUpdate, changes)))

    def get_dashboard_stats(self) -> CareProviderDashboardStats:
        return CareProviderDashboardStats.model_validate(self.client.get(f"{self.base}/stats/dashboard"))


class FacilitiesAPI(_Resource):
    base = "/api/healthcare-facilities"

    def list_facilities(self, type: Optional[str] = None, city: Optional[str] = None, state: Optional[str] = None,
                        pincode: Optional[str] = None, specialty: Optional[str] = None, search: Optional[str] = None,
                        limit: int = 20, skip: int = 0, sort_by: str = "rating") -> Tuple[List[FacilityResponse], int]:
        data = self.client.get(self.base, params={
            "type": type,
            "city": city,
            "state": state,
            "pincode": pincode,
            "specialty": specialty,
            "search": search,
            "limit": limit,
            "skip": skip,
            "sortBy": sort_by,
        })
        return _parse_list(FacilityResponse, data["facilities"]), int(data["total"])

    def get_facility(self, facility_id: int) -> FacilityResponse:
        return FacilityResponse.model_validate(self.client.get(f"{self.base}/{facility_id}"))

    def create_facility(self, data: Dict[str, Any]) -> FacilityResponse:
        return FacilityResponse.model_validate(self.client.post(self.base, _body(FacilityCreate, data)))

    def add_review(self, facility_id: int, rating: int, comment: Optional[str] = None) -> FacilityResponse:
        body = {"rating": rating, "comment": comment}
        return FacilityResponse.model_validate(self.client.post(f"{self.base}/{facility_id}/reviews", body))
