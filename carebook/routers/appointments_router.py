import logging
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query

from ..exceptions import create_success_response
from ..utils import pagination_meta
from ..application.ports.appointments_repo import AppointmentDto
from ..application.services.appointments_service import AppointmentsService
from ..schemas.appointments.appointment import (
    AppointmentBucketsResponse,
    AppointmentResponse,
    BookAppointmentRequest,
    DoctorPatientResponse,
    ProposeRescheduleRequest,
    RescheduleDecisionRequest,
    RescheduleRequest,
    ReviewRequest,
    StatusUpdateRequest,
)
from .deps import CurrentUser, get_appointments_service, get_current_user, require_role

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/appointments", tags=["Appointments"])


def _appt(appt: AppointmentDto) -> dict:
    return AppointmentResponse.model_validate(appt).to_wire()


@router.post("", status_code=201)
def book_appointment(
    payload: BookAppointmentRequest,
    current_user: CurrentUser = Depends(require_role("patient")),
    appt_service: AppointmentsService = Depends(get_appointments_service),
):
    """Book a published slot, or request a custom time with a doctor."""
    try:
        appt = appt_service.book(
            current_user.id,
            payload.reason_for_visit,
            slot_id=payload.slot_id,
            doctor_id=payload.doctor_id,
            requested_date_time=payload.requested_date_time,
            appointment_type=payload.appointment_type,
            consultation_type=payload.consultation_type,
            symptoms=payload.symptoms,
            duration=payload.duration,
        )
        return create_success_response(_appt(appt), "Appointment booked successfully")
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error booking appointment: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to book appointment")


@router.get("/doctor/my")
def get_doctor_appointments(
    status: Optional[str] = None,
    from_date: Optional[str] = Query(None, alias="fromDate"),
    to_date: Optional[str] = Query(None, alias="toDate"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    current_user: CurrentUser = Depends(require_role("doctor")),
    appt_service: AppointmentsService = Depends(get_appointments_service),
):
    try:
        appts, total = appt_service.list_for_doctor(current_user.id, status, from_date, to_date, page, limit)
        return create_success_response({
            "appointments": [_appt(a) for a in appts],
            "pagination": pagination_meta(page, limit, total),
        })
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error retrieving doctor appointments: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to retrieve appointments")


@router.get("/patient/my")
def get_patient_appointments(
    status: Optional[str] = None,
    limit: Optional[int] = Query(None, ge=1, le=200),
    current_user: CurrentUser = Depends(require_role("patient")),
    appt_service: AppointmentsService = Depends(get_appointments_service),
):
    try:
        appts = appt_service.list_for_patient(current_user.id, status, limit)
        return create_success_response({"appointments": [_appt(a) for a in appts]})
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error retrieving patient appointments: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to retrieve appointments")


def _buckets(current_user: CurrentUser, appt_service: AppointmentsService) -> dict:
    buckets = appt_service.buckets_for(current_user.id, current_user.user_type)
    data = AppointmentBucketsResponse(
        pending=[AppointmentResponse.model_validate(a) for a in buckets.pending],
        upcoming=[AppointmentResponse.model_validate(a) for a in buckets.upcoming],
        completed=[AppointmentResponse.model_validate(a) for a in buckets.completed],
        cancelled=[AppointmentResponse.model_validate(a) for a in buckets.cancelled],
    )
    return create_success_response({**data.to_wire(), "counts": buckets.counts()})


@router.get("/doctor/my/buckets")
def get_doctor_buckets(
    current_user: CurrentUser = Depends(require_role("doctor")),
    appt_service: AppointmentsService = Depends(get_appointments_service),
):
    try:
        return _buckets(current_user, appt_service)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error classifying doctor appointments: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to retrieve appointments")


@router.get("/patient/my/buckets")
def get_patient_buckets(
    current_user: CurrentUser = Depends(require_role("patient")),
    appt_service: AppointmentsService = Depends(get_appointments_service),
):
    try:
        return _buckets(current_user, appt_service)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error classifying patient appointments: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to retrieve appointments")


@router.get("/doctor/patients")
def get_doctor_patients(
    current_user: CurrentUser = Depends(require_role("doctor")),
    appt_service: AppointmentsService = Depends(get_appointments_service),
):
    try:
        patients = appt_service.doctor_patients(current_user.id)
        return create_success_response({
            "patients": [DoctorPatientResponse.model_validate(p).to_wire() for p in patients],
        })
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error retrieving doctor patients: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to retrieve patients")


@router.get("/{appointment_id}")
def get_appointment(
    appointment_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    appt_service: AppointmentsService = Depends(get_appointments_service),
):
    try:
        appt = appt_service.get_for_user(current_user.id, current_user.user_type, appointment_id)
        return create_success_response(_appt(appt))
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error retrieving appointment {appointment_id}: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to retrieve appointment")


@router.put("/{appointment_id}/status")
def update_appointment_status(
    appointment_id: int,
    payload: StatusUpdateRequest,
    current_user: CurrentUser = Depends(get_current_user),
    appt_service: AppointmentsService = Depends(get_appointments_service),
):
    try:
        appt = appt_service.update_status(
            current_user.id,
            current_user.user_type,
            appointment_id,
            payload.status,
            reason=payload.reason,
            doctor_notes=payload.doctor_notes,
            diagnosis=payload.diagnosis,
            treatment_plan=payload.treatment_plan,
        )
        return create_success_response(_appt(appt), f"Appointment {appt.status} successfully")
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error updating appointment {appointment_id}: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to update appointment")


@router.put("/{appointment_id}/reschedule")
def reschedule_appointment(
    appointment_id: int,
    payload: RescheduleRequest,
    current_user: CurrentUser = Depends(require_role("patient")),
    appt_service: AppointmentsService = Depends(get_appointments_service),
):
    try:
        appt = appt_service.reschedule_to_slot(current_user.id, appointment_id, payload.new_slot_id, payload.reason)
        return create_success_response(_appt(appt), "Appointment rescheduled successfully")
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error rescheduling appointment {appointment_id}: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to reschedule appointment")


@router.post("/{appointment_id}/reschedule/propose")
def propose_reschedule(
    appointment_id: int,
    payload: ProposeRescheduleRequest,
    current_user: CurrentUser = Depends(get_current_user),
    appt_service: AppointmentsService = Depends(get_appointments_service),
):
    try:
        appt = appt_service.propose_reschedule(
            current_user.id,
            current_user.user_type,
            appointment_id,
            proposed_slot_id=payload.proposed_slot_id,
            proposed_date_time=payload.proposed_date_time,
            reason=payload.reason,
        )
        return create_success_response(_appt(appt), "Reschedule request sent")
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error proposing reschedule for {appointment_id}: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to propose reschedule")


@router.put("/{appointment_id}/reschedule/decision")
def decide_reschedule(
    appointment_id: int,
    payload: RescheduleDecisionRequest,
    current_user: CurrentUser = Depends(get_current_user),
    appt_service: AppointmentsService = Depends(get_appointments_service),
):
    try:
        appt = appt_service.decide_reschedule(
            current_user.id,
            current_user.user_type,
            appointment_id,
            payload.decision,
            reason=payload.reason,
        )
        return create_success_response(_appt(appt), f"Reschedule request {payload.decision}")
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error deciding reschedule for {appointment_id}: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to process reschedule decision")


@router.put("/{appointment_id}/review")
def review_appointment(
    appointment_id: int,
    payload: ReviewRequest,
    current_user: CurrentUser = Depends(require_role("patient")),
    appt_service: AppointmentsService = Depends(get_appointments_service),
):
    try:
        appt = appt_service.review(current_user.id, appointment_id, payload.rating, payload.feedback)
        return create_success_response(_appt(appt), "Review submitted successfully")
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error reviewing appointment {appointment_id}: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to submit review")
