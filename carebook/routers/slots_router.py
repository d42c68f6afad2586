import logging
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query

from ..exceptions import create_success_response
from ..utils import pagination_meta
from ..application.ports.slots_repo import SlotDto
from ..application.services.slots_service import SlotsService
from ..schemas.slots.slot import SlotCreate, SlotResponse, SlotUpdate
from .deps import CurrentUser, get_slots_service, require_role

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/appointments/slots", tags=["Slots"])


def _slot(slot: SlotDto) -> dict:
    return SlotResponse.model_validate(slot).to_wire()


@router.get("/my")
def get_my_slots(
    status: str = "all",
    from_date: Optional[str] = Query(None, alias="fromDate"),
    to_date: Optional[str] = Query(None, alias="toDate"),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    current_user: CurrentUser = Depends(require_role("doctor")),
    slots_service: SlotsService = Depends(get_slots_service),
):
    try:
        slots, total = slots_service.list_mine(current_user.id, status, from_date, to_date, page, limit)
        return create_success_response({
            "slots": [_slot(s) for s in slots],
            "pagination": pagination_meta(page, limit, total),
        })
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error retrieving slots: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to retrieve slots")


@router.post("", status_code=201)
def create_slot(
    payload: SlotCreate,
    current_user: CurrentUser = Depends(require_role("doctor")),
    slots_service: SlotsService = Depends(get_slots_service),
):
    try:
        slot = slots_service.create(
            current_user.id,
            payload.date_time,
            duration=payload.duration,
            consultation_type=payload.consultation_type,
            slot_type=payload.slot_type,
            consultation_fee=payload.consultation_fee,
            notes=payload.notes,
        )
        return create_success_response(_slot(slot), "Slot created successfully")
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error creating slot: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to create slot")


@router.delete("/all")
def delete_all_slots(
    current_user: CurrentUser = Depends(require_role("doctor")),
    slots_service: SlotsService = Depends(get_slots_service),
):
    """Delete every unbooked slot of the doctor."""
    try:
        deleted = slots_service.delete_all_unbooked(current_user.id)
        return create_success_response({"deletedCount": deleted}, f"Deleted {deleted} slots")
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error deleting slots: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to delete slots")


@router.get("/doctor/{doctor_id}")
def get_doctor_slots(doctor_id: int, slots_service: SlotsService = Depends(get_slots_service)):
    try:
        slots = slots_service.public_for_doctor(doctor_id)
        return create_success_response({"slots": [_slot(s) for s in slots]})
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error retrieving slots of doctor {doctor_id}: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to retrieve slots")


@router.put("/{slot_id}")
def update_slot(
    slot_id: int,
    payload: SlotUpdate,
    current_user: CurrentUser = Depends(require_role("doctor")),
    slots_service: SlotsService = Depends(get_slots_service),
):
    try:
        slot = slots_service.update(current_user.id, slot_id, **payload.model_dump(exclude_unset=True))
        return create_success_response(_slot(slot), "Slot updated successfully")
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error updating slot {slot_id}: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to update slot")


@router.delete("/{slot_id}")
def delete_slot(
    slot_id: int,
    current_user: CurrentUser = Depends(require_role("doctor")),
    slots_service: SlotsService = Depends(get_slots_service),
):
    try:
        slots_service.delete(current_user.id, slot_id)
        return create_success_response(None, "Slot deleted successfully")
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error deleting slot {slot_id}: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to delete slot")
