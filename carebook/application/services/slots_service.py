import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Tuple
from datetime import datetime
from fastapi import HTTPException

from ..ports.appointments_repo import AppointmentsRepository
from ..ports.slots_repo import SlotsRepository, SlotDto
from ...utils import parse_datetime

logger = logging.getLogger(__name__)

AVAILABILITY_FILTERS = ("all", "available", "booked")
CONSULTATION_TYPES = ("in-person", "telemedicine", "both")


@dataclass
class SlotsService:
    slots: SlotsRepository
    doctors: AppointmentsRepository
    min_duration: int = 15
    max_duration: int = 240
    default_duration: int = 30
    max_public_slots: int = 50
    clock: Callable[[], datetime] = field(default=datetime.utcnow)

    def _doctor_id(self, user_id: str) -> int:
        doctor = self.doctors.get_doctor_by_user(user_id)
        if not doctor:
            raise HTTPException(status_code=404, detail="Doctor profile not found")
        return doctor.id

    def _owned(self, user_id: str, slot_id: int) -> SlotDto:
        doctor_id = self._doctor_id(user_id)
        slot = self.slots.get(slot_id)
        if not slot or slot.doctor_id != doctor_id:
            raise HTTPException(status_code=404, detail="Slot not found")
        return slot

    def _parse_time(self, value) -> datetime:
        try:
            when = parse_datetime(value)
        except ValueError:
            raise HTTPException(status_code=400, detail="Invalid dateTime. Use ISO-8601")
        if when is None:
            raise HTTPException(status_code=400, detail="dateTime is required")
        if when <= self.clock():
            raise HTTPException(status_code=400, detail="Cannot create slots in the past")
        return when

    def _check_duration(self, duration: int) -> int:
        if not self.min_duration <= duration <= self.max_duration:
            raise HTTPException(
                status_code=400,
                detail=f"Duration must be between {self.min_duration} and {self.max_duration} minutes",
            )
        return duration

    def _check_consultation_type(self, consultation_type: str) -> str:
        if consultation_type not in CONSULTATION_TYPES:
            raise HTTPException(status_code=400, detail=f"Invalid consultation type. Must be one of: {list(CONSULTATION_TYPES)}")
        return consultation_type

    def list_mine(self, user_id: str, availability: str = "all", date_from=None, date_to=None,
                  page: int = 1, limit: Optional[int] = 50) -> Tuple[List[SlotDto], int]:
        if availability not in AVAILABILITY_FILTERS:
            raise HTTPException(status_code=400, detail=f"Invalid status filter. Must be one of: {list(AVAILABILITY_FILTERS)}")
        doctor_id = self._doctor_id(user_id)
        try:
            start = parse_datetime(date_from)
            end = parse_datetime(date_to)
        except ValueError:
            raise HTTPException(status_code=400, detail="Invalid date filter. Use ISO-8601")
        offset = (max(page, 1) - 1) * limit if limit else 0
        return self.slots.list_for_doctor(doctor_id, availability, start, end, offset, limit)

    def create(self, user_id: str, date_time, duration: Optional[int] = None, consultation_type: str = "in-person",
               slot_type: str = "consultation", consultation_fee: Optional[float] = None,
               notes: Optional[str] = None) -> SlotDto:
        doctor_id = self._doctor_id(user_id)
        when = self._parse_time(date_time)
        length = self._check_duration(duration or self.default_duration)
        self._check_consultation_type(consultation_type)
        if self.slots.find_active_at(doctor_id, when):
            raise HTTPException(status_code=409, detail="A slot already exists at this time")
        if consultation_fee is None:
            doctor = self.doctors.get_doctor(doctor_id)
            consultation_fee = doctor.consultation_fee if doctor else None

        slot = self.slots.create(SlotDto(
            id=None,
            doctor_id=doctor_id,
            date_time=when,
            duration=length,
            consultation_type=consultation_type,
            slot_type=slot_type,
            consultation_fee=consultation_fee,
            notes=notes,
        ))
        logger.info(f"Slot {slot.id} created for doctor {doctor_id} at {when.isoformat()}")
        return slot

    def update(self, user_id: str, slot_id: int, date_time=None, duration: Optional[int] = None,
               consultation_type: Optional[str] = None, consultation_fee: Optional[float] = None,
               notes: Optional[str] = None, is_available: Optional[bool] = None) -> SlotDto:
        slot = self._owned(user_id, slot_id)
        if slot.is_booked:
            raise HTTPException(status_code=400, detail="Cannot update a booked slot")

        if date_time is not None:
            when = self._parse_time(date_time)
            if when != slot.date_time and self.slots.find_active_at(slot.doctor_id, when, exclude_id=slot.id):
                raise HTTPException(status_code=409, detail="A slot already exists at this time")
            slot.date_time = when
        if duration is not None:
            slot.duration = self._check_duration(duration)
        if consultation_type is not None:
            slot.consultation_type = self._check_consultation_type(consultation_type)
        if consultation_fee is not None:
            slot.consultation_fee = consultation_fee
        if notes is not None:
            slot.notes = notes
        if is_available is not None:
            slot.is_available = is_available
        return self.slots.save(slot)

    def delete(self, user_id: str, slot_id: int) -> None:
        slot = self._owned(user_id, slot_id)
        if slot.is_booked:
            raise HTTPException(status_code=400, detail="Cannot delete a booked slot")
        self.slots.delete(slot_id)
        logger.info(f"Slot {slot_id} deleted")

    def delete_all_unbooked(self, user_id: str) -> int:
        doctor_id = self._doctor_id(user_id)
        deleted = self.slots.delete_unbooked(doctor_id)
        logger.info(f"Deleted {deleted} unbooked slots for doctor {doctor_id}")
        return deleted

    def public_for_doctor(self, doctor_id: int) -> List[SlotDto]:
        if not self.doctors.get_doctor(doctor_id):
            raise HTTPException(status_code=404, detail="Doctor not found")
        return self.slots.list_bookable(doctor_id, self.clock(), self.max_public_slots)
