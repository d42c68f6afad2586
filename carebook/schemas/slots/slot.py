# carebook/schemas/slot.py
from pydantic import Field
from typing import Optional
from datetime import datetime

from ..common.common import CamelModel


class SlotCreate(CamelModel):
    date_time: datetime
    duration: Optional[int] = None
    consultation_type: str = "in-person"
    slot_type: str = "consultation"
    consultation_fee: Optional[float] = Field(None, ge=0)
    notes: Optional[str] = Field(None, max_length=500)


class SlotUpdate(CamelModel):
    date_time: Optional[datetime] = None
    duration: Optional[int] = None
    consultation_type: Optional[str] = None
    consultation_fee: Optional[float] = Field(None, ge=0)
    notes: Optional[str] = Field(None, max_length=500)
    is_available: Optional[bool] = None


class SlotResponse(CamelModel):
    id: int
    doctor_id: int
    date_time: datetime
    end_time: Optional[datetime] = None
    duration: int
    consultation_type: str
    slot_type: str
    consultation_fee: Optional[float] = None
    notes: Optional[str] = None
    is_available: bool
    is_booked: bool
    booked_by: Optional[int] = None
    appointment_id: Optional[int] = None
    status: str
    created_at: Optional[datetime] = None
