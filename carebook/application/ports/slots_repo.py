from dataclasses import dataclass
from typing import List, Optional, Protocol, Tuple
from datetime import datetime, timedelta


@dataclass
class SlotDto:
    id: Optional[int]
    doctor_id: int
    date_time: datetime
    duration: int = 30
    consultation_type: str = "in-person"
    slot_type: str = "consultation"
    consultation_fee: Optional[float] = None
    notes: Optional[str] = None
    is_available: bool = True
    is_booked: bool = False
    booked_by: Optional[int] = None
    appointment_id: Optional[int] = None
    status: str = "active"
    created_at: Optional[datetime] = None

    @property
    def end_time(self) -> datetime:
        return self.date_time + timedelta(minutes=self.duration)

    def is_bookable(self, now: datetime) -> bool:
        return self.is_available and not self.is_booked and self.status == "active" and self.date_time > now

    def book(self, patient_id: int, appointment_id: Optional[int] = None) -> None:
        self.is_booked = True
        self.is_available = False
        self.booked_by = patient_id
        self.appointment_id = appointment_id

    def release(self) -> None:
        self.is_booked = False
        self.is_available = True
        self.booked_by = None
        self.appointment_id = None


class SlotsRepository(Protocol):
    def get(self, slot_id: int) -> Optional[SlotDto]:
        ...

    def create(self, slot: SlotDto) -> SlotDto:
        ...

    def save(self, slot: SlotDto) -> SlotDto:
        ...

    def delete(self, slot_id: int) -> None:
        ...

    def claim(self, slot_id: int, patient_id: int) -> bool:
        """Atomically mark an unbooked slot as booked by ``patient_id``."""
        ...

    def find_active_at(self, doctor_id: int, when: datetime, exclude_id: Optional[int] = None) -> bool:
        ...

    def list_for_doctor(self, doctor_id: int, availability: str = "all", date_from: Optional[datetime] = None,
                        date_to: Optional[datetime] = None, offset: int = 0, limit: Optional[int] = None) -> Tuple[List[SlotDto], int]:
        ...

    def list_bookable(self, doctor_id: int, now: datetime, limit: int) -> List[SlotDto]:
        ...

    def delete_unbooked(self, doctor_id: int) -> int:
        ...
