from typing import List, Optional, Tuple
from datetime import datetime
from sqlalchemy import func, update, delete
from sqlmodel import Session, select

from .....db.models import Slot
from .....application.ports.slots_repo import SlotsRepository, SlotDto

SLOT_FIELDS = (
    "doctor_id", "date_time", "duration", "consultation_type", "slot_type", "consultation_fee", "notes",
    "is_available", "is_booked", "booked_by", "appointment_id", "status",
)


class SqlSlotsRepository(SlotsRepository):
    def __init__(self, session: Session):
        self.session = session

    def _commit(self) -> None:
        try:
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise

    def _to_dto(self, s: Slot) -> SlotDto:
        return SlotDto(id=s.id, created_at=s.created_at, **{name: getattr(s, name) for name in SLOT_FIELDS})

    def get(self, slot_id: int) -> Optional[SlotDto]:
        s = self.session.get(Slot, slot_id)
        return self._to_dto(s) if s else None

    def create(self, dto: SlotDto) -> SlotDto:
        slot = Slot(**{name: getattr(dto, name) for name in SLOT_FIELDS})
        self.session.add(slot)
        self._commit()
        self.session.refresh(slot)
        return self._to_dto(slot)

    def save(self, dto: SlotDto) -> SlotDto:
        slot = self.session.get(Slot, dto.id)
        if not slot:
            raise LookupError(f"Slot {dto.id} does not exist")
        for name in SLOT_FIELDS:
            setattr(slot, name, getattr(dto, name))
        slot.updated_at = datetime.utcnow()
        self.session.add(slot)
        self._commit()
        self.session.refresh(slot)
        return self._to_dto(slot)

    def delete(self, slot_id: int) -> None:
        slot = self.session.get(Slot, slot_id)
        if not slot:
            return
        self.session.delete(slot)
        self._commit()

    def claim(self, slot_id: int, patient_id: int) -> bool:
        # Conditional UPDATE so two concurrent bookings cannot both win
        result = self.session.exec(
            update(Slot)
            .where(Slot.id == slot_id)
            .where(Slot.is_booked == False)  # noqa: E712
            .where(Slot.is_available == True)  # noqa: E712
            .where(Slot.status == "active")
            .values(is_booked=True, is_available=False, booked_by=patient_id, updated_at=datetime.utcnow())
        )
        self._commit()
        return result.rowcount == 1

    def find_active_at(self, doctor_id: int, when: datetime, exclude_id: Optional[int] = None) -> bool:
        query = (
            select(Slot)
            .where(Slot.doctor_id == doctor_id)
            .where(Slot.date_time == when)
            .where(Slot.status == "active")
        )
        if exclude_id is not None:
            query = query.where(Slot.id != exclude_id)
        return self.session.exec(query).first() is not None

    def list_for_doctor(self, doctor_id: int, availability: str = "all", date_from: Optional[datetime] = None,
                        date_to: Optional[datetime] = None, offset: int = 0, limit: Optional[int] = None) -> Tuple[List[SlotDto], int]:
        conditions = [Slot.doctor_id == doctor_id]
        if availability == "available":
            conditions += [Slot.is_available == True, Slot.is_booked == False, Slot.status == "active"]  # noqa: E712
        elif availability == "booked":
            conditions.append(Slot.is_booked == True)  # noqa: E712
        if date_from:
            conditions.append(Slot.date_time >= date_from)
        if date_to:
            conditions.append(Slot.date_time <= date_to)

        total = self.session.exec(select(func.count()).select_from(Slot).where(*conditions)).one()
        query = select(Slot).where(*conditions).order_by(Slot.date_time.asc()).offset(offset)
        if limit:
            query = query.limit(limit)
        return [self._to_dto(s) for s in self.session.exec(query).all()], int(total)

    def list_bookable(self, doctor_id: int, now: datetime, limit: int) -> List[SlotDto]:
        rows = self.session.exec(
            select(Slot)
            .where(Slot.doctor_id == doctor_id)
            .where(Slot.is_available == True)  # noqa: E712
            .where(Slot.is_booked == False)  # noqa: E712
            .where(Slot.status == "active")
            .where(Slot.date_time > now)
            .order_by(Slot.date_time.asc())
            .limit(limit)
        ).all()
        return [self._to_dto(s) for s in rows]

    def delete_unbooked(self, doctor_id: int) -> int:
        result = self.session.exec(
            delete(Slot)
            .where(Slot.doctor_id == doctor_id)
            .where(Slot.is_booked == False)  # noqa: E712
        )
        self._commit()
        return result.rowcount
