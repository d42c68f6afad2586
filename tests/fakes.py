"""In-memory repositories shared by the service tests."""
from datetime import datetime
from typing import Dict, List, Optional

from carebook.application.ports.appointments_repo import AppointmentDto, DoctorRefDto, PatientRefDto
from carebook.application.ports.slots_repo import SlotDto

NOW = datetime(2030, 1, 1, 9, 0)


def clock():
    return NOW


class FakeApptRepo:
    def __init__(self):
        self._id = 1
        self.appts: Dict[int, AppointmentDto] = {}
        self.doctors = {1: DoctorRefDto(1, "doc-user", "Dr. Rao", consultation_fee=500.0),
                        2: DoctorRefDto(2, "doc-user-2", "Dr. Iyer")}
        self.patients = {1: PatientRefDto(1, "pat-user", "Asha K"),
                         2: PatientRefDto(2, "pat-user-2", "Ravi M")}
        self.ratings: Dict[int, tuple] = {}

    def get_doctor(self, doctor_id: int) -> Optional[DoctorRefDto]:
        return self.doctors.get(doctor_id)

    def get_doctor_by_user(self, user_id: str) -> Optional[DoctorRefDto]:
        return next((d for d in self.doctors.values() if d.user_id == user_id), None)

    def get_patient_by_user(self, user_id: str) -> Optional[PatientRefDto]:
        return next((p for p in self.patients.values() if p.user_id == user_id), None)

    def get(self, appointment_id: int) -> Optional[AppointmentDto]:
        return self.appts.get(appointment_id)

    def create(self, appointment: AppointmentDto) -> AppointmentDto:
        appointment.id = self._id
        self._id += 1
        self.appts[appointment.id] = appointment
        return appointment

    def save(self, appointment: AppointmentDto) -> AppointmentDto:
        self.appts[appointment.id] = appointment
        return appointment

    def list_for_doctor(self, doctor_id, status=None, date_from=None, date_to=None, offset=0, limit=None):
        rows = [a for a in self.appts.values() if a.doctor_id == doctor_id and (not status or a.status == status)]
        rows.sort(key=lambda a: a.appointment_date)
        page = rows[offset:offset + limit] if limit else rows[offset:]
        return page, len(rows)

    def list_for_patient(self, patient_id, status=None, limit=None) -> List[AppointmentDto]:
        rows = [a for a in self.appts.values() if a.patient_id == patient_id and (not status or a.status == status)]
        return rows[:limit] if limit else rows

    def find_conflict(self, doctor_id, when, exclude_id=None) -> bool:
        return any(
            a.doctor_id == doctor_id and a.appointment_date == when and a.id != exclude_id
            and a.status in ("pending", "confirmed", "rescheduled")
            for a in self.appts.values()
        )

    def ratings_for_doctor(self, doctor_id) -> List[int]:
        return [a.rating for a in self.appts.values() if a.doctor_id == doctor_id and a.rating is not None]

    def update_doctor_rating(self, doctor_id, average_rating, total_reviews) -> None:
        self.ratings[doctor_id] = (average_rating, total_reviews)


class FakeSlotsRepo:
    def __init__(self):
        self._id = 1
        self.slots: Dict[int, SlotDto] = {}

    def add(self, doctor_id: int, when: datetime, **kwargs) -> SlotDto:
        return self.create(SlotDto(id=None, doctor_id=doctor_id, date_time=when, **kwargs))

    def get(self, slot_id) -> Optional[SlotDto]:
        return self.slots.get(slot_id)

    def create(self, slot: SlotDto) -> SlotDto:
        slot.id = self._id
        self._id += 1
        self.slots[slot.id] = slot
        return slot

    def save(self, slot: SlotDto) -> SlotDto:
        self.slots[slot.id] = slot
        return slot

    def delete(self, slot_id) -> None:
        self.slots.pop(slot_id, None)

    def claim(self, slot_id, patient_id) -> bool:
        slot = self.slots.get(slot_id)
        if not slot or slot.is_booked:
            return False
        slot.book(patient_id)
        return True

    def find_active_at(self, doctor_id, when, exclude_id=None) -> bool:
        return any(s.doctor_id == doctor_id and s.date_time == when and s.id != exclude_id and s.status == "active"
                   for s in self.slots.values())

    def list_for_doctor(self, doctor_id, availability="all", date_from=None, date_to=None, offset=0, limit=None):
        rows = [s for s in self.slots.values() if s.doctor_id == doctor_id]
        if availability == "available":
            rows = [s for s in rows if not s.is_booked]
        elif availability == "booked":
            rows = [s for s in rows if s.is_booked]
        page = rows[offset:offset + limit] if limit else rows[offset:]
        return page, len(rows)

    def list_bookable(self, doctor_id, now, limit):
        rows = [s for s in self.slots.values() if s.doctor_id == doctor_id and s.is_bookable(now)]
        return sorted(rows, key=lambda s: s.date_time)[:limit]

    def delete_unbooked(self, doctor_id) -> int:
        doomed = [s.id for s in self.slots.values() if s.doctor_id == doctor_id and not s.is_booked]
        for slot_id in doomed:
            del self.slots[slot_id]
        return len(doomed)
