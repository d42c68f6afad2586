import json
from typing import List, Optional
from datetime import datetime
from sqlmodel import Session, select

from .....db.models import Appointment, Medication, Patient, User
from .....application.ports.patient_repo import (
    PatientsRepository,
    PatientProfileDto,
    MedicationDto,
    VitalSignsDto,
)
from .....utils import load_json_list

VITAL_FIELDS = ("height_cm", "weight_kg", "blood_pressure_systolic", "blood_pressure_diastolic", "heart_rate", "blood_sugar")
MEDICATION_FIELDS = (
    "patient_id", "name", "frequency", "dosage", "route", "start_date", "end_date", "prescribed_by",
    "reason", "notes", "is_active", "created_by_doctor_id",
)


class SqlPatientsRepository(PatientsRepository):
    def __init__(self, session: Session):
        self.session = session

    def _commit(self) -> None:
        try:
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise

    def _med_to_dto(self, m: Medication) -> MedicationDto:
        return MedicationDto(
            id=m.id,
            schedule=load_json_list(m.schedule),
            created_at=m.created_at,
            updated_at=m.updated_at,
            **{name: getattr(m, name) for name in MEDICATION_FIELDS},
        )

    def _to_dto(self, p: Patient) -> PatientProfileDto:
        user = self.session.get(User, p.user_id)
        medications = self.session.exec(
            select(Medication).where(Medication.patient_id == p.id).order_by(Medication.created_at.desc())
        ).all()
        return PatientProfileDto(
            id=p.id,
            user_id=p.user_id,
            first_name=user.first_name if user else "",
            last_name=user.last_name if user else "",
            email=user.email if user else None,
            phone=user.phone if user else None,
            date_of_birth=user.date_of_birth if user else None,
            gender=user.gender if user else None,
            blood_type=p.blood_type,
            allergies=load_json_list(p.allergies),
            emergency_contact={
                "name": p.emergency_contact_name,
                "phone": p.emergency_contact_phone,
                "relationship": p.emergency_contact_relationship,
            },
            medical_history=json.loads(p.medical_history or "{}"),
            vital_signs=VitalSignsDto(
                updated_at=p.vitals_updated_at,
                **{name: getattr(p, name) for name in VITAL_FIELDS},
            ),
            medications=[self._med_to_dto(m) for m in medications],
        )

    def get(self, patient_id: int) -> Optional[PatientProfileDto]:
        p = self.session.get(Patient, patient_id)
        return self._to_dto(p) if p else None

    def get_by_user(self, user_id: str) -> Optional[PatientProfileDto]:
        p = self.session.exec(select(Patient).where(Patient.user_id == user_id)).first()
        return self._to_dto(p) if p else None

    def save(self, dto: PatientProfileDto) -> PatientProfileDto:
        p = self.session.get(Patient, dto.id)
        if not p:
            raise LookupError(f"Patient {dto.id} does not exist")
        p.blood_type = dto.blood_type
        p.allergies = json.dumps(dto.allergies)
        p.emergency_contact_name = dto.emergency_contact.get("name")
        p.emergency_contact_phone = dto.emergency_contact.get("phone")
        p.emergency_contact_relationship = dto.emergency_contact.get("relationship")
        for name in VITAL_FIELDS:
            setattr(p, name, getattr(dto.vital_signs, name))
        p.medical_history = json.dumps(dto.medical_history)
        p.vitals_updated_at = dto.vital_signs.updated_at
        p.updated_at = datetime.utcnow()
        self.session.add(p)
        self._commit()
        self.session.refresh(p)
        return self._to_dto(p)

    def get_medication(self, patient_id: int, medication_id: int) -> Optional[MedicationDto]:
        m = self.session.exec(
            select(Medication).where(Medication.id == medication_id).where(Medication.patient_id == patient_id)
        ).first()
        return self._med_to_dto(m) if m else None

    def add_medication(self, dto: MedicationDto) -> MedicationDto:
        m = Medication(schedule=json.dumps(dto.schedule), **{name: getattr(dto, name) for name in MEDICATION_FIELDS})
        self.session.add(m)
        self._commit()
        self.session.refresh(m)
        return self._med_to_dto(m)

    def save_medication(self, dto: MedicationDto) -> MedicationDto:
        m = self.session.get(Medication, dto.id)
        if not m:
            raise LookupError(f"Medication {dto.id} does not exist")
        for name in MEDICATION_FIELDS:
            setattr(m, name, getattr(dto, name))
        m.schedule = json.dumps(dto.schedule)
        m.updated_at = datetime.utcnow()
        self.session.add(m)
        self._commit()
        self.session.refresh(m)
        return self._med_to_dto(m)

    def delete_medication(self, medication_id: int) -> None:
        m = self.session.get(Medication, medication_id)
        if not m:
            return
        self.session.delete(m)
        self._commit()

    def doctor_has_patient(self, doctor_id: int, patient_id: int) -> bool:
        row = self.session.exec(
            select(Appointment.id)
            .where(Appointment.doctor_id == doctor_id)
            .where(Appointment.patient_id == patient_id)
        ).first()
        return row is not None
