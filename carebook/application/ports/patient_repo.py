from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol
from datetime import datetime


@dataclass
class VitalSignsDto:
    height_cm: Optional[float] = None
    weight_kg: Optional[float] = None
    blood_pressure_systolic: Optional[int] = None
    blood_pressure_diastolic: Optional[int] = None
    heart_rate: Optional[int] = None
    blood_sugar: Optional[float] = None
    updated_at: Optional[datetime] = None


@dataclass
class MedicationDto:
    id: Optional[int]
    patient_id: int
    name: str
    frequency: int = 1
    schedule: List[Dict[str, Any]] = field(default_factory=list)
    dosage: Optional[str] = None
    route: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    prescribed_by: Optional[str] = None
    reason: Optional[str] = None
    notes: Optional[str] = None
    is_active: bool = True
    created_by_doctor_id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class PatientProfileDto:
    id: int
    user_id: str
    first_name: str = ""
    last_name: str = ""
    email: Optional[str] = None
    phone: Optional[str] = None
    date_of_birth: Optional[datetime] = None
    gender: Optional[str] = None
    blood_type: Optional[str] = None
    allergies: List[Dict[str, Any]] = field(default_factory=list)
    emergency_contact: Dict[str, Optional[str]] = field(default_factory=dict)
    medical_history: Dict[str, List[Dict[str, Any]]] = field(default_factory=dict)
    vital_signs: VitalSignsDto = field(default_factory=VitalSignsDto)
    medications: List[MedicationDto] = field(default_factory=list)


class PatientsRepository(Protocol):
    def get(self, patient_id: int) -> Optional[PatientProfileDto]:
        ...

    def get_by_user(self, user_id: str) -> Optional[PatientProfileDto]:
        ...

    def save(self, profile: PatientProfileDto) -> PatientProfileDto:
        ...

    def get_medication(self, patient_id: int, medication_id: int) -> Optional[MedicationDto]:
        ...

    def add_medication(self, medication: MedicationDto) -> MedicationDto:
        ...

    def save_medication(self, medication: MedicationDto) -> MedicationDto:
        ...

    def delete_medication(self, medication_id: int) -> None:
        ...

    def doctor_has_patient(self, doctor_id: int, patient_id: int) -> bool:
        ...
