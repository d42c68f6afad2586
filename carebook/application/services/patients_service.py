import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple
from datetime import datetime
from fastapi import HTTPException

from ..ports.patient_repo import PatientsRepository, PatientProfileDto, MedicationDto
from ..ports.appointments_repo import AppointmentsRepository
from ...domain.buckets import classify_appointments
from ...domain.medication_schedule import compact_schedule, schedule_to_json, validate_frequency
from ...utils import parse_datetime

logger = logging.getLogger(__name__)

BLOOD_TYPES = ("A+", "A-", "B+", "B-", "AB+", "AB-", "O+", "O-")
ALLERGY_SEVERITIES = ("mild", "moderate", "severe", "life-threatening")
MEDICATION_FIELDS = ("dosage", "route", "prescribed_by", "reason", "notes", "is_active")
MEDICATION_DATES = ("start_date", "end_date")
# Wire names of the doctor's health overview form
HEALTH_OVERVIEW_FIELDS = {
    "systolic": "blood_pressure_systolic",
    "diastolic": "blood_pressure_diastolic",
    "heart_rate": "heart_rate",
    "weight": "weight_kg",
    "height": "height_cm",
    "blood_sugar": "blood_sugar",
}
# Medical history sections and the field each entry must carry
MEDICAL_HISTORY_SECTIONS = {
    "current_conditions": "condition",
    "past_conditions": "condition",
    "surgeries": "procedure",
    "hospitalizations": "reason",
}
CONDITION_STATUSES = ("active", "resolved", "chronic", "managed")
# Profile sections and their share of the completion score
COMPLETION_WEIGHTS = (
    ("basic_info", 20),
    ("emergency_contact", 15),
    ("blood_type", 15),
    ("allergies", 10),
    ("medications", 10),
    ("vital_signs", 15),
    ("medical_history", 15),
)


def body_mass_index(height_cm: Optional[float], weight_kg: Optional[float]) -> Optional[float]:
    if not height_cm or not weight_kg:
        return None
    meters = height_cm / 100
    return round(weight_kg / (meters * meters), 1)


def bmi_category(bmi: Optional[float]) -> Optional[str]:
    if not bmi:
        return None
    if bmi < 18.5:
        return "Underweight"
    if bmi < 25:
        return "Normal weight"
    if bmi < 30:
        return "Overweight"
    return "Obese"


def profile_completion(profile: PatientProfileDto) -> int:
    history = profile.medical_history or {}
    done = {
        "basic_info": bool(profile.user_id),
        "emergency_contact": bool(profile.emergency_contact.get("name") and profile.emergency_contact.get("phone")),
        "blood_type": bool(profile.blood_type),
        "allergies": bool(profile.allergies),
        "medications": bool(profile.medications),
        "vital_signs": bool(profile.vital_signs.height_cm and profile.vital_signs.weight_kg),
        "medical_history": bool(history.get("current_conditions") or history.get("past_conditions")),
    }
    total = sum(weight for _, weight in COMPLETION_WEIGHTS)
    earned = sum(weight for name, weight in COMPLETION_WEIGHTS if done[name])
    return round(earned * 100 / total)


@dataclass
class PatientsService:
    repo: PatientsRepository
    appointments: AppointmentsRepository
    clock: Callable[[], datetime] = field(default=datetime.utcnow)

    # ------------------------------------------------------------------
    # access
    # ------------------------------------------------------------------
    def get_mine(self, user_id: str) -> PatientProfileDto:
        profile = self.repo.get_by_user(user_id)
        if not profile:
            raise HTTPException(status_code=404, detail="Patient profile not found")
        return profile

    def _for_doctor(self, doctor_user_id: str, patient_id: int) -> Tuple[PatientProfileDto, int]:
        doctor = self.appointments.get_doctor_by_user(doctor_user_id)
        if not doctor:
            raise HTTPException(status_code=404, detail="Doctor profile not found")
        profile = self.repo.get(patient_id)
        if not profile:
            raise HTTPException(status_code=404, detail="Patient not found")
        if not self.repo.doctor_has_patient(doctor.id, patient_id):
            raise HTTPException(status_code=403, detail="You can only access patients who have appointments with you")
        return profile, doctor.id

    def get_for_doctor(self, doctor_user_id: str, patient_id: int) -> PatientProfileDto:
        profile, _ = self._for_doctor(doctor_user_id, patient_id)
        return profile

    # ------------------------------------------------------------------
    # profile and vitals
    # ------------------------------------------------------------------
    def update_mine(self, user_id: str, blood_type: Optional[str] = None,
                    emergency_contact: Optional[Dict[str, Optional[str]]] = None) -> PatientProfileDto:
        profile = self.get_mine(user_id)
        if blood_type is not None:
            if blood_type not in BLOOD_TYPES:
                raise HTTPException(status_code=400, detail=f"Invalid blood type. Must be one of: {list(BLOOD_TYPES)}")
            profile.blood_type = blood_type
        if emergency_contact:
            merged = dict(profile.emergency_contact)
            merged.update({k: v for k, v in emergency_contact.items() if k in ("name", "phone", "relationship")})
            profile.emergency_contact = merged
        return self.repo.save(profile)

    def _apply_vitals(self, profile: PatientProfileDto, values: Dict[str, Any]) -> PatientProfileDto:
        vitals = profile.vital_signs
        changed = False
        for name, value in values.items():
            if value is None:
                continue
            if value < 0:
                raise HTTPException(status_code=400, detail=f"{name} cannot be negative")
            setattr(vitals, name, value)
            changed = True
        if changed:
            vitals.updated_at = self.clock()
        return self.repo.save(profile)

    def update_vital_signs(self, user_id: str, **values) -> PatientProfileDto:
        return self._apply_vitals(self.get_mine(user_id), values)

    def update_health_overview(self, doctor_user_id: str, patient_id: int, overview: Dict[str, Any]) -> PatientProfileDto:
        profile, doctor_id = self._for_doctor(doctor_user_id, patient_id)
        values = {HEALTH_OVERVIEW_FIELDS[k]: v for k, v in overview.items() if k in HEALTH_OVERVIEW_FIELDS}
        profile = self._apply_vitals(profile, values)
        logger.info(f"Doctor {doctor_id} updated health overview of patient {patient_id}")
        return profile

    def add_allergy(self, user_id: str, allergen: str, reaction: Optional[str] = None, severity: Optional[str] = None) -> PatientProfileDto:
        profile = self.get_mine(user_id)
        if not (allergen or "").strip():
            raise HTTPException(status_code=400, detail="Allergen is required")
        if severity is not None and severity not in ALLERGY_SEVERITIES:
            raise HTTPException(status_code=400, detail=f"Invalid severity. Must be one of: {list(ALLERGY_SEVERITIES)}")
        profile.allergies = list(profile.allergies) + [{"allergen": allergen.strip(), "reaction": reaction, "severity": severity}]
        return self.repo.save(profile)

    def update_medical_history(self, user_id: str, sections: Dict[str, Optional[List[Dict[str, Any]]]]) -> PatientProfileDto:
        """Replace the given medical history sections; sections left out keep their entries."""
        profile = self.get_mine(user_id)
        updates = {name: entries for name, entries in sections.items() if name in MEDICAL_HISTORY_SECTIONS and entries is not None}
        if not updates:
            raise HTTPException(status_code=400, detail="No valid medical history fields to update")

        for name, entries in updates.items():
            required = MEDICAL_HISTORY_SECTIONS[name]
            for entry in entries:
                if not str(entry.get(required) or "").strip():
                    raise HTTPException(status_code=400, detail=f"Each {name} entry needs a {required}")
                status = entry.get("status")
                if name == "current_conditions" and status is not None and status not in CONDITION_STATUSES:
                    raise HTTPException(status_code=400, detail=f"Invalid condition status. Must be one of: {list(CONDITION_STATUSES)}")

        history = dict(profile.medical_history or {})
        history.update({name: [dict(entry) for entry in entries] for name, entries in updates.items()})
        profile.medical_history = history
        return self.repo.save(profile)

    def dashboard(self, user_id: str) -> Dict[str, Any]:
        profile = self.get_mine(user_id)
        vitals = profile.vital_signs
        bmi = body_mass_index(vitals.height_cm, vitals.weight_kg)
        buckets = classify_appointments(self.appointments.list_for_patient(profile.id), now=self.clock())
        return {
            "profileCompletion": profile_completion(profile),
            "activeMedicationsCount": sum(1 for m in profile.medications if m.is_active),
            "allergiesCount": len(profile.allergies),
            "hasEmergencyContact": bool(profile.emergency_contact.get("name")),
            "lastVitalSignsUpdate": vitals.updated_at,
            "bmi": bmi,
            "bmiCategory": bmi_category(bmi),
            "pendingAppointments": len(buckets.pending),
            "upcomingAppointments": len(buckets.upcoming),
            "completedAppointments": len(buckets.completed),
        }

    # ------------------------------------------------------------------
    # medications
    # ------------------------------------------------------------------
    def _normalize_schedule(self, frequency: Any, schedule: Optional[List[Any]]) -> Tuple[int, List[Dict[str, Any]]]:
        try:
            count = validate_frequency(frequency)
            rows = compact_schedule(schedule or [], count)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        if schedule and len(schedule) > count:
            logger.warning(f"Dropped {len(schedule) - count} schedule rows beyond frequency {count}")
        return count, schedule_to_json(rows)

    def _apply_fields(self, medication: MedicationDto, data: Dict[str, Any]) -> None:
        for name in MEDICATION_FIELDS:
            if data.get(name) is not None:
                setattr(medication, name, data[name])
        for name in MEDICATION_DATES:
            if data.get(name) is not None:
                try:
                    setattr(medication, name, parse_datetime(data[name]))
                except ValueError:
                    raise HTTPException(status_code=400, detail=f"Invalid {name}. Use ISO-8601")

    def _create_medication(self, patient_id: int, data: Dict[str, Any], doctor_id: Optional[int]) -> MedicationDto:
        name = (data.get("name") or "").strip()
        if not name:
            raise HTTPException(status_code=400, detail="Medication name is required")
        if data.get("frequency") in (None, ""):
            raise HTTPException(status_code=400, detail="Medication frequency is required")
        frequency, schedule = self._normalize_schedule(data["frequency"], data.get("schedule"))

        now = self.clock()
        medication = MedicationDto(
            id=None,
            patient_id=patient_id,
            name=name,
            frequency=frequency,
            schedule=schedule,
            created_by_doctor_id=doctor_id,
            created_at=now,
            updated_at=now,
        )
        self._apply_fields(medication, data)
        return self.repo.add_medication(medication)

    def _update_medication(self, patient_id: int, medication_id: int, data: Dict[str, Any]) -> MedicationDto:
        medication = self.repo.get_medication(patient_id, medication_id)
        if not medication:
            raise HTTPException(status_code=404, detail="Medication not found")
        if data.get("name") is not None:
            if not data["name"].strip():
                raise HTTPException(status_code=400, detail="Medication name is required")
            medication.name = data["name"].strip()
        if data.get("frequency") is not None or data.get("schedule") is not None:
            frequency = data.get("frequency") if data.get("frequency") is not None else medication.frequency
            schedule = data.get("schedule") if data.get("schedule") is not None else medication.schedule
            medication.frequency, medication.schedule = self._normalize_schedule(frequency, schedule)
        self._apply_fields(medication, data)
        medication.updated_at = self.clock()
        return self.repo.save_medication(medication)

    def add_my_medication(self, user_id: str, data: Dict[str, Any]) -> MedicationDto:
        return self._create_medication(self.get_mine(user_id).id, data, doctor_id=None)

    def update_my_medication(self, user_id: str, medication_id: int, data: Dict[str, Any]) -> MedicationDto:
        return self._update_medication(self.get_mine(user_id).id, medication_id, data)

    def add_medication_for(self, doctor_user_id: str, patient_id: int, data: Dict[str, Any]) -> MedicationDto:
        _, doctor_id = self._for_doctor(doctor_user_id, patient_id)
        medication = self._create_medication(patient_id, data, doctor_id=doctor_id)
        logger.info(f"Doctor {doctor_id} added medication {medication.id} for patient {patient_id}")
        return medication

    def update_medication_for(self, doctor_user_id: str, patient_id: int, medication_id: int, data: Dict[str, Any]) -> MedicationDto:
        self._for_doctor(doctor_user_id, patient_id)
        return self._update_medication(patient_id, medication_id, data)

    def delete_medication_for(self, doctor_user_id: str, patient_id: int, medication_id: int) -> None:
        _, doctor_id = self._for_doctor(doctor_user_id, patient_id)
        if not self.repo.get_medication(patient_id, medication_id):
            raise HTTPException(status_code=404, detail="Medication not found")
        self.repo.delete_medication(medication_id)
        logger.info(f"Doctor {doctor_id} deleted medication {medication_id} of patient {patient_id}")
