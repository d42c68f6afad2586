# carebook/schemas/patient.py
from pydantic import Field
from typing import List, Optional, Union
from datetime import datetime

from ..common.common import CamelModel


class ScheduleRowSchema(CamelModel):
    time: Optional[str] = None
    meal_relation: Optional[str] = None
    quantity: Optional[str] = None


class MedicationCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=200)
    frequency: Union[int, str]
    schedule: List[ScheduleRowSchema] = []
    dosage: Optional[str] = None
    route: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    prescribed_by: Optional[str] = None
    reason: Optional[str] = None
    notes: Optional[str] = None


class MedicationUpdate(CamelModel):
    name: Optional[str] = Field(None, max_length=200)
    frequency: Optional[Union[int, str]] = None
    schedule: Optional[List[ScheduleRowSchema]] = None
    dosage: Optional[str] = None
    route: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    prescribed_by: Optional[str] = None
    reason: Optional[str] = None
    notes: Optional[str] = None
    is_active: Optional[bool] = None


class MedicationResponse(CamelModel):
    id: int
    patient_id: int
    name: str
    frequency: int
    schedule: List[ScheduleRowSchema] = []
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


class VitalSignsUpdate(CamelModel):
    height_cm: Optional[float] = Field(None, ge=0)
    weight_kg: Optional[float] = Field(None, ge=0)
    blood_pressure_systolic: Optional[int] = Field(None, ge=0)
    blood_pressure_diastolic: Optional[int] = Field(None, ge=0)
    heart_rate: Optional[int] = Field(None, ge=0)
    blood_sugar: Optional[float] = Field(None, ge=0)


class VitalSignsSchema(VitalSignsUpdate):
    updated_at: Optional[datetime] = None


class HealthOverviewUpdate(CamelModel):
    """Doctor-facing vitals form."""
    systolic: Optional[int] = Field(None, ge=0)
    diastolic: Optional[int] = Field(None, ge=0)
    heart_rate: Optional[int] = Field(None, ge=0)
    weight: Optional[float] = Field(None, ge=0)
    height: Optional[float] = Field(None, ge=0)
    blood_sugar: Optional[float] = Field(None, ge=0)


class AllergyCreate(CamelModel):
    allergen: str = Field(..., min_length=1)
    reaction: Optional[str] = None
    severity: Optional[str] = None


class EmergencyContactSchema(CamelModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    relationship: Optional[str] = None


class CurrentCondition(CamelModel):
    condition: str = Field(..., min_length=1)
    diagnosed_date: Optional[datetime] = None
    status: Optional[str] = None
    notes: Optional[str] = None


class PastCondition(CamelModel):
    condition: str = Field(..., min_length=1)
    diagnosed_date: Optional[datetime] = None
    resolved_date: Optional[datetime] = None
    notes: Optional[str] = None


class Surgery(CamelModel):
    procedure: str = Field(..., min_length=1)
    date: Optional[datetime] = None
    hospital: Optional[str] = None
    surgeon: Optional[str] = None
    notes: Optional[str] = None


class Hospitalization(CamelModel):
    reason: str = Field(..., min_length=1)
    admission_date: Optional[datetime] = None
    discharge_date: Optional[datetime] = None
    hospital: Optional[str] = None
    notes: Optional[str] = None


class MedicalHistorySchema(CamelModel):
    current_conditions: List[CurrentCondition] = []
    past_conditions: List[PastCondition] = []
    surgeries: List[Surgery] = []
    hospitalizations: List[Hospitalization] = []


class MedicalHistoryUpdate(CamelModel):
    """Sections left out of the payload keep their stored entries."""
    current_conditions: Optional[List[CurrentCondition]] = None
    past_conditions: Optional[List[PastCondition]] = None
    surgeries: Optional[List[Surgery]] = None
    hospitalizations: Optional[List[Hospitalization]] = None


class PatientProfileUpdate(CamelModel):
    blood_type: Optional[str] = None
    emergency_contact: Optional[EmergencyContactSchema] = None


class PatientProfileResponse(CamelModel):
    id: int
    user_id: str
    first_name: str = ""
    last_name: str = ""
    email: Optional[str] = None
    phone: Optional[str] = None
    date_of_birth: Optional[datetime] = None
    gender: Optional[str] = None
    blood_type: Optional[str] = None
    allergies: List[AllergyCreate] = []
    emergency_contact: EmergencyContactSchema = Field(default_factory=EmergencyContactSchema)
    medical_history: MedicalHistorySchema = Field(default_factory=MedicalHistorySchema)
    vital_signs: VitalSignsSchema = Field(default_factory=VitalSignsSchema)
    medications: List[MedicationResponse] = []


class PatientDashboardStats(CamelModel):
    profile_completion: int
    active_medications_count: int
    allergies_count: int
    has_emergency_contact: bool
    last_vital_signs_update: Optional[datetime] = None
    bmi: Optional[float] = None
    bmi_category: Optional[str] = None
    pending_appointments: int = 0
    upcoming_appointments: int = 0
    completed_appointments: int = 0
