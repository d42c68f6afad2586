# Models package (re-export feature modules for stable imports)
from .users.user import User
from .health.doctor import Doctor
from .health.education import DoctorEducation
from .health.patient import Patient
from .health.medication import Medication
from .health.slot import Slot
from .health.appointment import Appointment
from .facilities.facility import HealthcareFacility, FacilityReview
from .facilities.care_provider import CareProvider

__all__ = [
    "User",
    "Doctor",
    "DoctorEducation",
    "Patient",
    "Medication",
    "Slot",
    "Appointment",
    "HealthcareFacility",
    "FacilityReview",
    "CareProvider",
]
