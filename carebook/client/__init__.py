from .api import ApiClient, ApiError
from .session import AuthSession, SessionStore
from .actions import ACTIONS, ActionInProgress, ActionTracker
from .resources import (
    AuthAPI,
    AppointmentsAPI,
    SlotsAPI,
    DoctorAPI,
    DoctorPatientsAPI,
    PatientAPI,
    CareProviderAPI,
    FacilitiesAPI,
)

__all__ = [
    "ApiClient",
    "ApiError",
    "AuthSession",
    "SessionStore",
    "ACTIONS",
    "ActionInProgress",
    "ActionTracker",
    "AuthAPI",
    "AppointmentsAPI",
    "SlotsAPI",
    "DoctorAPI",
    "DoctorPatientsAPI",
    "PatientAPI",
    "CareProviderAPI",
    "FacilitiesAPI",
]
