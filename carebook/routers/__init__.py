# Routers package
from . import auth_router
from . import slots_router
from . import appointments_router
from . import doctors_router
from . import patients_router
from . import facilities_router
from . import care_providers_router

__all__ = [
    "auth_router",
    "slots_router",
    "appointments_router",
    "doctors_router",
    "patients_router",
    "facilities_router",
    "care_providers_router",
]
