# Schemas package (re-export feature modules for stable imports)
from .common.common import *
from .auth.auth import *
from .appointments.appointment import *
from .slots.slot import *
from .doctors.doctor import *
from .patients.patient import *
from .facilities.facility import *
from .care_providers.care_provider import *
