import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlmodel import Session

from ..core.config import settings
from ..database import get_session
from ..services.auth import decode_jwt_token
from ..application.ports.audit_logger import AuditLogger
from ..application.ports.rate_limiter import RateLimiter
from ..application.services.auth_service import AuthService
from ..application.services.appointments_service import AppointmentsService
from ..application.services.slots_service import SlotsService
from ..application.services.doctors_service import DoctorsService
from ..application.services.patients_service import PatientsService
from ..application.services.facilities_service import FacilitiesService
from ..application.services.care_providers_service import CareProvidersService
from ..infrastructure.audit.std_logger import StdAuditLogger
from ..infrastructure.rate_limit.memory_rate_limiter import InMemoryRateLimiter
from ..infrastructure.persistence.sqlalchemy.repositories.user_repository_sql import SqlUserRepository
from ..infrastructure.persistence.sqlalchemy.repositories.appointments_repository_sql import SqlAppointmentsRepository
from ..infrastructure.persistence.sqlalchemy.repositories.slots_repository_sql import SqlSlotsRepository
from ..infrastructure.persistence.sqlalchemy.repositories.doctors_repository_sql import SqlDoctorsRepository
from ..infrastructure.persistence.sqlalchemy.repositories.patients_repository_sql import SqlPatientsRepository
from ..infrastructure.persistence.sqlalchemy.repositories.facilities_repository_sql import SqlFacilitiesRepository
from ..infrastructure.persistence.sqlalchemy.repositories.care_providers_repository_sql import SqlCareProvidersRepository

logger = logging.getLogger(__name__)

oauth2_scheme = HTTPBearer()

_memory_limiter = InMemoryRateLimiter()
_redis_limiter = None


@dataclass
class CurrentUser:
    id: str
    user_type: str


def get_current_user(credentials: HTTPAuthorizationCredentials = Depends(oauth2_scheme)) -> CurrentUser:
    payload = decode_jwt_token(credentials.credentials)
    if not payload:
        raise HTTPException(status_code=401, detail="Invalid or expired token")
    if payload.get("type") == "refresh":
        raise HTTPException(status_code=401, detail="Refresh tokens cannot be used for API access")
    user_id = payload.get("sub")
    if not user_id:
        raise HTTPException(status_code=401, detail="Invalid token: missing user ID")
    return CurrentUser(id=str(user_id), user_type=payload.get("user_type") or "")


def require_role(*roles: str):
    """Dependency that admits only the given user types."""
    def checker(current_user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if current_user.user_type not in roles:
            raise HTTPException(status_code=403, detail=f"Access denied. Required role: {' or '.join(roles)}")
        return current_user
    return checker


def get_client_ip(request: Request) -> Optional[str]:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


# =========================
# Infrastructure
# =========================
def get_audit_logger() -> AuditLogger:
    return StdAuditLogger()


def get_rate_limiter() -> RateLimiter:
    global _redis_limiter
    if settings.REDIS_URL:
        if _redis_limiter is None:
            from ..infrastructure.rate_limit.redis_rate_limiter import RedisRateLimiter
            _redis_limiter = RedisRateLimiter(settings.REDIS_URL)
        return _redis_limiter
    return _memory_limiter


# =========================
# Services
# =========================
def get_auth_service(session: Session = Depends(get_session), audit: AuditLogger = Depends(get_audit_logger)) -> AuthService:
    return AuthService(
        SqlUserRepository(session),
        audit=audit,
        max_login_attempts=settings.MAX_LOGIN_ATTEMPTS,
        lock_minutes=settings.ACCOUNT_LOCK_MINUTES,
    )


def get_appointments_service(session: Session = Depends(get_session)) -> AppointmentsService:
    return AppointmentsService(
        SqlAppointmentsRepository(session),
        SqlSlotsRepository(session),
        auto_confirm_slot_bookings=settings.AUTO_CONFIRM_SLOT_BOOKINGS,
    )


def get_slots_service(session: Session = Depends(get_session)) -> SlotsService:
    return SlotsService(
        SqlSlotsRepository(session),
        SqlAppointmentsRepository(session),
        min_duration=settings.MIN_SLOT_DURATION,
        max_duration=settings.MAX_SLOT_DURATION,
        default_duration=settings.DEFAULT_SLOT_DURATION,
        max_public_slots=settings.MAX_PUBLIC_SLOTS,
    )


def get_doctors_service(session: Session = Depends(get_session)) -> DoctorsService:
    return DoctorsService(
        SqlDoctorsRepository(session),
        appointments=SqlAppointmentsRepository(session),
        slots=SqlSlotsRepository(session),
    )


def get_patients_service(session: Session = Depends(get_session)) -> PatientsService:
    return PatientsService(SqlPatientsRepository(session), SqlAppointmentsRepository(session))


def get_facilities_service(session: Session = Depends(get_session)) -> FacilitiesService:
    return FacilitiesService(SqlFacilitiesRepository(session))


def get_care_providers_service(session: Session = Depends(get_session)) -> CareProvidersService:
    return CareProvidersService(SqlCareProvidersRepository(session))
