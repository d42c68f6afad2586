import logging
from typing import Callable, Dict, Optional
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from fastapi import HTTPException

from ..ports.user_repo import UserRepository, UserDto
from ..ports.audit_logger import AuditLogger
from ...services.auth import (
    create_jwt_token,
    create_refresh_token,
    hash_password,
    verify_password,
    verify_refresh_token,
)
from ...utils import parse_datetime

logger = logging.getLogger(__name__)

USER_TYPES = ("doctor", "patient", "careprovider")
MIN_PASSWORD_LENGTH = 8
PROFILE_FIELDS = ("first_name", "last_name", "phone", "gender", "profile_picture")
ADDRESS_FIELDS = ("street", "city", "state", "zip_code", "country")


@dataclass
class AuthService:
    user_repo: UserRepository
    audit: Optional[AuditLogger] = None
    max_login_attempts: int = 5
    lock_minutes: int = 120
    clock: Callable[[], datetime] = field(default=datetime.utcnow)

    def _audit(self, action: str, email: str, user_id: Optional[str] = None, ip_address: Optional[str] = None,
               success: bool = True, details: Optional[Dict] = None) -> None:
        if self.audit:
            self.audit.log(action, email, user_id=user_id, ip_address=ip_address, success=success, details=details)

    def _check_password(self, password: Optional[str]) -> str:
        if not password or len(password) < MIN_PASSWORD_LENGTH:
            raise HTTPException(status_code=400, detail=f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")
        return password

    def register(self, first_name: str, last_name: str, email: str, password: str, user_type: str,
                 phone: Optional[str] = None, date_of_birth=None, gender: Optional[str] = None,
                 ip_address: Optional[str] = None) -> UserDto:
        email = (email or "").strip().lower()
        if not email or "@" not in email:
            raise HTTPException(status_code=400, detail="A valid email is required")
        if not (first_name or "").strip() or not (last_name or "").strip():
            raise HTTPException(status_code=400, detail="First name and last name are required")
        if user_type not in USER_TYPES:
            raise HTTPException(status_code=400, detail=f"Invalid user type. Must be one of: {list(USER_TYPES)}")
        self._check_password(password)
        if self.user_repo.get_by_email(email):
            raise HTTPException(status_code=400, detail="User already exists with this email")
        try:
            dob = parse_datetime(date_of_birth)
        except ValueError:
            raise HTTPException(status_code=400, detail="Invalid dateOfBirth. Use YYYY-MM-DD")

        now = self.clock()
        user = self.user_repo.create(UserDto(
            id="",
            first_name=first_name.strip(),
            last_name=last_name.strip(),
            email=email,
            user_type=user_type,
            password_hash=hash_password(password),
            phone=phone,
            date_of_birth=dob,
            gender=gender,
            created_at=now,
            updated_at=now,
        ))
        self.user_repo.create_profile(user.id, user_type)
        self._audit("register", email, user_id=user.id, ip_address=ip_address, details={"user_type": user_type})
        logger.info(f"Registered {user_type} user {user.id}")
        return user

    def authenticate(self, email: str, password: str, ip_address: Optional[str] = None) -> UserDto:
        email = (email or "").strip().lower()
        user = self.user_repo.get_by_email(email)
        if not user:
            self._audit("login", email, ip_address=ip_address, success=False, details={"reason": "unknown_email"})
            raise HTTPException(status_code=401, detail="Invalid credentials")

        now = self.clock()
        if user.is_locked(now):
            self._audit("login", email, user_id=user.id, ip_address=ip_address, success=False, details={"reason": "locked"})
            raise HTTPException(status_code=423, detail="Account temporarily locked due to too many failed login attempts. Please try again later.")
        if not user.is_active:
            raise HTTPException(status_code=401, detail="Account is deactivated")

        if not verify_password(password or "", user.password_hash):
            self._register_failure(user, now)
            self._audit("login", email, user_id=user.id, ip_address=ip_address, success=False,
                        details={"attempts": user.login_attempts, "locked": user.lock_until is not None})
            raise HTTPException(status_code=401, detail="Invalid credentials")

        user.login_attempts = 0
        user.lock_until = None
        user.last_login = now
        user = self.user_repo.save(user)
        self._audit("login", email, user_id=user.id, ip_address=ip_address)
        return user

    def _register_failure(self, user: UserDto, now: datetime) -> None:
        # An expired lock starts a fresh count
        if user.lock_until is not None and user.lock_until <= now:
            user.login_attempts = 0
            user.lock_until = None
        user.login_attempts += 1
        if user.login_attempts >= self.max_login_attempts:
            user.lock_until = now + timedelta(minutes=self.lock_minutes)
            logger.warning(f"User {user.id} locked after {user.login_attempts} failed login attempts")
        self.user_repo.save(user)

    def issue_tokens(self, user: UserDto) -> Dict[str, str]:
        claims = {"sub": user.id, "user_type": user.user_type}
        return {
            "token": create_jwt_token(claims),
            "refreshToken": create_refresh_token(claims),
        }

    def refresh(self, refresh_token: str) -> Dict[str, str]:
        payload = verify_refresh_token(refresh_token or "")
        if not payload:
            raise HTTPException(status_code=401, detail="Invalid or expired refresh token")
        user = self.user_repo.get_by_id(payload.get("sub", ""))
        if not user or not user.is_active:
            raise HTTPException(status_code=401, detail="User not found or inactive")
        return {"token": create_jwt_token({"sub": user.id, "user_type": user.user_type})}

    def get_user(self, user_id: str) -> UserDto:
        user = self.user_repo.get_by_id(user_id)
        if not user:
            raise HTTPException(status_code=404, detail="User not found")
        return user

    def change_password(self, user_id: str, current_password: str, new_password: str, ip_address: Optional[str] = None) -> None:
        user = self.get_user(user_id)
        if not verify_password(current_password or "", user.password_hash):
            self._audit("change_password", user.email, user_id=user_id, ip_address=ip_address, success=False)
            raise HTTPException(status_code=400, detail="Current password is incorrect")
        self._check_password(new_password)
        if verify_password(new_password, user.password_hash):
            raise HTTPException(status_code=400, detail="New password must be different from the current password")
        user.password_hash = hash_password(new_password)
        user.updated_at = self.clock()
        self.user_repo.save(user)
        self._audit("change_password", user.email, user_id=user_id, ip_address=ip_address)

    def update_profile(self, user_id: str, date_of_birth=None, address: Optional[Dict[str, Optional[str]]] = None, **fields) -> UserDto:
        user = self.get_user(user_id)
        for name in PROFILE_FIELDS:
            value = fields.get(name)
            if value is not None:
                setattr(user, name, value.strip() if isinstance(value, str) else value)
        if date_of_birth is not None:
            try:
                user.date_of_birth = parse_datetime(date_of_birth)
            except ValueError:
                raise HTTPException(status_code=400, detail="Invalid dateOfBirth. Use YYYY-MM-DD")
        if address:
            merged = dict(user.address)
            merged.update({k: v for k, v in address.items() if k in ADDRESS_FIELDS and v is not None})
            user.address = merged
        if not user.first_name or not user.last_name:
            raise HTTPException(status_code=400, detail="First name and last name cannot be empty")
        user.updated_at = self.clock()
        return self.user_repo.save(user)

    def logout(self, user_id: str, ip_address: Optional[str] = None) -> None:
        user = self.user_repo.get_by_id(user_id)
        if user:
            self._audit("logout", user.email, user_id=user_id, ip_address=ip_address)
