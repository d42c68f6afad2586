from dataclasses import dataclass, field
from typing import Protocol, Optional, Dict, Any
from datetime import datetime


@dataclass
class UserDto:
    id: str
    first_name: str
    last_name: str
    email: str
    user_type: str
    password_hash: str = ""
    phone: Optional[str] = None
    date_of_birth: Optional[datetime] = None
    gender: Optional[str] = None
    profile_picture: Optional[str] = None
    address: Dict[str, Optional[str]] = field(default_factory=dict)
    is_active: bool = True
    is_email_verified: bool = False
    login_attempts: int = 0
    lock_until: Optional[datetime] = None
    last_login: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def is_locked(self, now: datetime) -> bool:
        return self.lock_until is not None and self.lock_until > now


class UserRepository(Protocol):
    def get_by_email(self, email: str) -> Optional[UserDto]:
        ...

    def get_by_id(self, user_id: str) -> Optional[UserDto]:
        ...

    def create(self, user: UserDto) -> UserDto:
        ...

    def save(self, user: UserDto) -> UserDto:
        ...

    def create_profile(self, user_id: str, user_type: str) -> None:
        """Create the empty role profile (doctor, patient or care provider)."""
        ...

    def get_profile(self, user_id: str, user_type: str) -> Optional[Dict[str, Any]]:
        ...
