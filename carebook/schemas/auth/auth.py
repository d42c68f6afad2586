# carebook/schemas/auth.py
import re
from pydantic import Field, field_validator
from typing import Any, Dict, Literal, Optional
from datetime import datetime

from ..common.common import CamelModel

PHONE_PATTERN = re.compile(r'^\+?\d{7,15}$')


def _clean_phone(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    phone_clean = re.sub(r'[^\d+]', '', v)
    if not PHONE_PATTERN.match(phone_clean):
        raise ValueError('Invalid phone number format')
    return phone_clean


class AddressSchema(CamelModel):
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    country: Optional[str] = None


class RegisterRequest(CamelModel):
    first_name: str = Field(..., min_length=1, max_length=50)
    last_name: str = Field(..., min_length=1, max_length=50)
    email: str = Field(..., max_length=255)
    password: str = Field(..., min_length=8)
    user_type: Literal["doctor", "patient", "careprovider"] = "patient"
    phone: Optional[str] = None
    date_of_birth: Optional[str] = Field(None, description="Date of birth in YYYY-MM-DD format")
    gender: Optional[Literal["male", "female", "other", "prefer-not-to-say"]] = None

    @field_validator('email')
    @classmethod
    def validate_email(cls, v: str) -> str:
        v = v.strip().lower()
        if not re.match(r'^[^@\s]+@[^@\s]+\.[^@\s]+$', v):
            raise ValueError('Invalid email address')
        return v

    @field_validator('phone')
    @classmethod
    def validate_phone(cls, v):
        return _clean_phone(v)


class LoginRequest(CamelModel):
    email: str
    password: str


class RefreshRequest(CamelModel):
    refresh_token: str


class ChangePasswordRequest(CamelModel):
    current_password: str
    new_password: str = Field(..., min_length=8)


class UpdateProfileRequest(CamelModel):
    first_name: Optional[str] = Field(None, min_length=1, max_length=50)
    last_name: Optional[str] = Field(None, min_length=1, max_length=50)
    phone: Optional[str] = None
    date_of_birth: Optional[str] = None
    gender: Optional[Literal["male", "female", "other", "prefer-not-to-say"]] = None
    profile_picture: Optional[str] = None
    address: Optional[AddressSchema] = None

    @field_validator('phone')
    @classmethod
    def validate_phone(cls, v):
        return _clean_phone(v)


class UserResponse(CamelModel):
    id: str
    first_name: str
    last_name: str
    full_name: Optional[str] = None
    email: str
    user_type: str
    phone: Optional[str] = None
    date_of_birth: Optional[datetime] = None
    gender: Optional[str] = None
    profile_picture: Optional[str] = None
    address: AddressSchema = Field(default_factory=AddressSchema)
    is_active: bool = True
    is_email_verified: bool = False
    last_login: Optional[datetime] = None
    created_at: Optional[datetime] = None
    profile: Optional[Dict[str, Any]] = None


class AuthResponse(CamelModel):
    token: str
    refresh_token: Optional[str] = None
    user: UserResponse
