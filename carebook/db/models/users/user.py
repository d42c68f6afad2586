# carebook/db/models/users/user.py
from typing import Optional
from sqlmodel import SQLModel, Field
from datetime import datetime
import uuid

class User(SQLModel, table=True):
    __tablename__ = "users"
    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    first_name: str = Field(max_length=50)
    last_name: str = Field(max_length=50)
    email: str = Field(max_length=255, unique=True, index=True)
    password_hash: str
    user_type: str = Field(max_length=20, index=True)
    phone: Optional[str] = Field(max_length=20, default=None)
    date_of_birth: Optional[datetime] = Field(default=None)
    gender: Optional[str] = Field(max_length=30, default=None)
    profile_picture: Optional[str] = Field(max_length=255, default=None)
    address_street: Optional[str] = Field(default=None)
    address_city: Optional[str] = Field(default=None)
    address_state: Optional[str] = Field(default=None)
    address_zip_code: Optional[str] = Field(default=None)
    address_country: Optional[str] = Field(default=None)
    is_active: bool = Field(default=True)
    is_email_verified: bool = Field(default=False)
    login_attempts: int = Field(default=0)
    lock_until: Optional[datetime] = Field(default=None)
    last_login: Optional[datetime] = Field(default=None)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
