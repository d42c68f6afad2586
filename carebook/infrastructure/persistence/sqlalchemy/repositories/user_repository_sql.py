from typing import Any, Dict, Optional
from datetime import datetime
from sqlmodel import Session, select

from .....db.models import User, Doctor, Patient, CareProvider
from .....application.ports.user_repo import UserRepository, UserDto
from .....utils import load_json_list

ADDRESS_COLUMNS = {
    "street": "address_street",
    "city": "address_city",
    "state": "address_state",
    "zip_code": "address_zip_code",
    "country": "address_country",
}
JSON_LIST_COLUMNS = {"secondary_specialties", "languages", "allergies", "services"}
PROFILE_MODELS = {
    "doctor": Doctor,
    "patient": Patient,
    "careprovider": CareProvider,
}


class SqlUserRepository(UserRepository):
    def __init__(self, session: Session):
        self.session = session

    def _to_dto(self, user: User) -> UserDto:
        return UserDto(
            id=user.id,
            first_name=user.first_name,
            last_name=user.last_name,
            email=user.email,
            user_type=user.user_type,
            password_hash=user.password_hash,
            phone=user.phone,
            date_of_birth=user.date_of_birth,
            gender=user.gender,
            profile_picture=user.profile_picture,
            address={key: getattr(user, column) for key, column in ADDRESS_COLUMNS.items()},
            is_active=user.is_active,
            is_email_verified=user.is_email_verified,
            login_attempts=user.login_attempts,
            lock_until=user.lock_until,
            last_login=user.last_login,
            created_at=user.created_at,
            updated_at=user.updated_at,
        )

    def get_by_email(self, email: str) -> Optional[UserDto]:
        user = self.session.exec(select(User).where(User.email == email.lower())).first()
        return self._to_dto(user) if user else None

    def get_by_id(self, user_id: str) -> Optional[UserDto]:
        user = self.session.get(User, user_id)
        return self._to_dto(user) if user else None

    def create(self, dto: UserDto) -> UserDto:
        user = User(
            first_name=dto.first_name,
            last_name=dto.last_name,
            email=dto.email,
            password_hash=dto.password_hash,
            user_type=dto.user_type,
            phone=dto.phone,
            date_of_birth=dto.date_of_birth,
            gender=dto.gender,
        )
        self.session.add(user)
        self.session.commit()
        self.session.refresh(user)
        return self._to_dto(user)

    def save(self, dto: UserDto) -> UserDto:
        user = self.session.get(User, dto.id)
        if not user:
            raise LookupError(f"User {dto.id} does not exist")
        for name in ("first_name", "last_name", "password_hash", "phone", "date_of_birth", "gender",
                     "profile_picture", "is_active", "is_email_verified", "login_attempts", "lock_until", "last_login"):
            setattr(user, name, getattr(dto, name))
        for key, column in ADDRESS_COLUMNS.items():
            setattr(user, column, dto.address.get(key))
        user.updated_at = datetime.utcnow()
        self.session.add(user)
        self.session.commit()
        self.session.refresh(user)
        return self._to_dto(user)

    def create_profile(self, user_id: str, user_type: str) -> None:
        model = PROFILE_MODELS.get(user_type)
        if model is None:
            return
        if self.session.exec(select(model).where(model.user_id == user_id)).first():
            return
        self.session.add(model(user_id=user_id))
        self.session.commit()

    def get_profile(self, user_id: str, user_type: str) -> Optional[Dict[str, Any]]:
        model = PROFILE_MODELS.get(user_type)
        if model is None:
            return None
        profile = self.session.exec(select(model).where(model.user_id == user_id)).first()
        if not profile:
            return None
        data = profile.model_dump(exclude={"user_id", "created_at", "updated_at"})
        for key, value in data.items():
            if key in JSON_LIST_COLUMNS:
                data[key] = load_json_list(value)
        return {"type": user_type, **data}
