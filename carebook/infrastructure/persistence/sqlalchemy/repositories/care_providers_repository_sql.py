from typing import List, Optional, Tuple
from datetime import datetime
from sqlalchemy import func
from sqlmodel import Session, select

from .....db.models import CareProvider, User
from .....application.ports.care_provider_repo import (
    CareProvidersRepository,
    CareProviderDto,
    CareProviderFilters,
)
from .....utils import dump_json_list, load_json_list

PROVIDER_FIELDS = (
    "provider_type", "years_of_experience", "hourly_rate", "city", "bio", "accepts_new_clients",
    "average_rating", "is_verified", "status",
)


class SqlCareProvidersRepository(CareProvidersRepository):
    def __init__(self, session: Session):
        self.session = session

    def _commit(self) -> None:
        try:
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise

    def _to_dto(self, c: CareProvider) -> CareProviderDto:
        user = self.session.get(User, c.user_id)
        return CareProviderDto(
            id=c.id,
            user_id=c.user_id,
            first_name=user.first_name if user else "",
            last_name=user.last_name if user else "",
            email=user.email if user else None,
            phone=user.phone if user else None,
            services=load_json_list(c.services),
            created_at=c.created_at,
            **{name: getattr(c, name) for name in PROVIDER_FIELDS},
        )

    def list(self, filters: CareProviderFilters) -> Tuple[List[CareProviderDto], int]:
        conditions = [CareProvider.status == "approved"]
        if filters.provider_type:
            conditions.append(CareProvider.provider_type.ilike(f"%{filters.provider_type}%"))
        if filters.service:
            conditions.append(CareProvider.services.ilike(f"%{filters.service}%"))
        if filters.accepting_clients:
            conditions.append(CareProvider.accepts_new_clients == True)  # noqa: E712

        total = self.session.exec(select(func.count()).select_from(CareProvider).where(*conditions)).one()
        rows = self.session.exec(
            select(CareProvider)
            .where(*conditions)
            .order_by(CareProvider.average_rating.desc(), CareProvider.id.asc())
            .offset(filters.offset)
            .limit(filters.limit)
        ).all()
        return [self._to_dto(c) for c in rows], int(total)

    def get(self, provider_id: int) -> Optional[CareProviderDto]:
        c = self.session.get(CareProvider, provider_id)
        return self._to_dto(c) if c else None

    def get_by_user(self, user_id: str) -> Optional[CareProviderDto]:
        c = self.session.exec(select(CareProvider).where(CareProvider.user_id == user_id)).first()
        return self._to_dto(c) if c else None

    def save(self, dto: CareProviderDto) -> CareProviderDto:
        c = self.session.get(CareProvider, dto.id)
        if not c:
            raise LookupError(f"Care provider {dto.id} does not exist")
        for name in PROVIDER_FIELDS:
            setattr(c, name, getattr(dto, name))
        c.services = dump_json_list(dto.services)
        c.updated_at = datetime.utcnow()
        self.session.add(c)
        self._commit()
        self.session.refresh(c)
        return self._to_dto(c)
