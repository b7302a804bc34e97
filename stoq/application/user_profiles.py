import logging
import uuid
from datetime import datetime, timezone
from typing import Optional
from pydantic import BaseModel

from stoq.application.changes import record_change
from stoq.application.state import USER_PROFILES
from stoq.domain.exceptions import UserProfileNotFoundError
from stoq.domain.models import ApprovalStatus, UserProfile, UserRole

logger = logging.getLogger(__name__)


class CreateProfileDTO(BaseModel):
    user_id: str
    role: UserRole = UserRole.USER
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    business_name: Optional[str] = None
    business_address: Optional[str] = None
    business_state: Optional[str] = None
    business_city: Optional[str] = None
    business_country: Optional[str] = None
    business_years: Optional[int] = None
    business_website: Optional[str] = None
    business_email: Optional[str] = None


class CreateProfileUseCase:
    """Новый профиль всегда ждет одобрения администратора"""

    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, dto: CreateProfileDTO) -> UserProfile:
        now = datetime.now(timezone.utc)
        # Пустые строки из формы храним как NULL
        fields = {k: (v or None) for k, v in dto.model_dump(exclude={"user_id", "role"}).items()}
        profile = UserProfile(
            id=str(uuid.uuid4()),
            user_id=dto.user_id,
            role=dto.role,
            approval_status=ApprovalStatus.PENDING,
            created_at=now,
            updated_at=now,
            **fields,
        )
        async with self._uow() as uow:
            await uow.profiles.create(profile)
            await record_change(uow, USER_PROFILES, "INSERT", profile.user_id)
            await uow.commit()

        logger.info(f"Профиль создан для пользователя {dto.user_id}")
        return profile


class GetProfileUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, user_id: str) -> UserProfile:
        async with self._uow() as uow:
            profile = await uow.profiles.get_by_user_id(user_id)
            if not profile:
                raise UserProfileNotFoundError(f"Профиль пользователя {user_id} не найден")
            return profile


class _UpdateProfileUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def _update(self, user_id: str, values: dict) -> UserProfile:
        values["updated_at"] = datetime.now(timezone.utc)
        async with self._uow() as uow:
            profile = await uow.profiles.update(user_id, values)
            if not profile:
                raise UserProfileNotFoundError(f"Профиль пользователя {user_id} не найден")
            await record_change(uow, USER_PROFILES, "UPDATE", user_id)
            await uow.commit()
            return profile


class UpdateApprovalStatusUseCase(_UpdateProfileUseCase):
    async def __call__(self, user_id: str, status: ApprovalStatus) -> UserProfile:
        profile = await self._update(user_id, {
            "approval_status": status,
            "approval_status_updated_at": datetime.now(timezone.utc),
        })
        logger.info(f"Статус профиля {user_id}: {status.value}")
        return profile


class UpdateAddressesUseCase(_UpdateProfileUseCase):
    async def __call__(
        self, user_id: str, shipping_address: Optional[str] = None, billing_address: Optional[str] = None
    ) -> UserProfile:
        values = {}
        if shipping_address is not None:
            values["shipping_address"] = shipping_address or None
        if billing_address is not None:
            values["billing_address"] = billing_address or None
        return await self._update(user_id, values)
