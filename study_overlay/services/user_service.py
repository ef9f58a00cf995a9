import logging
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from study_overlay.models.user import User
from study_overlay.exceptions import NotFoundError
from study_overlay.schemas.user_schemas import UserUpdate
from typing import Optional
from uuid import UUID

Logger = logging.getLogger(__name__)

class UserService:
    @staticmethod
    async def get_profile(db: AsyncSession, user_id: UUID) -> Optional[User]:
        result = await db.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    @staticmethod
    async def update_profile(db: AsyncSession, user_id: UUID, data: UserUpdate) -> User:
        result = await db.execute(select(User).where(User.id == user_id))
        user = result.scalar_one_or_none()
        if not user:
            raise NotFoundError(detail="User not found")
        for field, value in data.model_dump(exclude_unset=True).items():
            setattr(user, field, value)
        await db.commit()
        await db.refresh(user)
        Logger.info(f"Profile updated for user {user_id}")
        return user
