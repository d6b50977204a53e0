"""
Profile Service — lookup and creation of principals' profiles.
"""

import logging
from typing import Optional
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from procedure_tracker.core.security import get_password_hash
from procedure_tracker.models.profile import Profile, ProfileRole

logger = logging.getLogger(__name__)


class ProfileService:

    async def get_profile(self, db: AsyncSession, profile_id: UUID) -> Optional[Profile]:
        result = await db.execute(select(Profile).where(Profile.id == profile_id))
        return result.scalar_one_or_none()

    async def get_by_email(self, db: AsyncSession, email: str) -> Optional[Profile]:
        result = await db.execute(
            select(Profile).where(func.lower(Profile.email) == email.lower())
        )
        return result.scalar_one_or_none()

    async def create_profile(
        self,
        db: AsyncSession,
        *,
        email: str,
        password: str,
        full_name: str,
        role: ProfileRole = ProfileRole.STAFF,
    ) -> Profile:
        """Register a principal. The caller checks email uniqueness first."""
        profile = Profile(
            email=email,
            hashed_password=get_password_hash(password),
            full_name=full_name,
            role=role,
        )
        db.add(profile)
        await db.commit()
        await db.refresh(profile)
        logger.info(f"Registered profile {profile.email} as {profile.role.value}")
        return profile

    async def count_profiles(self, db: AsyncSession) -> int:
        """Every profile regardless of role; the completion denominator."""
        return (await db.execute(select(func.count(Profile.id)))).scalar() or 0


# Global singleton
profile_service = ProfileService()
