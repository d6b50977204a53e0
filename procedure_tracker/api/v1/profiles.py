"""
Profiles API — read-only access to registered profiles.
"""

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from procedure_tracker.api.v1.auth import ProfileResponse, get_current_admin, get_current_user
from procedure_tracker.core.database import get_db
from procedure_tracker.models.profile import Profile
from procedure_tracker.services.profile_service import profile_service

router = APIRouter()


@router.get("/", response_model=List[ProfileResponse])
async def list_profiles(
    current_user: Profile = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    """Every profile, by name (admin only)."""
    result = await db.execute(select(Profile).order_by(Profile.full_name, Profile.email))
    return result.scalars().all()


@router.get("/{profile_id}", response_model=ProfileResponse)
async def get_profile(
    profile_id: UUID,
    current_user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Used to show who created a procedure."""
    profile = await profile_service.get_profile(db, profile_id)
    if not profile:
        raise HTTPException(status_code=404, detail="Profile not found")
    return profile
