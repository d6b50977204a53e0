"""
Auth API — sign-up, sign-in, token refresh, sign-out and the current profile.

Also provides the dependencies other routers use to resolve the calling
principal and to enforce the public API key and admin role.
"""

import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Header, HTTPException, status
from fastapi.security import OAuth2PasswordBearer, OAuth2PasswordRequestForm
from pydantic import BaseModel, EmailStr, Field, field_validator
from sqlalchemy.ext.asyncio import AsyncSession

from procedure_tracker.core.config import settings
from procedure_tracker.core.database import get_db
from procedure_tracker.core.security import (
    REFRESH_TOKEN_TYPE,
    create_access_token,
    create_refresh_token,
    decode_token,
    verify_password,
)
from procedure_tracker.models.profile import FULL_NAME_MAX_LENGTH, Profile, ProfileRole
from procedure_tracker.services.profile_service import profile_service

logger = logging.getLogger(__name__)

router = APIRouter()

oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{settings.API_V1_STR}/auth/login", auto_error=False)


# ---------- Schemas ----------

class ProfileResponse(BaseModel):
    id: UUID
    email: str
    full_name: str
    role: ProfileRole

    class Config:
        from_attributes = True


class RegisterRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=settings.MIN_PASSWORD_LENGTH)
    full_name: str = Field(max_length=FULL_NAME_MAX_LENGTH)
    role: ProfileRole = ProfileRole.STAFF

    @field_validator("full_name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        return v.strip()


class TokenResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    user: ProfileResponse


class AccessTokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"


def _tokens_for(profile: Profile) -> TokenResponse:
    subject = str(profile.id)
    return TokenResponse(
        access_token=create_access_token(subject),
        refresh_token=create_refresh_token(subject),
        user=ProfileResponse.model_validate(profile),
    )


# ---------- Dependencies ----------

async def require_api_key(apikey: Optional[str] = Header(default=None)) -> None:
    """Every /api/v1 call must carry the public API key."""
    if apikey != settings.PUBLIC_API_KEY:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid API key")


_credentials_exception = HTTPException(
    status_code=status.HTTP_401_UNAUTHORIZED,
    detail="Could not validate credentials",
    headers={"WWW-Authenticate": "Bearer"},
)


async def get_current_user(
    token: Optional[str] = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> Profile:
    if not token:
        raise _credentials_exception
    payload = decode_token(token)
    if payload is None:
        raise _credentials_exception
    try:
        profile_id = UUID(payload["sub"])
    except ValueError:
        raise _credentials_exception

    profile = await profile_service.get_profile(db, profile_id)
    if profile is None:
        raise _credentials_exception
    return profile


async def get_current_admin(current_user: Profile = Depends(get_current_user)) -> Profile:
    if not current_user.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin privileges required")
    return current_user


# ---------- Routes ----------

@router.post("/register", status_code=status.HTTP_201_CREATED, response_model=TokenResponse)
async def register(
    data: RegisterRequest,
    db: AsyncSession = Depends(get_db),
):
    """Create a principal and its profile. The role is chosen by the registrant."""
    if await profile_service.get_by_email(db, data.email):
        raise HTTPException(status_code=400, detail="Email already registered")

    profile = await profile_service.create_profile(
        db,
        email=data.email,
        password=data.password,
        full_name=data.full_name,
        role=data.role,
    )
    return _tokens_for(profile)


@router.post("/login", response_model=TokenResponse)
async def login(
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: AsyncSession = Depends(get_db),
):
    """Exchange email (as ``username``) and password for tokens."""
    profile = await profile_service.get_by_email(db, form_data.username)
    if not profile or not verify_password(form_data.password, profile.hashed_password):
        logger.info(f"Failed sign-in for {form_data.username}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid login credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return _tokens_for(profile)


@router.post("/refresh", response_model=AccessTokenResponse)
async def refresh(
    token: Optional[str] = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
):
    """Issue a new access token from a refresh token sent as the bearer credential."""
    payload = decode_token(token, expected_type=REFRESH_TOKEN_TYPE) if token else None
    if payload is None:
        raise _credentials_exception
    try:
        profile = await profile_service.get_profile(db, UUID(payload["sub"]))
    except ValueError:
        raise _credentials_exception
    if profile is None:
        raise _credentials_exception
    return AccessTokenResponse(access_token=create_access_token(str(profile.id)))


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(current_user: Profile = Depends(get_current_user)):
    """Tokens are stateless; the client discards them."""
    logger.info(f"Sign-out for {current_user.email}")


@router.get("/me", response_model=ProfileResponse)
async def read_me(current_user: Profile = Depends(get_current_user)):
    return current_user
