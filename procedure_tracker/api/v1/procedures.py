"""
Procedures API — list, create, edit procedures; acknowledge them and read
acknowledgment statistics.

Anyone signed in can read and acknowledge. Only admins create and edit.
"""

import logging
from datetime import date, datetime
from typing import Annotated, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from pydantic import AfterValidator, BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from procedure_tracker.api.v1.auth import get_current_admin, get_current_user
from procedure_tracker.core.database import get_db
from procedure_tracker.models.procedure import (
    SOURCE_LINK_MAX_LENGTH,
    SOURCE_MAX_LENGTH,
    TITLE_MAX_LENGTH,
    ProcedureStatus,
)
from procedure_tracker.models.profile import Profile
from procedure_tracker.services.acknowledgment_service import (
    AcknowledgmentStats,
    acknowledgment_service,
)
from procedure_tracker.services.procedure_query import SortKey, StatusFilter
from procedure_tracker.services.procedure_service import procedure_service

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------- Schemas ----------

def _require_title(v: str) -> str:
    if not v.strip():
        raise ValueError("Title is required")
    return v.strip()


Title = Annotated[str, Field(max_length=TITLE_MAX_LENGTH), AfterValidator(_require_title)]
Source = Annotated[str, Field(max_length=SOURCE_MAX_LENGTH)]
SourceLink = Annotated[str, Field(max_length=SOURCE_LINK_MAX_LENGTH)]


class ProcedureCreate(BaseModel):
    title: Title
    description: str = ""
    source: Source = ""
    source_link: SourceLink = ""
    effective_date: date


class ProcedureUpdate(BaseModel):
    title: Optional[Title] = None
    description: Optional[str] = None
    source: Optional[Source] = None
    source_link: Optional[SourceLink] = None
    effective_date: Optional[date] = None
    status: Optional[ProcedureStatus] = None


class ProcedureResponse(BaseModel):
    id: UUID
    title: str
    description: str
    source: str
    source_link: str
    effective_date: date
    status: ProcedureStatus
    created_by: Optional[UUID] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class StatsResponse(BaseModel):
    procedure_id: UUID
    has_acknowledged: bool
    acknowledged_count: int
    total_profiles: int
    completion_percentage: int

    @classmethod
    def from_stats(cls, stats: AcknowledgmentStats) -> "StatsResponse":
        return cls(
            procedure_id=stats.procedure_id,
            has_acknowledged=stats.has_acknowledged,
            acknowledged_count=stats.acknowledged_count,
            total_profiles=stats.total_profiles,
            completion_percentage=stats.completion_percentage,
        )


class AcknowledgmentResponse(BaseModel):
    id: UUID
    procedure_id: UUID
    user_id: UUID
    acknowledged_at: datetime

    class Config:
        from_attributes = True


class AcknowledgerResponse(BaseModel):
    user_id: UUID
    full_name: str
    email: str
    acknowledged_at: datetime


# ---------- Routes ----------

@router.get("/", response_model=List[ProcedureResponse])
async def list_procedures(
    status_filter: Optional[StatusFilter] = Query(None, alias="status"),
    q: str = "",
    sort: Optional[SortKey] = None,
    current_user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """All procedures, newest created first. Optional filter/search/sort."""
    return await procedure_service.list_procedures(
        db,
        status_filter=status_filter,
        query=q,
        sort_key=sort,
    )


@router.get("/stats", response_model=List[StatsResponse])
async def list_stats(
    current_user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Acknowledgment statistics for every procedure in one call."""
    stats = await acknowledgment_service.get_stats_for_all(db, current_user.id)
    return [StatsResponse.from_stats(s) for s in stats]


@router.post("/", status_code=status.HTTP_201_CREATED, response_model=ProcedureResponse)
async def create_procedure(
    data: ProcedureCreate,
    current_user: Profile = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    """Create a procedure (admin only). New procedures are always active."""
    return await procedure_service.create_procedure(
        db,
        created_by=current_user.id,
        title=data.title,
        description=data.description,
        source=data.source,
        source_link=data.source_link,
        effective_date=data.effective_date,
    )


@router.get("/{procedure_id}", response_model=ProcedureResponse)
async def get_procedure(
    procedure_id: UUID,
    current_user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    procedure = await procedure_service.get_procedure(db, procedure_id)
    if not procedure:
        raise HTTPException(status_code=404, detail="Procedure not found")
    return procedure


@router.put("/{procedure_id}", response_model=ProcedureResponse)
async def update_procedure(
    procedure_id: UUID,
    data: ProcedureUpdate,
    current_user: Profile = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    """Edit any field, status included (admin only)."""
    procedure = await procedure_service.update_procedure(
        db, procedure_id, data.model_dump(exclude_none=True)
    )
    if not procedure:
        raise HTTPException(status_code=404, detail="Procedure not found")
    return procedure


@router.get("/{procedure_id}/stats", response_model=StatsResponse)
async def get_stats(
    procedure_id: UUID,
    current_user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Whether the caller has acknowledged, and how many profiles have."""
    if not await procedure_service.get_procedure(db, procedure_id):
        raise HTTPException(status_code=404, detail="Procedure not found")
    stats = await acknowledgment_service.get_stats(db, procedure_id, current_user.id)
    return StatsResponse.from_stats(stats)


@router.post("/{procedure_id}/acknowledge", response_model=AcknowledgmentResponse)
async def acknowledge_procedure(
    procedure_id: UUID,
    response: Response,
    current_user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Record that the caller has read this procedure.

    201 when recorded now, 200 when the caller had already acknowledged.
    """
    user_id = current_user.id
    procedure = await procedure_service.get_procedure(db, procedure_id)
    if not procedure:
        raise HTTPException(status_code=404, detail="Procedure not found")
    if procedure.status != ProcedureStatus.ACTIVE:
        raise HTTPException(status_code=400, detail="Only active procedures can be acknowledged")

    ack, created = await acknowledgment_service.acknowledge(db, procedure_id, user_id)
    response.status_code = status.HTTP_201_CREATED if created else status.HTTP_200_OK
    return ack


@router.get("/{procedure_id}/acknowledgments", response_model=List[AcknowledgerResponse])
async def list_acknowledgments(
    procedure_id: UUID,
    current_user: Profile = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    """Who acknowledged this procedure and when (admin only)."""
    if not await procedure_service.get_procedure(db, procedure_id):
        raise HTTPException(status_code=404, detail="Procedure not found")
    rows = await acknowledgment_service.list_acknowledgments(db, procedure_id)
    return [
        AcknowledgerResponse(
            user_id=profile.id,
            full_name=profile.full_name,
            email=profile.email,
            acknowledged_at=ack.acknowledged_at,
        )
        for ack, profile in rows
    ]
