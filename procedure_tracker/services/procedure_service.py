"""
Procedure Service — listing, creation and editing of procedures.

Authorization (admin-only writes) is enforced by the router dependencies;
this layer only talks to the store.
"""

import logging
from datetime import date
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import desc, select
from sqlalchemy.ext.asyncio import AsyncSession

from procedure_tracker.models.procedure import Procedure, ProcedureStatus
from procedure_tracker.services.procedure_query import (
    SortKey,
    StatusFilter,
    filter_procedures,
    sort_procedures,
)

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("title", "description", "source", "source_link", "effective_date", "status")


class ProcedureService:

    # -- List --------------------------------------------------------------

    async def list_procedures(
        self,
        db: AsyncSession,
        *,
        status_filter: Optional[StatusFilter] = None,
        query: str = "",
        sort_key: Optional[SortKey] = None,
    ) -> List[Procedure]:
        """
        All procedures, newest created first. No pagination.

        The optional arguments apply the same view rules the client uses;
        without them the raw creation order is returned.
        """
        stmt = select(Procedure).order_by(desc(Procedure.created_at))
        rows = list((await db.execute(stmt)).scalars().all())

        if status_filter is not None or query:
            rows = filter_procedures(rows, status_filter or StatusFilter.ALL, query)
        if sort_key is not None:
            rows = sort_procedures(rows, sort_key)
        return rows

    # -- Get single procedure ----------------------------------------------

    async def get_procedure(self, db: AsyncSession, procedure_id: UUID) -> Optional[Procedure]:
        result = await db.execute(select(Procedure).where(Procedure.id == procedure_id))
        return result.scalar_one_or_none()

    # -- Create ------------------------------------------------------------

    async def create_procedure(
        self,
        db: AsyncSession,
        *,
        created_by: UUID,
        title: str,
        effective_date: date,
        description: str = "",
        source: str = "",
        source_link: str = "",
    ) -> Procedure:
        """New procedures always start active."""
        procedure = Procedure(
            title=title,
            description=description or "",
            source=source or "",
            source_link=source_link or "",
            effective_date=effective_date,
            status=ProcedureStatus.ACTIVE,
            created_by=created_by,
        )
        db.add(procedure)
        await db.commit()
        await db.refresh(procedure)
        logger.info(f"Procedure {procedure.id} created by {created_by}")
        return procedure

    # -- Update ------------------------------------------------------------

    async def update_procedure(
        self,
        db: AsyncSession,
        procedure_id: UUID,
        updates: Dict[str, Any],
    ) -> Optional[Procedure]:
        procedure = await self.get_procedure(db, procedure_id)
        if not procedure:
            return None

        for field in EDITABLE_FIELDS:
            if field in updates and updates[field] is not None:
                setattr(procedure, field, updates[field])

        await db.commit()
        await db.refresh(procedure)
        logger.info(f"Procedure {procedure.id} updated (status={procedure.status.value})")
        return procedure


# Global singleton
procedure_service = ProcedureService()
