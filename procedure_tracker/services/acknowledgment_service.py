"""
Acknowledgment Service — records that a principal has read a procedure and
derives the per-procedure completion statistics.

At most one acknowledgment exists per (procedure, user). The existence check
below is only a fast path; the unique constraint on the table is what holds
under concurrent submissions, and a rejected duplicate insert is reported
back as "already acknowledged" rather than as an error.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from procedure_tracker.models.acknowledgment import Acknowledgment
from procedure_tracker.models.procedure import Procedure
from procedure_tracker.models.profile import Profile
from procedure_tracker.services.procedure_query import completion_percentage
from procedure_tracker.services.profile_service import profile_service

logger = logging.getLogger(__name__)


@dataclass
class AcknowledgmentStats:
    """Completion figures for one procedure, as seen by one principal."""
    procedure_id: UUID
    has_acknowledged: bool
    acknowledged_count: int
    total_profiles: int

    @property
    def completion_percentage(self) -> int:
        return completion_percentage(self.acknowledged_count, self.total_profiles)


class AcknowledgmentService:

    async def get_acknowledgment(
        self,
        db: AsyncSession,
        procedure_id: UUID,
        user_id: UUID,
    ) -> Optional[Acknowledgment]:
        result = await db.execute(
            select(Acknowledgment).where(
                Acknowledgment.procedure_id == procedure_id,
                Acknowledgment.user_id == user_id,
            )
        )
        return result.scalar_one_or_none()

    # -- Acknowledge -------------------------------------------------------

    async def acknowledge(
        self,
        db: AsyncSession,
        procedure_id: UUID,
        user_id: UUID,
    ) -> Tuple[Acknowledgment, bool]:
        """
        Record an acknowledgment. Returns (acknowledgment, created).

        ``created`` is False when the principal had already acknowledged,
        including when a concurrent request won the insert.
        """
        existing = await self.get_acknowledgment(db, procedure_id, user_id)
        if existing:
            return existing, False

        ack = Acknowledgment(procedure_id=procedure_id, user_id=user_id)
        db.add(ack)
        try:
            await db.commit()
        except IntegrityError:
            await db.rollback()
            existing = await self.get_acknowledgment(db, procedure_id, user_id)
            if existing is None:
                # Not a duplicate: a foreign key or other constraint failed
                raise
            logger.info(f"Duplicate acknowledgment of {procedure_id} by {user_id} ignored")
            return existing, False

        await db.refresh(ack)
        logger.info(f"Procedure {procedure_id} acknowledged by {user_id}")
        return ack, True

    # -- Statistics --------------------------------------------------------

    async def count_acknowledgments(self, db: AsyncSession, procedure_id: UUID) -> int:
        return (await db.execute(
            select(func.count(Acknowledgment.id)).where(
                Acknowledgment.procedure_id == procedure_id
            )
        )).scalar() or 0

    async def get_stats(
        self,
        db: AsyncSession,
        procedure_id: UUID,
        user_id: UUID,
    ) -> AcknowledgmentStats:
        mine = await self.get_acknowledgment(db, procedure_id, user_id)
        return AcknowledgmentStats(
            procedure_id=procedure_id,
            has_acknowledged=mine is not None,
            acknowledged_count=await self.count_acknowledgments(db, procedure_id),
            total_profiles=await profile_service.count_profiles(db),
        )

    async def get_stats_for_all(
        self,
        db: AsyncSession,
        user_id: UUID,
    ) -> List[AcknowledgmentStats]:
        """Stats for every procedure in three queries instead of three per procedure."""
        procedure_ids = (await db.execute(select(Procedure.id))).scalars().all()

        counts: Dict[UUID, int] = dict((await db.execute(
            select(Acknowledgment.procedure_id, func.count(Acknowledgment.id))
            .group_by(Acknowledgment.procedure_id)
        )).all())

        mine = set((await db.execute(
            select(Acknowledgment.procedure_id).where(Acknowledgment.user_id == user_id)
        )).scalars().all())

        total = await profile_service.count_profiles(db)

        return [
            AcknowledgmentStats(
                procedure_id=pid,
                has_acknowledged=pid in mine,
                acknowledged_count=counts.get(pid, 0),
                total_profiles=total,
            )
            for pid in procedure_ids
        ]

    # -- Who acknowledged --------------------------------------------------

    async def list_acknowledgments(
        self,
        db: AsyncSession,
        procedure_id: UUID,
    ) -> List[Tuple[Acknowledgment, Profile]]:
        """Acknowledgments of a procedure with the acknowledging profile, oldest first."""
        result = await db.execute(
            select(Acknowledgment, Profile)
            .join(Profile, Profile.id == Acknowledgment.user_id)
            .where(Acknowledgment.procedure_id == procedure_id)
            .order_by(Acknowledgment.acknowledged_at)
        )
        return [(ack, profile) for ack, profile in result.all()]


# Global singleton
acknowledgment_service = AcknowledgmentService()
