import logging
from typing import Any, Awaitable, Callable, Optional

from procedure_tracker.client.api_client import (
    ProcedureRecord,
    ProcedureServiceClient,
    ProcedureServiceError,
    ProfileRecord,
)
from procedure_tracker.models.procedure import ProcedureStatus
from procedure_tracker.services.procedure_query import completion_percentage

logger = logging.getLogger(__name__)


class ProcedureCard:
    """One procedure with its acknowledgment figures and the viewer's own state."""

    def __init__(
        self,
        client: ProcedureServiceClient,
        procedure: ProcedureRecord,
        viewer: ProfileRecord,
        on_edit: Optional[Callable[[ProcedureRecord], Any]] = None,
        on_refresh: Optional[Callable[[], Awaitable[Any]]] = None,
    ):
        self.client = client
        self.procedure = procedure
        self.viewer = viewer
        self.on_edit = on_edit
        self.on_refresh = on_refresh

        self.has_acknowledged = False
        self.acknowledged_count = 0
        self.total_profiles = 0
        self.creator: Optional[ProfileRecord] = None
        self.acknowledging = False
        self.error = ""

    @property
    def percentage(self) -> int:
        return completion_percentage(self.acknowledged_count, self.total_profiles)

    @property
    def can_edit(self) -> bool:
        return self.viewer.is_admin

    @property
    def can_acknowledge(self) -> bool:
        return (
            self.procedure.status == ProcedureStatus.ACTIVE
            and not self.has_acknowledged
            and not self.acknowledging
        )

    async def load(self) -> None:
        """Fetch the viewer's acknowledgment state, the counts and the creator."""
        self.error = ""
        try:
            stats = await self.client.get_stats(self.procedure.id)
            self.has_acknowledged = stats.has_acknowledged
            self.acknowledged_count = stats.acknowledged_count
            self.total_profiles = stats.total_profiles

            if self.procedure.created_by:
                try:
                    self.creator = await self.client.get_profile(self.procedure.created_by)
                except ProcedureServiceError as e:
                    if e.status_code != 404:
                        raise
                    self.creator = None
        except ProcedureServiceError as e:
            logger.warning(f"Could not load stats for {self.procedure.id}: {e.message}")
            self.error = e.message

    def edit(self) -> None:
        if self.can_edit and self.on_edit:
            self.on_edit(self.procedure)

    async def acknowledge(self) -> bool:
        """
        Acknowledge the procedure for the viewer. A repeat call, including
        one made while the first is still in flight, does nothing.
        """
        if not self.can_acknowledge:
            return False

        self.acknowledging = True
        self.error = ""
        try:
            await self.client.acknowledge(self.procedure.id)
        except ProcedureServiceError as e:
            self.error = e.message
            return False
        finally:
            self.acknowledging = False

        self.has_acknowledged = True
        await self.load()
        if self.on_refresh:
            await self.on_refresh()
        return True
