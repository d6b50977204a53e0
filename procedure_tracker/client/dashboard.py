"""
Procedure list controller: the authoritative procedure list, the view state
(search, status filter, sort) and the list derived from them.
"""

import logging
from typing import List, Optional

from procedure_tracker.client.api_client import (
    ProcedureRecord,
    ProcedureServiceClient,
    ProcedureServiceError,
    ProfileRecord,
)
from procedure_tracker.client.card import ProcedureCard
from procedure_tracker.client.editor import ProcedureEditor
from procedure_tracker.services.procedure_query import (
    DEFAULT_SORT_KEY,
    DEFAULT_STATUS_FILTER,
    SortKey,
    StatusFilter,
    apply_view,
)

logger = logging.getLogger(__name__)

EMPTY_SEARCH_MESSAGE = "Try adjusting your search or filters"
EMPTY_ADMIN_MESSAGE = "Get started by adding your first procedure"
EMPTY_STAFF_MESSAGE = "No procedures have been added yet"


class ProcedureListController:

    def __init__(self, client: ProcedureServiceClient, viewer: ProfileRecord):
        self.client = client
        self.viewer = viewer
        self.loading = False
        self.load_error = ""

        self._procedures: List[ProcedureRecord] = []
        self._search_query = ""
        self._status_filter = DEFAULT_STATUS_FILTER
        self._sort_key = DEFAULT_SORT_KEY
        self.visible: List[ProcedureRecord] = []

        self.editor = ProcedureEditor(client, on_success=self.load)

    # -- Authoritative list ------------------------------------------------

    @property
    def procedures(self) -> List[ProcedureRecord]:
        return list(self._procedures)

    async def load(self) -> None:
        """
        Fetch every procedure. On failure the list is emptied and the
        message is left in ``load_error`` for a retry prompt.
        """
        self.loading = True
        self.load_error = ""
        try:
            self._procedures = await self.client.list_procedures()
        except ProcedureServiceError as e:
            logger.warning(f"Loading procedures failed: {e.message}")
            self.load_error = e.message
            self._procedures = []
        finally:
            self.loading = False
        self._recompute()

    # -- View state --------------------------------------------------------

    @property
    def search_query(self) -> str:
        return self._search_query

    @search_query.setter
    def search_query(self, value: str) -> None:
        self._search_query = value or ""
        self._recompute()

    @property
    def status_filter(self) -> StatusFilter:
        return self._status_filter

    @status_filter.setter
    def status_filter(self, value: StatusFilter | str) -> None:
        self._status_filter = StatusFilter(value)
        self._recompute()

    @property
    def sort_key(self) -> SortKey:
        return self._sort_key

    @sort_key.setter
    def sort_key(self, value: SortKey | str) -> None:
        self._sort_key = SortKey(value)
        self._recompute()

    def _recompute(self) -> None:
        self.visible = apply_view(
            self._procedures,
            self._status_filter,
            self._search_query,
            self._sort_key,
        )

    # -- Presentation ------------------------------------------------------

    @property
    def can_create(self) -> bool:
        return self.viewer.is_admin

    @property
    def empty_message(self) -> Optional[str]:
        """None while there are rows to show or when a failed load should be shown instead."""
        if self.visible:
            return None
        if self.load_error:
            return None
        if self._search_query:
            return EMPTY_SEARCH_MESSAGE
        if self.viewer.is_admin:
            return EMPTY_ADMIN_MESSAGE
        return EMPTY_STAFF_MESSAGE

    def open_create(self) -> None:
        if not self.can_create:
            return
        self.editor.open()

    def cards(self) -> List[ProcedureCard]:
        return [
            ProcedureCard(
                self.client,
                procedure,
                self.viewer,
                on_edit=self.editor.open,
                on_refresh=self.load,
            )
            for procedure in self.visible
        ]
