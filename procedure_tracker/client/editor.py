"""
Procedure editor: the create/edit form, its validation, and submission.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional
from urllib.parse import urlparse

from procedure_tracker.client.api_client import (
    ProcedureRecord,
    ProcedureServiceClient,
    ProcedureServiceError,
)
from procedure_tracker.models.procedure import (
    PROCEDURE_SOURCES,
    SOURCE_LINK_MAX_LENGTH,
    SOURCE_MAX_LENGTH,
    TITLE_MAX_LENGTH,
    ProcedureStatus,
)

logger = logging.getLogger(__name__)


@dataclass
class ProcedureForm:
    title: str = ""
    description: str = ""
    source: str = ""
    source_link: str = ""
    effective_date: Optional[date] = None
    status: ProcedureStatus = ProcedureStatus.ACTIVE

    @classmethod
    def blank(cls, today: Optional[date] = None) -> "ProcedureForm":
        """Defaults for a new procedure; effective today in local time."""
        return cls(effective_date=today or date.today())

    @classmethod
    def from_procedure(cls, procedure: ProcedureRecord) -> "ProcedureForm":
        return cls(
            title=procedure.title,
            description=procedure.description,
            source=procedure.source,
            source_link=procedure.source_link,
            effective_date=procedure.effective_date,
            status=procedure.status,
        )

    def create_payload(self) -> Dict[str, Any]:
        """Status is left out: new procedures always start active."""
        return {
            "title": self.title.strip(),
            "description": self.description,
            "source": self.source,
            "source_link": self.source_link.strip(),
            "effective_date": self.effective_date.isoformat(),
        }

    def update_payload(self) -> Dict[str, Any]:
        payload = self.create_payload()
        payload["status"] = ProcedureStatus(self.status).value
        return payload


@dataclass
class FieldError:
    field: str
    message: str


@dataclass
class ValidationResult:
    errors: List[FieldError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def for_field(self, name: str) -> List[str]:
        return [e.message for e in self.errors if e.field == name]


def validate_procedure_form(form: ProcedureForm) -> ValidationResult:
    result = ValidationResult()
    if not form.title.strip():
        result.errors.append(FieldError("title", "Title is required"))
    elif len(form.title.strip()) > TITLE_MAX_LENGTH:
        result.errors.append(FieldError("title", f"Title must be at most {TITLE_MAX_LENGTH} characters"))
    if form.effective_date is None:
        result.errors.append(FieldError("effective_date", "Effective date is required"))
    if len(form.source) > SOURCE_MAX_LENGTH:
        result.errors.append(FieldError("source", f"Source must be at most {SOURCE_MAX_LENGTH} characters"))
    link = form.source_link.strip()
    if link:
        parsed = urlparse(link)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            result.errors.append(FieldError("source_link", "Source link must be a valid URL"))
        elif len(link) > SOURCE_LINK_MAX_LENGTH:
            result.errors.append(
                FieldError("source_link", f"Source link must be at most {SOURCE_LINK_MAX_LENGTH} characters")
            )
    try:
        ProcedureStatus(form.status)
    except ValueError:
        result.errors.append(FieldError("status", "Unknown status"))
    return result


class EditorMode(str, Enum):
    CREATE = "create"
    EDIT = "edit"


class ProcedureEditor:
    """
    Modal create/edit form. Opening resets the form, from the given
    procedure in edit mode or to defaults in create mode.
    """

    def __init__(
        self,
        client: ProcedureServiceClient,
        on_success: Optional[Callable[[], Awaitable[Any]]] = None,
    ):
        self.client = client
        self.on_success = on_success
        self.is_open = False
        self.procedure: Optional[ProcedureRecord] = None
        self.form = ProcedureForm.blank()
        self.error = ""
        self.validation = ValidationResult()
        self.submitting = False

    @property
    def mode(self) -> EditorMode:
        return EditorMode.EDIT if self.procedure is not None else EditorMode.CREATE

    @property
    def status_editable(self) -> bool:
        return self.mode == EditorMode.EDIT

    @property
    def source_options(self) -> List[str]:
        """Suggested sources, plus the current value when it is free text."""
        options = list(PROCEDURE_SOURCES)
        current = self.form.source.strip()
        if current and current not in options:
            options.append(current)
        return options

    def _reset(self, today: Optional[date] = None) -> None:
        if self.procedure is not None:
            self.form = ProcedureForm.from_procedure(self.procedure)
        else:
            self.form = ProcedureForm.blank(today)
        self.error = ""
        self.validation = ValidationResult()

    def open(self, procedure: Optional[ProcedureRecord] = None, today: Optional[date] = None) -> None:
        self.procedure = procedure
        self.is_open = True
        self._reset(today)

    def close(self) -> None:
        self.is_open = False
        self.procedure = None
        self._reset()

    async def submit(self) -> bool:
        """
        Validate and save. On failure the editor stays open with ``error``
        (store errors) or ``validation`` (field errors) set.
        """
        self.error = ""
        self.validation = validate_procedure_form(self.form)
        if not self.validation.ok:
            return False

        self.submitting = True
        try:
            if self.procedure is not None:
                await self.client.update_procedure(self.procedure.id, self.form.update_payload())
            else:
                await self.client.create_procedure(self.form.create_payload())
        except ProcedureServiceError as e:
            self.error = e.message
            return False
        finally:
            self.submitting = False

        self.close()
        if self.on_success:
            await self.on_success()
        return True
