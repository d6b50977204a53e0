import uuid
from datetime import date
from enum import Enum
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import Date, Enum as SAEnum, ForeignKey, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from procedure_tracker.models.base import Base, TimestampMixin, UUIDMixin

if TYPE_CHECKING:
    from procedure_tracker.models.profile import Profile
    from procedure_tracker.models.acknowledgment import Acknowledgment


class ProcedureStatus(str, Enum):
    """Lifecycle label. Any value may be replaced by any other."""
    ACTIVE = "active"
    ARCHIVED = "archived"
    REPLACED = "replaced"


# Suggested values for Procedure.source; advisory only, never enforced
PROCEDURE_SOURCES = ["Teams", "Slack", "WhatsApp", "Email", "Other"]

# Column widths; request schemas and the client form enforce the same limits
TITLE_MAX_LENGTH = 500
SOURCE_MAX_LENGTH = 255
SOURCE_LINK_MAX_LENGTH = 2000


class Procedure(Base, UUIDMixin, TimestampMixin):
    """An organizational procedure, usually captured from a chat message"""
    __tablename__ = "procedures"

    # Content
    title: Mapped[str] = mapped_column(String(TITLE_MAX_LENGTH), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    source: Mapped[str] = mapped_column(String(SOURCE_MAX_LENGTH), nullable=False, default="")
    source_link: Mapped[str] = mapped_column(String(SOURCE_LINK_MAX_LENGTH), nullable=False, default="")
    effective_date: Mapped[date] = mapped_column(Date, nullable=False)

    # Lifecycle
    status: Mapped[ProcedureStatus] = mapped_column(
        SAEnum(ProcedureStatus, name="procedure_status", values_callable=lambda e: [m.value for m in e]),
        default=ProcedureStatus.ACTIVE,
        nullable=False,
        index=True
    )

    # Who created it
    created_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("profiles.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )

    # Relationships
    creator: Mapped[Optional["Profile"]] = relationship(
        "Profile",
        back_populates="procedures_created",
        foreign_keys=[created_by]
    )
    acknowledgments: Mapped[List["Acknowledgment"]] = relationship(
        "Acknowledgment",
        back_populates="procedure"
    )

    def __repr__(self) -> str:
        return f"<Procedure {self.title} [{self.status.value}]>"
