import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from procedure_tracker.models.base import Base, UUIDMixin, utcnow

if TYPE_CHECKING:
    from procedure_tracker.models.procedure import Procedure
    from procedure_tracker.models.profile import Profile


class Acknowledgment(Base, UUIDMixin):
    """A principal has read a procedure. Written once, never updated or deleted."""
    __tablename__ = "acknowledgments"
    __table_args__ = (
        UniqueConstraint("procedure_id", "user_id", name="uq_acknowledgments_procedure_user"),
    )

    procedure_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("procedures.id"),
        nullable=False,
        index=True
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("profiles.id"),
        nullable=False,
        index=True
    )
    acknowledged_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False
    )

    # Relationships
    procedure: Mapped["Procedure"] = relationship("Procedure", back_populates="acknowledgments")
    user: Mapped["Profile"] = relationship("Profile", back_populates="acknowledgments")

    def __repr__(self) -> str:
        return f"<Acknowledgment {self.user_id} -> {self.procedure_id}>"
