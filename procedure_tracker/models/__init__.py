# Import all models to ensure they're registered with SQLAlchemy
from procedure_tracker.models.base import Base, TimestampMixin, UUIDMixin
from procedure_tracker.models.profile import Profile, ProfileRole
from procedure_tracker.models.procedure import Procedure, ProcedureStatus, PROCEDURE_SOURCES
from procedure_tracker.models.acknowledgment import Acknowledgment

__all__ = [
    "Base",
    "TimestampMixin",
    "UUIDMixin",
    "Profile",
    "ProfileRole",
    "Procedure",
    "ProcedureStatus",
    "PROCEDURE_SOURCES",
    "Acknowledgment",
]
