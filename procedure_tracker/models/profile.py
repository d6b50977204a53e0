from enum import Enum
from typing import TYPE_CHECKING, List

from sqlalchemy import Enum as SAEnum, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from procedure_tracker.models.base import Base, TimestampMixin, UUIDMixin

if TYPE_CHECKING:
    from procedure_tracker.models.procedure import Procedure
    from procedure_tracker.models.acknowledgment import Acknowledgment


EMAIL_MAX_LENGTH = 255
FULL_NAME_MAX_LENGTH = 255


class ProfileRole(str, Enum):
    """Profile roles for RBAC"""
    ADMIN = "admin"     # Can create and edit procedures
    STAFF = "staff"     # Can read and acknowledge procedures


class Profile(Base, UUIDMixin, TimestampMixin):
    """A registered principal: identity, display name and role"""
    __tablename__ = "profiles"

    # Identity
    email: Mapped[str] = mapped_column(String(EMAIL_MAX_LENGTH), unique=True, nullable=False, index=True)
    full_name: Mapped[str] = mapped_column(String(FULL_NAME_MAX_LENGTH), nullable=False, default="")

    # Authentication
    hashed_password: Mapped[str] = mapped_column(String(255), nullable=False)

    # Role
    role: Mapped[ProfileRole] = mapped_column(
        SAEnum(ProfileRole, name="profile_role", values_callable=lambda e: [m.value for m in e]),
        default=ProfileRole.STAFF,
        nullable=False
    )

    # Relationships
    procedures_created: Mapped[List["Procedure"]] = relationship(
        "Procedure",
        back_populates="creator",
        foreign_keys="Procedure.created_by"
    )
    acknowledgments: Mapped[List["Acknowledgment"]] = relationship(
        "Acknowledgment",
        back_populates="user"
    )

    def __repr__(self) -> str:
        return f"<Profile {self.email}>"

    @property
    def is_admin(self) -> bool:
        return self.role == ProfileRole.ADMIN
