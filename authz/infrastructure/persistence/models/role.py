"""Role ORM model. Roles are referenced by code from policies."""

from sqlalchemy import Boolean, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from authz.domain.enums import RoleState
from authz.infrastructure.persistence.database import Base
from authz.infrastructure.persistence.models.mixins import (
    AuditedMixin,
    CuidMixin,
    SoftDeleteMixin,
)


class Role(CuidMixin, AuditedMixin, SoftDeleteMixin, Base):
    """Role. Table: role. Unique code."""

    __tablename__ = "role"

    code: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_system: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    state: Mapped[str] = mapped_column(
        String(20), nullable=False, default=RoleState.ACTIVE.value
    )
