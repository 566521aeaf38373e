"""RoleAssignment ORM model: user-role bindings with optional expiry."""

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from authz.domain.enums import AssignmentState
from authz.infrastructure.persistence.database import Base
from authz.infrastructure.persistence.models.mixins import ACTOR_ID_LENGTH, CuidMixin
from authz.infrastructure.persistence.models.role import Role


class RoleAssignment(CuidMixin, Base):
    """User-role binding. Table: role_assignment. Unique (user_id, role_id).

    user_id is an opaque principal id from the identity provider.
    """

    __tablename__ = "role_assignment"

    user_id: Mapped[str] = mapped_column(String(ACTOR_ID_LENGTH), nullable=False)
    role_id: Mapped[str] = mapped_column(
        String(32), ForeignKey("role.id", ondelete="CASCADE"), nullable=False
    )
    assigned_by: Mapped[str | None] = mapped_column(String(ACTOR_ID_LENGTH), nullable=True)
    assigned_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    expires_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    state: Mapped[str] = mapped_column(
        String(20), nullable=False, default=AssignmentState.ACTIVE.value
    )
    revoked_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    revoked_by: Mapped[str | None] = mapped_column(String(ACTOR_ID_LENGTH), nullable=True)
    deleted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    role: Mapped[Role] = relationship(lazy="raise")

    __table_args__ = (
        UniqueConstraint("user_id", "role_id", name="uq_role_assignment_user_role"),
        Index("ix_role_assignment_user_state", "user_id", "state"),
    )
