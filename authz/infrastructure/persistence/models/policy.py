"""Policy ORM model: (role, resource, action, application) grants."""

from sqlalchemy import Boolean, Index, String, text
from sqlalchemy.orm import Mapped, mapped_column

from authz.domain.enums import ApplicationType
from authz.infrastructure.persistence.database import Base
from authz.infrastructure.persistence.models.mixins import (
    AuditedMixin,
    CuidMixin,
    SoftDeleteMixin,
)


class Policy(CuidMixin, AuditedMixin, SoftDeleteMixin, Base):
    """Policy. Table: policy.

    role holds a role code (not FK-enforced). Unique
    (role, resource, action, application) among active rows only, so a
    soft-deleted grant can be recreated.
    """

    __tablename__ = "policy"

    role: Mapped[str] = mapped_column(String(50), nullable=False)
    resource: Mapped[str] = mapped_column(String(255), nullable=False)
    action: Mapped[str] = mapped_column(String(10), nullable=False)
    application: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ApplicationType.BACKEND.value
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (
        Index(
            "uq_policy_active_grant",
            "role",
            "resource",
            "action",
            "application",
            unique=True,
            postgresql_where=text("is_active"),
            sqlite_where=text("is_active = 1"),
        ),
        Index("ix_policy_role_active", "role", "is_active"),
    )
