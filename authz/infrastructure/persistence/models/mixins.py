"""SQLAlchemy column mixins shared by role, policy and assignment tables.

CuidMixin: string primary key. AuditedMixin: created/updated timestamps plus
the acting administrator. SoftDeleteMixin: deleted_at / deleted_by; a row with
deleted_at set is invisible to every read.
"""

from datetime import datetime

from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, declared_attr, mapped_column
from sqlalchemy.sql import func

from authz.shared.utils.generators import generate_cuid

# Actor ids come from the host's identity provider; opaque strings.
ACTOR_ID_LENGTH = 64


class CuidMixin:
    @declared_attr
    def id(cls) -> Mapped[str]:
        return mapped_column(String(32), primary_key=True, default=generate_cuid)


class AuditedMixin:
    """created_at / updated_at set by the database; created_by set by services."""

    @declared_attr
    def created_at(cls) -> Mapped[datetime]:
        return mapped_column(
            DateTime(timezone=True), server_default=func.now(), nullable=False
        )

    @declared_attr
    def updated_at(cls) -> Mapped[datetime]:
        return mapped_column(
            DateTime(timezone=True),
            server_default=func.now(),
            onupdate=func.now(),
            nullable=False,
        )

    @declared_attr
    def created_by(cls) -> Mapped[str | None]:
        return mapped_column(String(ACTOR_ID_LENGTH), nullable=True)


class SoftDeleteMixin:
    @declared_attr
    def deleted_at(cls) -> Mapped[datetime | None]:
        return mapped_column(DateTime(timezone=True), nullable=True, index=True)

    @declared_attr
    def deleted_by(cls) -> Mapped[str | None]:
        return mapped_column(String(ACTOR_ID_LENGTH), nullable=True)
