"""Persistence: SQLAlchemy engine/session helpers, ORM models, repositories, policy store."""

from authz.infrastructure.persistence.database import (
    Base,
    create_all,
    create_engine_from_settings,
    create_session_factory,
    transactional_session,
)
from authz.infrastructure.persistence.policy_store import SqlPolicyStore

__all__ = [
    "Base",
    "SqlPolicyStore",
    "create_all",
    "create_engine_from_settings",
    "create_session_factory",
    "transactional_session",
]
