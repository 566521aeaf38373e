"""Authorization core lifespan: startup and shutdown.

Single place for wiring (SRP): SQL engine and session factory, Redis cache
(if enabled), services, and cache warm-up. No business logic here.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from authz.application.interfaces.services import IAuditSink, ICacheService
from authz.application.services.access_guard import AccessGuard
from authz.application.services.authorization_engine import AuthorizationEngine
from authz.application.services.policy_admin_service import PolicyAdminService
from authz.application.services.policy_cache import PolicyCache
from authz.application.services.role_admin_service import RoleAdminService
from authz.application.services.role_assignment_service import RoleAssignmentService
from authz.core.config import Settings, get_settings
from authz.domain.exceptions import StoreUnavailableError
from authz.infrastructure.cache.redis_cache import CacheService
from authz.infrastructure.persistence.database import (
    create_engine_from_settings,
    create_session_factory,
)
from authz.infrastructure.persistence.policy_store import SqlPolicyStore
from authz.infrastructure.services.audit_sink import LoggingAuditSink

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthorizationComponents:
    """Everything a host application needs, wired together."""

    settings: Settings
    session_factory: async_sessionmaker[AsyncSession]
    db_engine: AsyncEngine | None
    cache: ICacheService | None
    store: SqlPolicyStore
    policy_cache: PolicyCache
    engine: AuthorizationEngine
    assignments: RoleAssignmentService
    policy_admin: PolicyAdminService
    role_admin: RoleAdminService
    guard: AccessGuard


def build_components(
    settings: Settings,
    session_factory: async_sessionmaker[AsyncSession],
    cache: ICacheService | None = None,
    audit_sink: IAuditSink | None = None,
    db_engine: AsyncEngine | None = None,
) -> AuthorizationComponents:
    """Wire services over an existing session factory and optional cache."""
    store = SqlPolicyStore(session_factory)
    policy_cache = PolicyCache(
        store,
        cache,
        namespace=settings.cache_namespace,
        ttl=settings.cache_ttl_policies,
    )
    engine = AuthorizationEngine(
        policy_cache, store, audit_sink if audit_sink is not None else LoggingAuditSink()
    )
    assignments = RoleAssignmentService(session_factory)
    return AuthorizationComponents(
        settings=settings,
        session_factory=session_factory,
        db_engine=db_engine,
        cache=cache,
        store=store,
        policy_cache=policy_cache,
        engine=engine,
        assignments=assignments,
        policy_admin=PolicyAdminService(store, policy_cache),
        role_admin=RoleAdminService(session_factory, policy_cache),
        guard=AccessGuard(engine, assignments, settings.default_application),
    )


@asynccontextmanager
async def authorization_lifespan(
    settings: Settings | None = None,
    audit_sink: IAuditSink | None = None,
) -> AsyncIterator[AuthorizationComponents]:
    """Run startup, yield the components, then shut down.

    Startup order: SQL engine, Redis cache (if enabled), services, cache
    warm-up (if enabled). Shutdown order: cache disconnect, engine dispose.
    A failed warm-up is logged; decisions then read through to the store.
    """
    settings = settings or get_settings()
    db_engine: AsyncEngine = create_engine_from_settings(settings)
    session_factory = create_session_factory(db_engine)

    cache: CacheService | None = None
    if settings.redis_enabled:
        cache = CacheService(settings=settings)
        await cache.connect()

    components = build_components(
        settings, session_factory, cache, audit_sink, db_engine
    )
    if settings.cache_warm_on_startup:
        try:
            await components.policy_cache.warm_all()
        except StoreUnavailableError as e:
            logger.warning("Policy cache warm-up skipped: %s", e.message)

    try:
        yield components
    finally:
        if cache is not None:
            await cache.disconnect()
            logger.info("Cache disconnected")
        await db_engine.dispose()
        logger.info("Database engine disposed")
