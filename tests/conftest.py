"""Pytest configuration and fixtures for authz.

Store-backed fixtures run on an in-memory SQLite database (aiosqlite,
StaticPool so every session shares one connection). The cache is an in-memory
ICacheService fake with switches for simulating an unreachable backend.
"""

import fnmatch

import pytest
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from authz.application.services.authorization_engine import AuthorizationEngine
from authz.application.services.policy_admin_service import PolicyAdminService
from authz.application.services.policy_cache import PolicyCache
from authz.application.services.role_admin_service import RoleAdminService
from authz.application.services.role_assignment_service import RoleAssignmentService
from authz.core.config import Settings
from authz.domain.exceptions import CacheUnavailableError
from authz.infrastructure.persistence.database import create_all, create_session_factory
from authz.infrastructure.persistence.policy_store import SqlPolicyStore
from authz.schemas import RoleCreate

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


class FakeCache:
    """In-memory ICacheService. Set fail=True to make every call raise CacheUnavailableError."""

    def __init__(self) -> None:
        self.data: dict[str, str] = {}
        self.ttls: dict[str, int] = {}
        self.available = True
        self.fail = False
        self.get_calls = 0

    def _check(self, operation: str, key: str | None = None) -> None:
        if self.fail:
            raise CacheUnavailableError(operation, key)

    def is_available(self) -> bool:
        return self.available

    async def get(self, key: str) -> str | None:
        self._check("get", key)
        self.get_calls += 1
        return self.data.get(key)

    async def set(self, key: str, value: str, ttl: int) -> None:
        self._check("set", key)
        self.data[key] = value
        self.ttls[key] = ttl

    async def delete(self, *keys: str) -> int:
        self._check("delete")
        removed = 0
        for key in keys:
            if self.data.pop(key, None) is not None:
                removed += 1
            self.ttls.pop(key, None)
        return removed

    async def keys(self, pattern: str) -> list[str]:
        self._check("keys", pattern)
        return [k for k in self.data if fnmatch.fnmatchcase(k, pattern)]

    async def exists(self, key: str) -> bool:
        self._check("exists", key)
        return key in self.data


class RecordingAuditSink:
    """IAuditSink that keeps decisions in memory."""

    def __init__(self) -> None:
        self.decisions = []

    async def record_decision(self, decision) -> None:
        self.decisions.append(decision)


@pytest.fixture
def settings() -> Settings:
    """Settings for tests (in-memory SQLite, Redis disabled)."""
    return Settings(database_url=TEST_DATABASE_URL, redis_enabled=False)


@pytest.fixture
async def db_engine():
    """Async engine over a fresh in-memory database with the schema created."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await create_all(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return create_session_factory(db_engine)


@pytest.fixture
def fake_cache() -> FakeCache:
    return FakeCache()


@pytest.fixture
def audit_sink() -> RecordingAuditSink:
    return RecordingAuditSink()


@pytest.fixture
def store(session_factory) -> SqlPolicyStore:
    return SqlPolicyStore(session_factory)


@pytest.fixture
def policy_cache(store, fake_cache) -> PolicyCache:
    return PolicyCache(store, fake_cache, namespace="auth", ttl=3600)


@pytest.fixture
def engine(policy_cache, store, audit_sink) -> AuthorizationEngine:
    return AuthorizationEngine(policy_cache, store, audit_sink)


@pytest.fixture
def assignments(session_factory) -> RoleAssignmentService:
    return RoleAssignmentService(session_factory)


@pytest.fixture
def policy_admin(store, policy_cache) -> PolicyAdminService:
    return PolicyAdminService(store, policy_cache)


@pytest.fixture
def role_admin(session_factory, policy_cache) -> RoleAdminService:
    return RoleAdminService(session_factory, policy_cache)


@pytest.fixture
def make_role(role_admin):
    """Factory: create a role by code and return its RoleResult."""

    async def _make(code: str, *, is_system: bool = False):
        return await role_admin.create_role(
            RoleCreate(code=code, name=code.title(), is_system=is_system)
        )

    return _make
