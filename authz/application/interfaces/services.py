"""Service interfaces (ports) for the application layer.

Protocols define contracts for collaborators (DIP).
"""

from __future__ import annotations

from typing import Protocol

from authz.application.dtos.decision import AuthorizationDecision


# Cache service interface
class ICacheService(Protocol):
    """Minimal Redis-shaped cache contract used by PolicyCache.

    Values are plain strings; callers own serialization. Backend failures
    raise CacheUnavailableError.
    """

    def is_available(self) -> bool:
        """Return True if cache is connected."""

    async def get(self, key: str) -> str | None:
        """Return cached value or None."""

    async def set(self, key: str, value: str, ttl: int) -> None:
        """Store value with TTL in seconds."""

    async def delete(self, *keys: str) -> int:
        """Delete keys. Returns count deleted."""

    async def keys(self, pattern: str) -> list[str]:
        """Return keys matching a glob-style pattern."""

    async def exists(self, key: str) -> bool:
        """Return True if key is present."""


# Audit sink interface
class IAuditSink(Protocol):
    """Records authorization decisions (allowed, denied, and fail-closed errors)."""

    async def record_decision(self, decision: AuthorizationDecision) -> None:
        """Persist or forward one decision."""


# Role resolution interface (consumed by AccessGuard)
class IRoleResolver(Protocol):
    """Resolves the in-force role codes of a principal."""

    async def active_role_codes(self, user_id: str) -> list[str]:
        """Return role codes of assignments that are active and not expired."""
