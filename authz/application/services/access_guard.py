"""Access guard: the capability an HTTP layer calls before handling a request.

Resolves the principal's in-force roles and asks the engine. Never leaks which
policy was missing; role resolution failures deny.
"""

from __future__ import annotations

import logging

from authz.application.interfaces.services import IRoleResolver
from authz.application.services.authorization_engine import AuthorizationEngine
from authz.domain.enums import ApplicationType
from authz.domain.exceptions import AuthorizationException

logger = logging.getLogger(__name__)


class AccessGuard:
    """Permit/deny for (principal, path, method)."""

    def __init__(
        self,
        engine: AuthorizationEngine,
        role_resolver: IRoleResolver,
        default_application: ApplicationType = ApplicationType.BACKEND,
    ) -> None:
        self.engine = engine
        self.role_resolver = role_resolver
        self.default_application = default_application

    async def check(
        self,
        principal_id: str | None,
        path: str,
        method: str,
        application: ApplicationType | str | None = None,
    ) -> bool:
        """Return True if the principal may perform method on path."""
        if not principal_id:
            return False
        try:
            roles = await self.role_resolver.active_role_codes(principal_id)
        except Exception:
            logger.exception("Role resolution failed for %s; denying", principal_id)
            return False
        return await self.engine.is_authorized(
            roles,
            path,
            method,
            application or self.default_application,
            principal_id=principal_id,
        )

    async def enforce(
        self,
        principal_id: str | None,
        path: str,
        method: str,
        application: ApplicationType | str | None = None,
    ) -> None:
        """Raise AuthorizationException unless check() permits.

        Raises:
            AuthorizationException: Generic "Permission denied".
        """
        if not await self.check(principal_id, path, method, application):
            raise AuthorizationException()
