"""SQL-backed policy store: durable source of truth for the policy cache.

Each call runs in its own transaction. Connectivity failures and timeouts
surface as StoreUnavailableError (see transactional_session).
"""

from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from authz.application.dtos.page import Page
from authz.application.dtos.policy import (
    PolicyFilters,
    PolicyResult,
    PolicySpec,
    PolicyStats,
)
from authz.domain.enums import ApplicationType, HttpAction
from authz.domain.exceptions import NotFoundError
from authz.infrastructure.persistence.database import transactional_session
from authz.infrastructure.persistence.repositories.policy_repo import PolicyRepository

logger = logging.getLogger(__name__)


class SqlPolicyStore:
    """IPolicyStore over SQLAlchemy. Only active (non-deleted) policies are visible."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    def _session(self, operation: str):
        return transactional_session(self._session_factory, operation)

    async def create(self, policy: PolicySpec) -> PolicyResult:
        async with self._session("policy.create") as session:
            return await PolicyRepository(session).create_policy(policy)

    async def create_many(self, policies: list[PolicySpec]) -> list[PolicyResult]:
        if not policies:
            return []
        async with self._session("policy.create_many") as session:
            return await PolicyRepository(session).create_policies(policies)

    async def find_by_role(self, role: str) -> list[PolicyResult]:
        async with self._session("policy.find_by_role") as session:
            return await PolicyRepository(session).find_by_role(role)

    async def find_by_role_resource_action(
        self,
        role: str,
        variants: list[str],
        action: HttpAction | str,
        application: ApplicationType | str,
    ) -> list[PolicyResult]:
        async with self._session("policy.find_by_role_resource_action") as session:
            return await PolicyRepository(session).find_by_role_resource_action(
                role, variants, action, application
            )

    async def exists(
        self,
        role: str,
        resource: str,
        action: HttpAction | str,
        application: ApplicationType | str,
    ) -> bool:
        async with self._session("policy.exists") as session:
            return await PolicyRepository(session).exists(
                role, resource, action, application
            )

    async def delete(
        self,
        role: str,
        resource: str,
        action: HttpAction | str,
        application: ApplicationType | str,
        deleted_by: str | None = None,
    ) -> None:
        """Soft-delete one policy.

        Raises:
            NotFoundError: No active policy matches.
        """
        async with self._session("policy.delete") as session:
            deleted = await PolicyRepository(session).soft_delete(
                role, resource, action, application, deleted_by
            )
        if deleted is None:
            action_value = getattr(action, "value", action)
            app_value = getattr(application, "value", application)
            raise NotFoundError(
                "policy", f"{role} {action_value} {resource} ({app_value})"
            )
        logger.info("Policy deleted: %s %s %s", role, deleted.action.value, resource)

    async def delete_all_for_role(self, role: str, deleted_by: str | None = None) -> int:
        """Soft-delete every active policy of role.

        Raises:
            NotFoundError: Role has no active policies.
        """
        async with self._session("policy.delete_all_for_role") as session:
            count = await PolicyRepository(session).soft_delete_all_for_role(
                role, deleted_by
            )
        if count == 0:
            raise NotFoundError("policies for role", role)
        logger.info("Deleted %s policies for role %s", count, role)
        return count

    async def list_roles_with_policies(self) -> list[str]:
        async with self._session("policy.list_roles") as session:
            return await PolicyRepository(session).list_roles_with_policies()

    async def paginate(
        self, page: int, limit: int, filters: PolicyFilters | None = None
    ) -> Page[PolicyResult]:
        async with self._session("policy.paginate") as session:
            return await PolicyRepository(session).paginate(page, limit, filters)

    async def stats(self) -> PolicyStats:
        async with self._session("policy.stats") as session:
            return await PolicyRepository(session).get_stats()
