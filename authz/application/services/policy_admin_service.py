"""Policy administration: create/delete policies and keep the cache coherent.

Every mutation invalidates the affected cache entries after the store write
succeeds and before returning, so the next decision sees the change.
"""

from __future__ import annotations

import logging

from authz.application.dtos.cache import CacheStats
from authz.application.dtos.page import Page
from authz.application.dtos.policy import (
    PolicyFilters,
    PolicyResult,
    PolicySpec,
    PolicyStats,
)
from authz.application.interfaces.repositories import IPolicyStore
from authz.application.services.policy_cache import PolicyCache
from authz.core.constants import DEFAULT_PAGE_SIZE
from authz.domain import wildcard
from authz.domain.enums import ApplicationType, HttpAction
from authz.domain.exceptions import ConflictError
from authz.schemas.policy import PolicyBulkCreate, PolicyCreate
from authz.shared.context import get_current_actor_id
from authz.shared.telemetry.tracing import traced
from authz.shared.utils.pagination import check_page

logger = logging.getLogger(__name__)


def _to_spec(data: PolicyCreate, created_by: str | None) -> PolicySpec:
    return PolicySpec(
        role=data.role,
        resource=data.resource,
        action=data.action,
        application=data.application,
        created_by=created_by,
    )


class PolicyAdminService:
    """Policy CRUD plus cache maintenance for operators."""

    def __init__(self, store: IPolicyStore, policy_cache: PolicyCache) -> None:
        self.store = store
        self.policy_cache = policy_cache

    @traced("policy_admin.create_policy")
    async def create_policy(
        self, data: PolicyCreate, created_by: str | None = None
    ) -> PolicyResult:
        """Create one policy and refresh its role's cache entry.

        Raises:
            ConflictError: An active policy with the same grant exists.
        """
        created_by = created_by or get_current_actor_id()
        if await self.store.exists(data.role, data.resource, data.action, data.application):
            raise ConflictError(
                "Policy already exists",
                role=data.role,
                resource=data.resource,
                action=data.action.value,
                application=data.application.value,
            )
        created = await self.store.create(_to_spec(data, created_by))
        await self.policy_cache.invalidate_role(data.role)
        logger.info(
            "Policy created: %s %s %s (%s)",
            created.role,
            created.action.value,
            created.resource,
            created.application.value,
        )
        return created

    @traced("policy_admin.create_policies")
    async def create_policies(
        self, data: PolicyBulkCreate, created_by: str | None = None
    ) -> list[PolicyResult]:
        """Create many policies, skipping grants that already exist.

        Raises:
            ConflictError: Every requested grant already exists.
        """
        created_by = created_by or get_current_actor_id()
        pending: dict[tuple[str, str, str, str], PolicySpec] = {}
        for item in data.policies:
            key = (item.role, item.resource, item.action.value, item.application.value)
            pending.setdefault(key, _to_spec(item, created_by))
        remaining = [
            spec
            for spec in pending.values()
            if not await self.store.exists(
                spec.role, spec.resource, spec.action, spec.application
            )
        ]
        if not remaining:
            raise ConflictError("All policies already exist", requested=len(data.policies))
        created = await self.store.create_many(remaining)
        for role in sorted({spec.role for spec in remaining}):
            await self.policy_cache.invalidate_role(role)
        logger.info(
            "Bulk policy create: %s created, %s skipped",
            len(created),
            len(data.policies) - len(created),
        )
        return created

    @traced("policy_admin.delete_policy")
    async def delete_policy(
        self,
        role: str,
        resource: str,
        action: HttpAction | str,
        application: ApplicationType | str = ApplicationType.BACKEND,
        deleted_by: str | None = None,
    ) -> None:
        """Soft-delete one policy and refresh its role's cache entry.

        Raises:
            NotFoundError: No active policy matches.
        """
        deleted_by = deleted_by or get_current_actor_id()
        if not wildcard.is_wildcard(resource):
            resource = wildcard.normalize(resource)
        if isinstance(action, str):
            action = action.upper()
        await self.store.delete(role, resource, action, application, deleted_by)
        await self.policy_cache.invalidate_role(role)

    @traced("policy_admin.delete_policies_for_role")
    async def delete_policies_for_role(
        self, role: str, deleted_by: str | None = None
    ) -> int:
        """Soft-delete every policy of role, then rebuild the whole cache.

        Raises:
            NotFoundError: Role has no active policies.
        """
        deleted_by = deleted_by or get_current_actor_id()
        count = await self.store.delete_all_for_role(role, deleted_by)
        await self.policy_cache.invalidate_all()
        return count

    async def list_policies(
        self,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
        filters: PolicyFilters | None = None,
    ) -> Page[PolicyResult]:
        check_page(page, limit)
        return await self.store.paginate(page, limit, filters)

    async def policies_for_role(self, role: str) -> list[PolicyResult]:
        return await self.store.find_by_role(role)

    async def roles_with_policies(self) -> list[str]:
        return await self.store.list_roles_with_policies()

    async def policy_stats(self) -> PolicyStats:
        return await self.store.stats()

    @traced("policy_admin.sync_cache")
    async def sync_cache(self) -> CacheStats:
        """Rebuild the cache from the store and report its state."""
        await self.policy_cache.invalidate_all()
        return await self.policy_cache.stats()

    async def cache_stats(self) -> CacheStats:
        return await self.policy_cache.stats()
