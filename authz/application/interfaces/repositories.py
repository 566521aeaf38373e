"""Store interfaces (ports) for the application layer.

Protocols define the contracts services depend on (DIP); the SQL
implementations live in authz.infrastructure.persistence.
"""

from __future__ import annotations

from typing import Protocol

from authz.application.dtos.page import Page
from authz.application.dtos.policy import (
    PolicyFilters,
    PolicyResult,
    PolicySpec,
    PolicyStats,
)
from authz.domain.enums import ApplicationType, HttpAction


class IPolicyStore(Protocol):
    """Durable policy access. Source of truth for PolicyCache.

    Implementations raise StoreUnavailableError when the backend is unreachable.
    """

    async def create(self, policy: PolicySpec) -> PolicyResult:
        """Insert one policy; ConflictError on an active duplicate."""
        ...

    async def create_many(self, policies: list[PolicySpec]) -> list[PolicyResult]:
        """Insert policies atomically; ConflictError if any is a duplicate."""
        ...

    async def find_by_role(self, role: str) -> list[PolicyResult]:
        """Active policies for a role ordered by resource, action."""
        ...

    async def find_by_role_resource_action(
        self,
        role: str,
        variants: list[str],
        action: HttpAction | str,
        application: ApplicationType | str,
    ) -> list[PolicyResult]:
        """Active policies for role/action/application whose resource is in variants."""
        ...

    async def exists(
        self,
        role: str,
        resource: str,
        action: HttpAction | str,
        application: ApplicationType | str,
    ) -> bool:
        ...

    async def delete(
        self,
        role: str,
        resource: str,
        action: HttpAction | str,
        application: ApplicationType | str,
        deleted_by: str | None = None,
    ) -> None:
        """Soft-delete; NotFoundError if no active row matches."""
        ...

    async def delete_all_for_role(self, role: str, deleted_by: str | None = None) -> int:
        """Soft-delete every active policy of role; NotFoundError if none."""
        ...

    async def list_roles_with_policies(self) -> list[str]:
        """Distinct role codes having active policies, ascending."""
        ...

    async def paginate(
        self, page: int, limit: int, filters: PolicyFilters | None = None
    ) -> Page[PolicyResult]:
        ...

    async def stats(self) -> PolicyStats:
        """Aggregate counts over active policies."""
        ...
