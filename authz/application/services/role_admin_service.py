"""Role administration: role CRUD guarded by system-role and in-use invariants."""

from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from authz.application.dtos.page import Page
from authz.application.dtos.role import RoleResult, RoleStats
from authz.application.services.policy_cache import PolicyCache
from authz.core.constants import DEFAULT_PAGE_SIZE
from authz.domain.enums import RoleState
from authz.domain.exceptions import ConflictError, NotFoundError
from authz.infrastructure.persistence.database import transactional_session
from authz.infrastructure.persistence.models.role import Role
from authz.infrastructure.persistence.repositories.policy_repo import PolicyRepository
from authz.infrastructure.persistence.repositories.role_repo import RoleRepository
from authz.schemas.role import RoleCreate, RoleUpdate
from authz.shared.context import get_current_actor_id
from authz.shared.telemetry.tracing import traced
from authz.shared.utils.pagination import check_page

logger = logging.getLogger(__name__)


class RoleAdminService:
    """Create, update, deactivate and delete roles; keeps the policy cache coherent."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        policy_cache: PolicyCache,
    ) -> None:
        self._session_factory = session_factory
        self.policy_cache = policy_cache

    def _session(self, operation: str):
        return transactional_session(self._session_factory, operation)

    @staticmethod
    async def _require(roles: RoleRepository, role_id: str) -> Role:
        role = await roles.get_entity(role_id)
        if role is None:
            raise NotFoundError("role", role_id)
        return role

    @staticmethod
    async def _guard_deactivation(roles: RoleRepository, role: Role) -> None:
        """Block deactivating a role that users still hold."""
        in_use = await roles.count_active_assignments(role.id)
        if in_use:
            raise ConflictError(
                "Role has active user assignments",
                role_id=role.id,
                active_assignments=in_use,
            )

    @traced("role_admin.create_role")
    async def create_role(
        self, data: RoleCreate, created_by: str | None = None
    ) -> RoleResult:
        """Create an active role.

        Raises:
            ConflictError: The code is already taken (deleted roles included).
        """
        created_by = created_by or get_current_actor_id()
        async with self._session("role.create") as session:
            roles = RoleRepository(session)
            if await roles.get_entity_by_code(data.code) is not None:
                raise ConflictError("Role code already exists", code=data.code)
            created = await roles.create_role(
                code=data.code,
                name=data.name,
                description=data.description,
                is_system=data.is_system,
                created_by=created_by,
            )
        logger.info("Role created: %s", created.code)
        return created

    async def get_role(self, role_id: str) -> RoleResult:
        async with self._session("role.get") as session:
            role = await RoleRepository(session).get_result(role_id)
        if role is None:
            raise NotFoundError("role", role_id)
        return role

    async def get_role_by_code(self, code: str) -> RoleResult:
        async with self._session("role.get_by_code") as session:
            role = await RoleRepository(session).get_result_by_code(code)
        if role is None:
            raise NotFoundError("role", code)
        return role

    async def list_active_roles(self) -> list[RoleResult]:
        async with self._session("role.list_active") as session:
            return await RoleRepository(session).list_active()

    async def list_roles(
        self,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
        name: str | None = None,
        state: RoleState | None = None,
    ) -> Page[RoleResult]:
        check_page(page, limit)
        async with self._session("role.list") as session:
            return await RoleRepository(session).paginate(
                page, limit, name=name, state=state
            )

    @traced("role_admin.update_role")
    async def update_role(self, role_id: str, data: RoleUpdate) -> RoleResult:
        """Apply a partial update. A code change moves the role's policies along.

        Raises:
            NotFoundError: Role does not exist.
            ConflictError: System role code change, code taken, or deactivating a role in use.
        """
        async with self._session("role.update") as session:
            roles = RoleRepository(session)
            role = await self._require(roles, role_id)
            old_code = role.code
            code_changed = data.code is not None and data.code != role.code
            if code_changed:
                if role.is_system:
                    raise ConflictError("System role code cannot change", code=role.code)
                if await roles.get_entity_by_code(data.code) is not None:
                    raise ConflictError("Role code already exists", code=data.code)
                role.code = data.code
                await PolicyRepository(session).rename_role(old_code, data.code)
            if (
                data.state is RoleState.INACTIVE
                and role.state == RoleState.ACTIVE.value
            ):
                await self._guard_deactivation(roles, role)
            if data.name is not None:
                role.name = data.name
            if data.description is not None:
                role.description = data.description
            if data.state is not None:
                role.state = data.state.value
            await roles.update(role)
            result = await roles.get_result(role_id)
        if code_changed:
            logger.info("Role code changed: %s -> %s", old_code, result.code)
            await self.policy_cache.invalidate_all()
        else:
            await self.policy_cache.invalidate_role(result.code)
        return result

    @traced("role_admin.change_state")
    async def change_state(self, role_id: str, state: RoleState) -> RoleResult:
        """Activate or deactivate a role.

        Raises:
            NotFoundError: Role does not exist.
            ConflictError: Deactivating a role with active assignments.
        """
        async with self._session("role.change_state") as session:
            roles = RoleRepository(session)
            role = await self._require(roles, role_id)
            if state is RoleState.INACTIVE and role.state == RoleState.ACTIVE.value:
                await self._guard_deactivation(roles, role)
            result = await roles.set_state(role, state)
        await self.policy_cache.invalidate_role(result.code)
        logger.info("Role %s is now %s", result.code, state.value)
        return result

    @traced("role_admin.delete_role")
    async def delete_role(self, role_id: str, deleted_by: str | None = None) -> None:
        """Soft-delete a role; its policies are kept for audit.

        Raises:
            NotFoundError: Role does not exist.
            ConflictError: System role, or role has active assignments.
        """
        deleted_by = deleted_by or get_current_actor_id()
        async with self._session("role.delete") as session:
            roles = RoleRepository(session)
            role = await self._require(roles, role_id)
            if role.is_system:
                raise ConflictError("System role cannot be deleted", code=role.code)
            await self._guard_deactivation(roles, role)
            code = role.code
            await roles.soft_delete(role, deleted_by)
        await self.policy_cache.invalidate_all()
        logger.info("Role deleted: %s", code)

    async def count_users(self, role_id: str) -> int:
        """Active assignments referencing the role.

        Raises:
            NotFoundError: Role does not exist.
        """
        async with self._session("role.count_users") as session:
            roles = RoleRepository(session)
            role = await self._require(roles, role_id)
            return await roles.count_active_assignments(role.id)

    async def role_stats(self) -> RoleStats:
        async with self._session("role.stats") as session:
            return await RoleRepository(session).get_stats()
