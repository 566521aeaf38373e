"""Role assignment service: user-role lifecycle feeding role resolution.

One row per (user, role). Revoking flips the row to inactive; assigning a
revoked or expired pair reactivates the same row. Expiry is evaluated lazily
when roles are resolved.
"""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from authz.application.dtos.assignment import (
    AssignmentError,
    AssignmentFilters,
    AssignmentOutcome,
    AssignmentStats,
    BulkAssignmentResult,
    RoleAssignmentResult,
)
from authz.application.dtos.page import Page
from authz.core.constants import DEFAULT_PAGE_SIZE
from authz.domain.assignment import is_in_force
from authz.domain.enums import AssignmentState, RoleState
from authz.domain.exceptions import ConflictError, NotFoundError
from authz.infrastructure.persistence.database import transactional_session
from authz.infrastructure.persistence.repositories.role_assignment_repo import (
    RoleAssignmentRepository,
)
from authz.infrastructure.persistence.repositories.role_repo import RoleRepository
from authz.shared.context import get_current_actor_id
from authz.shared.telemetry.tracing import traced
from authz.shared.utils.datetime import utc_now
from authz.shared.utils.pagination import check_page

logger = logging.getLogger(__name__)


class RoleAssignmentService:
    """Assigns, revokes and resolves user roles. Implements IRoleResolver."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    def _session(self, operation: str):
        return transactional_session(self._session_factory, operation)

    async def _assign_in(
        self,
        session: AsyncSession,
        user_id: str,
        role_id: str,
        assigned_by: str | None,
        expires_at: datetime | None,
    ) -> RoleAssignmentResult:
        role = await RoleRepository(session).get_entity(role_id)
        if role is None or role.state != RoleState.ACTIVE.value:
            raise NotFoundError("role", role_id)
        assignments = RoleAssignmentRepository(session)
        existing = await assignments.get_pair(user_id, role_id)
        if existing is None:
            return await assignments.add(user_id, role, assigned_by, expires_at)
        if is_in_force(existing.state, existing.expires_at):
            raise ConflictError(
                "Role already assigned to user", user_id=user_id, role_id=role_id
            )
        return await assignments.reactivate(existing, assigned_by, expires_at)

    @traced("assignment.assign")
    async def assign(
        self,
        user_id: str,
        role_id: str,
        assigned_by: str | None = None,
        expires_at: datetime | None = None,
    ) -> RoleAssignmentResult:
        """Assign role to user, reactivating a revoked or expired pair.

        Raises:
            NotFoundError: Role does not exist or is not active.
            ConflictError: The user already holds the role (in force).
        """
        assigned_by = assigned_by or get_current_actor_id()
        async with self._session("assignment.assign") as session:
            result = await self._assign_in(
                session, user_id, role_id, assigned_by, expires_at
            )
        logger.info("Role %s assigned to user %s", result.role_code, user_id)
        return result

    async def try_assign(
        self,
        user_id: str,
        role_id: str,
        assigned_by: str | None = None,
        expires_at: datetime | None = None,
    ) -> AssignmentOutcome:
        """Like assign, but reports NotFound/Conflict as an AssignmentError value."""
        try:
            assignment = await self.assign(user_id, role_id, assigned_by, expires_at)
        except (NotFoundError, ConflictError) as e:
            return AssignmentOutcome(
                error=AssignmentError(role_id=role_id, error_code=e.error_code, message=e.message)
            )
        return AssignmentOutcome(assignment=assignment)

    @traced("assignment.revoke")
    async def revoke(
        self, user_id: str, role_id: str, revoked_by: str | None = None
    ) -> RoleAssignmentResult:
        """Deactivate an assignment.

        Raises:
            NotFoundError: No assignment for the pair.
            ConflictError: Assignment already inactive.
        """
        revoked_by = revoked_by or get_current_actor_id()
        async with self._session("assignment.revoke") as session:
            assignments = RoleAssignmentRepository(session)
            existing = await assignments.get_pair(user_id, role_id)
            if existing is None:
                raise NotFoundError("role assignment", f"{user_id}/{role_id}")
            if existing.state == AssignmentState.INACTIVE.value:
                raise ConflictError(
                    "Role assignment already inactive", user_id=user_id, role_id=role_id
                )
            result = await assignments.deactivate(existing, revoked_by)
        logger.info("Role %s revoked from user %s", result.role_code, user_id)
        return result

    @traced("assignment.change_state")
    async def change_state(
        self,
        user_id: str,
        role_id: str,
        state: AssignmentState,
        changed_by: str | None = None,
    ) -> RoleAssignmentResult:
        """Set an assignment's state explicitly; reactivation keeps the stored expiry.

        Raises:
            NotFoundError: No assignment for the pair, or the role is unavailable on activation.
            ConflictError: Assignment is already in that state.
        """
        changed_by = changed_by or get_current_actor_id()
        async with self._session("assignment.change_state") as session:
            assignments = RoleAssignmentRepository(session)
            existing = await assignments.get_pair(user_id, role_id)
            if existing is None:
                raise NotFoundError("role assignment", f"{user_id}/{role_id}")
            if existing.state == state.value:
                raise ConflictError(
                    f"Role assignment already {state.value}",
                    user_id=user_id,
                    role_id=role_id,
                )
            if state is AssignmentState.INACTIVE:
                return await assignments.deactivate(existing, changed_by)
            if existing.role.state != RoleState.ACTIVE.value or existing.role.deleted_at:
                raise NotFoundError("role", role_id)
            return await assignments.reactivate(existing, changed_by, existing.expires_at)

    @traced("assignment.assign_bulk")
    async def assign_bulk(
        self,
        user_id: str,
        role_ids: list[str],
        assigned_by: str | None = None,
    ) -> BulkAssignmentResult:
        """Best-effort assignment of several roles; partial success is kept.

        Raises:
            ConflictError: Nothing succeeded and at least one role failed.
        """
        result = BulkAssignmentResult()
        for role_id in dict.fromkeys(role_ids):
            outcome = await self.try_assign(user_id, role_id, assigned_by)
            if outcome.assignment is not None:
                result.succeeded.append(outcome.assignment)
            elif outcome.error is not None:
                result.errors.append(outcome.error)
        if not result.succeeded and result.errors:
            raise ConflictError(
                "No roles could be assigned",
                user_id=user_id,
                errors=[e.message for e in result.errors],
            )
        return result

    @traced("assignment.replace_all")
    async def replace_all(
        self,
        user_id: str,
        role_ids: list[str],
        replaced_by: str | None = None,
    ) -> BulkAssignmentResult:
        """Revoke every active assignment then assign role_ids, in one transaction.

        Per-role NotFound/Conflict failures are reported like assign_bulk. If
        nothing could be assigned the transaction rolls back and the previous
        role set stays in place.

        Raises:
            ConflictError: role_ids was non-empty and none could be assigned.
        """
        replaced_by = replaced_by or get_current_actor_id()
        result = BulkAssignmentResult()
        async with self._session("assignment.replace_all") as session:
            assignments = RoleAssignmentRepository(session)
            for existing in await assignments.active_entities_for_user(user_id):
                await assignments.deactivate(existing, replaced_by)
            for role_id in dict.fromkeys(role_ids):
                try:
                    result.succeeded.append(
                        await self._assign_in(session, user_id, role_id, replaced_by, None)
                    )
                except (NotFoundError, ConflictError) as e:
                    result.errors.append(
                        AssignmentError(role_id=role_id, error_code=e.error_code, message=e.message)
                    )
            if not result.succeeded and result.errors:
                raise ConflictError(
                    "No roles could be assigned; previous roles kept",
                    user_id=user_id,
                    errors=[e.message for e in result.errors],
                )
        logger.info(
            "Roles replaced for user %s: %s assigned, %s failed",
            user_id,
            len(result.succeeded),
            len(result.errors),
        )
        return result

    @traced("assignment.active_role_codes")
    async def active_role_codes(self, user_id: str) -> list[str]:
        """Role codes of in-force assignments of available roles (sorted, distinct)."""
        async with self._session("assignment.active_role_codes") as session:
            return await RoleAssignmentRepository(session).active_role_codes(user_id)

    async def roles_for_user(self, user_id: str) -> list[RoleAssignmentResult]:
        """In-force assignments of a user."""
        async with self._session("assignment.roles_for_user") as session:
            rows = await RoleAssignmentRepository(session).list_for_user(
                user_id, active_only=True
            )
        now = utc_now()
        return [a for a in rows if a.is_in_force(now)]

    async def users_for_role(self, role_id: str) -> list[RoleAssignmentResult]:
        """In-force assignments of a role.

        Raises:
            NotFoundError: Role does not exist.
        """
        async with self._session("assignment.users_for_role") as session:
            if await RoleRepository(session).get_entity(role_id) is None:
                raise NotFoundError("role", role_id)
            return await RoleAssignmentRepository(session).list_for_role(role_id)

    async def list_assignments(
        self,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
        filters: AssignmentFilters | None = None,
    ) -> Page[RoleAssignmentResult]:
        check_page(page, limit)
        async with self._session("assignment.list") as session:
            return await RoleAssignmentRepository(session).paginate(page, limit, filters)

    async def user_has_role(self, user_id: str, role_code: str) -> bool:
        return role_code in await self.active_role_codes(user_id)

    async def user_has_any_role(self, user_id: str, role_codes: list[str]) -> bool:
        held = set(await self.active_role_codes(user_id))
        return any(code in held for code in role_codes)

    async def stats(self) -> AssignmentStats:
        async with self._session("assignment.stats") as session:
            return await RoleAssignmentRepository(session).get_stats()
