"""RoleAssignment repository: user-role bindings.

Expiry is never evaluated in SQL. Rows are filtered by state in the query and
by is_in_force() in Python, which keeps behaviour identical across backends
that do not round-trip timezone-aware datetimes.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import distinct, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload

from authz.application.dtos.assignment import (
    AssignmentFilters,
    AssignmentStats,
    RoleAssignmentResult,
)
from authz.application.dtos.page import Page
from authz.domain.assignment import is_in_force
from authz.domain.enums import AssignmentState, RoleState
from authz.infrastructure.persistence.models.role import Role
from authz.infrastructure.persistence.models.role_assignment import RoleAssignment
from authz.infrastructure.persistence.repositories.base import BaseRepository
from authz.shared.utils.datetime import ensure_utc, utc_now


def _assignment_to_result(a: RoleAssignment, role_code: str) -> RoleAssignmentResult:
    """Map ORM RoleAssignment to application RoleAssignmentResult."""
    return RoleAssignmentResult(
        id=a.id,
        user_id=a.user_id,
        role_id=a.role_id,
        role_code=role_code,
        state=AssignmentState(a.state),
        assigned_by=a.assigned_by,
        assigned_at=ensure_utc(a.assigned_at),
        expires_at=ensure_utc(a.expires_at),
        revoked_at=ensure_utc(a.revoked_at),
        revoked_by=a.revoked_by,
    )


class RoleAssignmentRepository(BaseRepository[RoleAssignment]):
    """User-role link table. One row per (user_id, role_id); state toggles on revoke/reassign."""

    def __init__(self, db: AsyncSession) -> None:
        super().__init__(db, RoleAssignment)

    def _with_role(self):
        return (
            select(RoleAssignment)
            .options(joinedload(RoleAssignment.role))
            .where(RoleAssignment.deleted_at.is_(None))
        )

    async def get_pair(self, user_id: str, role_id: str) -> RoleAssignment | None:
        """Return the (user, role) row with its role loaded, or None."""
        result = await self.db.execute(
            self._with_role().where(
                RoleAssignment.user_id == user_id,
                RoleAssignment.role_id == role_id,
            )
        )
        return result.scalar_one_or_none()

    async def add(
        self,
        user_id: str,
        role: Role,
        assigned_by: str | None = None,
        expires_at: datetime | None = None,
    ) -> RoleAssignmentResult:
        assignment = RoleAssignment(
            user_id=user_id,
            role_id=role.id,
            assigned_by=assigned_by,
            assigned_at=utc_now(),
            expires_at=ensure_utc(expires_at),
            state=AssignmentState.ACTIVE.value,
        )
        created = await self.create(assignment)
        return _assignment_to_result(created, role.code)

    async def reactivate(
        self,
        assignment: RoleAssignment,
        assigned_by: str | None = None,
        expires_at: datetime | None = None,
    ) -> RoleAssignmentResult:
        """Reuse an existing row: clear revocation metadata, refresh assignment fields."""
        role_code = assignment.role.code
        assignment.state = AssignmentState.ACTIVE.value
        assignment.assigned_by = assigned_by
        assignment.assigned_at = utc_now()
        assignment.expires_at = ensure_utc(expires_at)
        assignment.revoked_at = None
        assignment.revoked_by = None
        await self.update(assignment)
        return _assignment_to_result(assignment, role_code)

    async def deactivate(
        self, assignment: RoleAssignment, revoked_by: str | None = None
    ) -> RoleAssignmentResult:
        role_code = assignment.role.code
        assignment.state = AssignmentState.INACTIVE.value
        assignment.revoked_at = utc_now()
        assignment.revoked_by = revoked_by
        await self.update(assignment)
        return _assignment_to_result(assignment, role_code)

    async def list_for_user(
        self, user_id: str, *, active_only: bool = False
    ) -> list[RoleAssignmentResult]:
        q = self._with_role().where(RoleAssignment.user_id == user_id)
        if active_only:
            q = q.where(RoleAssignment.state == AssignmentState.ACTIVE.value)
        q = q.order_by(RoleAssignment.assigned_at)
        result = await self.db.execute(q)
        return [_assignment_to_result(a, a.role.code) for a in result.scalars().all()]

    async def active_entities_for_user(self, user_id: str) -> list[RoleAssignment]:
        """Active rows (expired included) for revocation in replace_all."""
        result = await self.db.execute(
            self._with_role().where(
                RoleAssignment.user_id == user_id,
                RoleAssignment.state == AssignmentState.ACTIVE.value,
            )
        )
        return list(result.scalars().all())

    async def list_for_role(self, role_id: str) -> list[RoleAssignmentResult]:
        """In-force assignments of a role."""
        result = await self.db.execute(
            self._with_role()
            .where(
                RoleAssignment.role_id == role_id,
                RoleAssignment.state == AssignmentState.ACTIVE.value,
            )
            .order_by(RoleAssignment.user_id)
        )
        now = utc_now()
        return [
            _assignment_to_result(a, a.role.code)
            for a in result.scalars().all()
            if is_in_force(a.state, a.expires_at, a.deleted_at, now=now)
        ]

    async def active_role_codes(self, user_id: str) -> list[str]:
        """Codes of available roles with an in-force assignment, sorted and distinct."""
        result = await self.db.execute(
            select(Role.code, RoleAssignment.state, RoleAssignment.expires_at)
            .select_from(RoleAssignment)
            .join(Role, Role.id == RoleAssignment.role_id)
            .where(
                RoleAssignment.user_id == user_id,
                RoleAssignment.state == AssignmentState.ACTIVE.value,
                RoleAssignment.deleted_at.is_(None),
                Role.state == RoleState.ACTIVE.value,
                Role.deleted_at.is_(None),
            )
        )
        now = utc_now()
        return sorted(
            {
                code
                for code, state, expires_at in result.all()
                if is_in_force(state, expires_at, now=now)
            }
        )

    async def paginate(
        self, page: int, limit: int, filters: AssignmentFilters | None = None
    ) -> Page[RoleAssignmentResult]:
        q = self._with_role()
        if filters is not None:
            if filters.user_id:
                q = q.where(RoleAssignment.user_id == filters.user_id)
            if filters.role_id:
                q = q.where(RoleAssignment.role_id == filters.role_id)
            if filters.state is not None:
                q = q.where(RoleAssignment.state == filters.state.value)
        q = q.order_by(RoleAssignment.assigned_at.desc(), RoleAssignment.id)
        rows, total = await self._paginate(q, page, limit)
        return Page(
            items=[_assignment_to_result(a, a.role.code) for a in rows],
            total=total,
            page=page,
            limit=limit,
        )

    async def get_stats(self) -> AssignmentStats:
        live = RoleAssignment.deleted_at.is_(None)
        counts = await self.db.execute(
            select(RoleAssignment.state, func.count(RoleAssignment.id))
            .where(live)
            .group_by(RoleAssignment.state)
        )
        by_state = dict(counts.all())
        users = (
            await self.db.execute(
                select(func.count(distinct(RoleAssignment.user_id))).where(
                    live, RoleAssignment.state == AssignmentState.ACTIVE.value
                )
            )
        ).scalar() or 0
        active = by_state.get(AssignmentState.ACTIVE.value, 0)
        inactive = by_state.get(AssignmentState.INACTIVE.value, 0)
        return AssignmentStats(
            total_assignments=active + inactive,
            active=active,
            inactive=inactive,
            distinct_users_with_roles=users,
            avg_roles_per_active_user=round(active / users, 2) if users else 0.0,
        )
