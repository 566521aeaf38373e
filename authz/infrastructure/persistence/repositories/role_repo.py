"""Role repository. Read methods return RoleResult (DTO); entity getters return ORM for writes."""

from __future__ import annotations

from sqlalchemy import distinct, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from authz.application.dtos.page import Page
from authz.application.dtos.role import RoleResult, RoleStats
from authz.domain.enums import AssignmentState, RoleState
from authz.infrastructure.persistence.models.role import Role
from authz.infrastructure.persistence.models.role_assignment import RoleAssignment
from authz.infrastructure.persistence.repositories.base import BaseRepository
from authz.shared.utils.datetime import utc_now


def _role_to_result(r: Role) -> RoleResult:
    """Map ORM Role to application RoleResult."""
    return RoleResult(
        id=r.id,
        code=r.code,
        name=r.name,
        description=r.description,
        is_system=r.is_system,
        state=RoleState(r.state),
    )


class RoleRepository(BaseRepository[Role]):
    """Role repository. Soft-deleted roles are invisible to every read."""

    def __init__(self, db: AsyncSession) -> None:
        super().__init__(db, Role)

    def _live(self):
        return select(Role).where(Role.deleted_at.is_(None))

    async def create_role(
        self,
        code: str,
        name: str,
        description: str | None = None,
        *,
        is_system: bool = False,
        state: RoleState = RoleState.ACTIVE,
        created_by: str | None = None,
    ) -> RoleResult:
        """Create a role; return read-model DTO."""
        role = Role(
            code=code,
            name=name,
            description=description,
            is_system=is_system,
            state=state.value,
            created_by=created_by,
        )
        created = await self.create(role)
        return _role_to_result(created)

    async def get_entity(self, role_id: str) -> Role | None:
        """Return live role ORM by id for update/delete."""
        result = await self.db.execute(self._live().where(Role.id == role_id))
        return result.scalar_one_or_none()

    async def get_entity_by_code(self, code: str) -> Role | None:
        """Return role ORM by code, including soft-deleted rows (codes stay unique)."""
        result = await self.db.execute(select(Role).where(Role.code == code))
        return result.scalar_one_or_none()

    async def get_result(self, role_id: str) -> RoleResult | None:
        orm = await self.get_entity(role_id)
        return _role_to_result(orm) if orm else None

    async def get_result_by_code(self, code: str) -> RoleResult | None:
        orm = await self.get_entity_by_code(code)
        if orm is None or orm.deleted_at is not None:
            return None
        return _role_to_result(orm)

    async def list_active(self) -> list[RoleResult]:
        result = await self.db.execute(
            self._live().where(Role.state == RoleState.ACTIVE.value).order_by(Role.name)
        )
        return [_role_to_result(r) for r in result.scalars().all()]

    async def paginate(
        self,
        page: int,
        limit: int,
        *,
        name: str | None = None,
        state: RoleState | None = None,
    ) -> Page[RoleResult]:
        q = self._live()
        if name:
            q = q.where(Role.name.ilike(f"%{name}%"))
        if state is not None:
            q = q.where(Role.state == state.value)
        q = q.order_by(Role.name)
        rows, total = await self._paginate(q, page, limit)
        return Page(
            items=[_role_to_result(r) for r in rows],
            total=total,
            page=page,
            limit=limit,
        )

    async def set_state(self, role: Role, state: RoleState) -> RoleResult:
        role.state = state.value
        updated = await self.update(role)
        return _role_to_result(updated)

    async def soft_delete(self, role: Role, deleted_by: str | None = None) -> None:
        role.deleted_at = utc_now()
        role.deleted_by = deleted_by
        await self.update(role)

    async def count_active_assignments(self, role_id: str) -> int:
        """Assignments of role that are active and not soft-deleted (expiry ignored)."""
        result = await self.db.execute(
            select(func.count(RoleAssignment.id)).where(
                RoleAssignment.role_id == role_id,
                RoleAssignment.state == AssignmentState.ACTIVE.value,
                RoleAssignment.deleted_at.is_(None),
            )
        )
        return result.scalar() or 0

    async def get_stats(self) -> RoleStats:
        live = Role.deleted_at.is_(None)
        counts = await self.db.execute(
            select(Role.state, func.count(Role.id)).where(live).group_by(Role.state)
        )
        by_state = dict(counts.all())
        with_users = (
            await self.db.execute(
                select(func.count(distinct(RoleAssignment.role_id)))
                .select_from(RoleAssignment)
                .join(Role, Role.id == RoleAssignment.role_id)
                .where(
                    live,
                    RoleAssignment.state == AssignmentState.ACTIVE.value,
                    RoleAssignment.deleted_at.is_(None),
                )
            )
        ).scalar() or 0
        active = by_state.get(RoleState.ACTIVE.value, 0)
        inactive = by_state.get(RoleState.INACTIVE.value, 0)
        return RoleStats(
            total=active + inactive,
            active=active,
            inactive=inactive,
            with_users=with_users,
        )
