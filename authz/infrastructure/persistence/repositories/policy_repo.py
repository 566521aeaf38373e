"""Policy repository. Read methods return PolicyResult (DTO); all queries see active rows only."""

from __future__ import annotations

from collections.abc import Iterable
from typing import TypeAlias

from sqlalchemy import distinct, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from authz.application.dtos.page import Page
from authz.application.dtos.policy import (
    PolicyFilters,
    PolicyResult,
    PolicySpec,
    PolicyStats,
)
from authz.domain.enums import ApplicationType, HttpAction
from authz.domain.exceptions import ConflictError
from authz.domain.wildcard import WILDCARD_SUFFIX
from authz.infrastructure.persistence.models.policy import Policy
from authz.infrastructure.persistence.repositories.base import BaseRepository
from authz.shared.utils.datetime import utc_now

GrantKey: TypeAlias = tuple[str, str, str, str]


def _policy_to_result(p: Policy) -> PolicyResult:
    """Map ORM Policy to application PolicyResult."""
    return PolicyResult(
        id=p.id,
        role=p.role,
        resource=p.resource,
        action=HttpAction(p.action),
        application=ApplicationType(p.application),
        is_active=p.is_active,
    )


def _value(v: HttpAction | ApplicationType | str) -> str:
    return v.value if isinstance(v, (HttpAction, ApplicationType)) else v


def _grant_key(spec: PolicySpec) -> GrantKey:
    return (spec.role, spec.resource, _value(spec.action), _value(spec.application))


class PolicyRepository(BaseRepository[Policy]):
    """Policy repository. Deletes are logical (is_active=False, deleted_at set)."""

    def __init__(self, db: AsyncSession) -> None:
        super().__init__(db, Policy)

    def _active(self):
        return select(Policy).where(Policy.is_active.is_(True))

    async def get_active(
        self,
        role: str,
        resource: str,
        action: HttpAction | str,
        application: ApplicationType | str,
    ) -> Policy | None:
        result = await self.db.execute(
            self._active().where(
                Policy.role == role,
                Policy.resource == resource,
                Policy.action == _value(action),
                Policy.application == _value(application),
            )
        )
        return result.scalar_one_or_none()

    async def exists(
        self,
        role: str,
        resource: str,
        action: HttpAction | str,
        application: ApplicationType | str,
    ) -> bool:
        return await self.get_active(role, resource, action, application) is not None

    async def existing_grants(self, specs: Iterable[PolicySpec]) -> set[GrantKey]:
        """Return the grant keys among specs that already exist as active policies."""
        specs = list(specs)
        if not specs:
            return set()
        roles = {s.role for s in specs}
        result = await self.db.execute(
            select(Policy.role, Policy.resource, Policy.action, Policy.application).where(
                Policy.is_active.is_(True), Policy.role.in_(roles)
            )
        )
        active = {tuple(row) for row in result.all()}
        return {_grant_key(s) for s in specs if _grant_key(s) in active}

    async def create_policy(self, spec: PolicySpec) -> PolicyResult:
        """Insert one active policy; ConflictError on an active duplicate."""
        results = await self.create_policies([spec])
        return results[0]

    async def create_policies(self, specs: list[PolicySpec]) -> list[PolicyResult]:
        """Insert policies in the current transaction; all or nothing.

        Raises:
            ConflictError: A grant repeats within the batch or matches an active policy.
        """
        seen: set[GrantKey] = set()
        for spec in specs:
            key = _grant_key(spec)
            if key in seen:
                raise ConflictError(
                    "Duplicate policy in batch",
                    role=key[0], resource=key[1], action=key[2], application=key[3],
                )
            seen.add(key)
        clashes = await self.existing_grants(specs)
        if clashes:
            role, resource, action, application = sorted(clashes)[0]
            raise ConflictError(
                "Policy already exists",
                role=role, resource=resource, action=action, application=application,
            )
        rows = [
            Policy(
                role=spec.role,
                resource=spec.resource,
                action=_value(spec.action),
                application=_value(spec.application),
                is_active=True,
                created_by=spec.created_by,
            )
            for spec in specs
        ]
        self.db.add_all(rows)
        try:
            await self.db.flush()
        except IntegrityError:
            # Concurrent writer won the partial unique index
            raise ConflictError("Policy already exists") from None
        return [_policy_to_result(p) for p in rows]

    async def find_by_role(self, role: str) -> list[PolicyResult]:
        result = await self.db.execute(
            self._active()
            .where(Policy.role == role)
            .order_by(Policy.resource, Policy.action, Policy.application)
        )
        return [_policy_to_result(p) for p in result.scalars().all()]

    async def find_by_role_resource_action(
        self,
        role: str,
        variants: list[str],
        action: HttpAction | str,
        application: ApplicationType | str,
    ) -> list[PolicyResult]:
        if not variants:
            return []
        result = await self.db.execute(
            self._active()
            .where(
                Policy.role == role,
                Policy.resource.in_(variants),
                Policy.action == _value(action),
                Policy.application == _value(application),
            )
            .order_by(Policy.resource)
        )
        return [_policy_to_result(p) for p in result.scalars().all()]

    async def soft_delete(
        self,
        role: str,
        resource: str,
        action: HttpAction | str,
        application: ApplicationType | str,
        deleted_by: str | None = None,
    ) -> PolicyResult | None:
        """Deactivate one policy. Returns None if no active row matched."""
        policy = await self.get_active(role, resource, action, application)
        if policy is None:
            return None
        policy.is_active = False
        policy.deleted_at = utc_now()
        policy.deleted_by = deleted_by
        await self.update(policy)
        return _policy_to_result(policy)

    async def soft_delete_all_for_role(
        self, role: str, deleted_by: str | None = None
    ) -> int:
        """Deactivate every active policy of role. Returns the row count."""
        result = await self.db.execute(
            update(Policy)
            .where(Policy.role == role, Policy.is_active.is_(True))
            .values(is_active=False, deleted_at=utc_now(), deleted_by=deleted_by)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0

    async def list_roles_with_policies(self) -> list[str]:
        result = await self.db.execute(
            select(distinct(Policy.role))
            .where(Policy.is_active.is_(True))
            .order_by(Policy.role)
        )
        return list(result.scalars().all())

    async def paginate(
        self, page: int, limit: int, filters: PolicyFilters | None = None
    ) -> Page[PolicyResult]:
        """Filter conjunctively; resource is a case-insensitive substring match."""
        q = self._active()
        if filters is not None:
            if filters.role:
                q = q.where(Policy.role == filters.role)
            if filters.resource:
                q = q.where(Policy.resource.ilike(f"%{filters.resource}%"))
            if filters.action:
                q = q.where(Policy.action == _value(filters.action))
            if filters.application:
                q = q.where(Policy.application == _value(filters.application))
        q = q.order_by(Policy.role, Policy.resource, Policy.action)
        rows, total = await self._paginate(q, page, limit)
        return Page(
            items=[_policy_to_result(p) for p in rows],
            total=total,
            page=page,
            limit=limit,
        )

    async def get_stats(self) -> PolicyStats:
        """Aggregate counts over active policies."""
        active = Policy.is_active.is_(True)
        total = (
            await self.db.execute(select(func.count(Policy.id)).where(active))
        ).scalar() or 0
        roles = (
            await self.db.execute(
                select(func.count(distinct(Policy.role))).where(active)
            )
        ).scalar() or 0
        by_application = await self.db.execute(
            select(Policy.application, func.count(Policy.id))
            .where(active)
            .group_by(Policy.application)
        )
        by_action = await self.db.execute(
            select(Policy.action, func.count(Policy.id))
            .where(active)
            .group_by(Policy.action)
        )
        wildcards = (
            await self.db.execute(
                select(func.count(Policy.id)).where(
                    active, Policy.resource.endswith(WILDCARD_SUFFIX, autoescape=True)
                )
            )
        ).scalar() or 0
        return PolicyStats(
            total_policies=total,
            roles_with_policies=roles,
            by_application=dict(by_application.all()),
            by_action=dict(by_action.all()),
            wildcard_policies=wildcards,
        )

    async def rename_role(self, old_code: str, new_code: str) -> int:
        """Point every active policy of old_code at new_code. Returns the row count.

        Policies reference role codes without a foreign key, so new_code may
        already hold grants even when no role row uses it.

        Raises:
            ConflictError: new_code already holds one of old_code's grants.
        """
        grant = (Policy.resource, Policy.action, Policy.application)
        target = (
            select(*grant)
            .where(Policy.role == new_code, Policy.is_active.is_(True))
            .subquery()
        )
        clash = (
            await self.db.execute(
                select(*grant)
                .join(
                    target,
                    (target.c.resource == Policy.resource)
                    & (target.c.action == Policy.action)
                    & (target.c.application == Policy.application),
                )
                .where(Policy.role == old_code, Policy.is_active.is_(True))
                .limit(1)
            )
        ).first()
        if clash is not None:
            resource, action, application = clash
            raise ConflictError(
                "Target role code already holds this policy",
                role=new_code, resource=resource, action=action, application=application,
            )
        try:
            result = await self.db.execute(
                update(Policy)
                .where(Policy.role == old_code, Policy.is_active.is_(True))
                .values(role=new_code)
                .execution_options(synchronize_session=False)
            )
        except IntegrityError:
            # Concurrent writer added a colliding grant
            raise ConflictError("Target role code already holds a policy", role=new_code) from None
        return result.rowcount or 0
