"""RoleAssignmentService tests on in-memory SQLite."""

from datetime import timedelta

import pytest

from authz.application.dtos.assignment import AssignmentFilters
from authz.domain.enums import AssignmentState, RoleState
from authz.domain.exceptions import ConflictError, NotFoundError, ValidationException
from authz.infrastructure.persistence.database import transactional_session
from authz.infrastructure.persistence.repositories.role_assignment_repo import (
    RoleAssignmentRepository,
)
from authz.infrastructure.persistence.repositories.role_repo import RoleRepository
from authz.shared.context import acting_as
from authz.shared.utils.datetime import utc_now


@pytest.mark.asyncio
async def test_assign_twice_conflicts_then_revoke_and_reassign_reuses_row(
    assignments, make_role
) -> None:
    admin = await make_role("ADMIN")
    first = await assignments.assign("5", admin.id)
    with pytest.raises(ConflictError):
        await assignments.assign("5", admin.id)

    revoked = await assignments.revoke("5", admin.id, revoked_by="ops")
    assert revoked.state is AssignmentState.INACTIVE
    assert revoked.revoked_by == "ops"
    assert revoked.revoked_at is not None

    again = await assignments.assign("5", admin.id)
    assert again.id == first.id
    assert again.state is AssignmentState.ACTIVE
    assert again.revoked_at is None
    assert again.revoked_by is None
    page = await assignments.list_assignments(filters=AssignmentFilters(user_id="5"))
    assert page.total == 1


@pytest.mark.asyncio
async def test_assign_unknown_or_inactive_role_is_not_found(
    assignments, role_admin, make_role
) -> None:
    with pytest.raises(NotFoundError):
        await assignments.assign("5", "missing")
    role = await make_role("GUEST")
    await role_admin.change_state(role.id, RoleState.INACTIVE)
    with pytest.raises(NotFoundError):
        await assignments.assign("5", role.id)


@pytest.mark.asyncio
async def test_assigned_by_defaults_to_current_actor(assignments, make_role) -> None:
    role = await make_role("USER")
    with acting_as("admin-1"):
        result = await assignments.assign("5", role.id)
    assert result.assigned_by == "admin-1"


@pytest.mark.asyncio
async def test_revoke_errors(assignments, make_role) -> None:
    role = await make_role("USER")
    with pytest.raises(NotFoundError):
        await assignments.revoke("5", role.id)
    await assignments.assign("5", role.id)
    await assignments.revoke("5", role.id)
    with pytest.raises(ConflictError):
        await assignments.revoke("5", role.id)


@pytest.mark.asyncio
async def test_expiry_is_lazy(assignments, make_role) -> None:
    """An expired assignment stays active in storage but no longer grants its role."""
    role = await make_role("USUARIO")
    result = await assignments.assign("7", role.id, expires_at=utc_now() - timedelta(seconds=1))
    assert result.state is AssignmentState.ACTIVE
    assert await assignments.active_role_codes("7") == []
    assert await assignments.roles_for_user("7") == []


@pytest.mark.asyncio
async def test_future_expiry_is_in_force(assignments, make_role) -> None:
    role = await make_role("USUARIO")
    await assignments.assign("7", role.id, expires_at=utc_now() + timedelta(hours=1))
    assert await assignments.active_role_codes("7") == ["USUARIO"]


@pytest.mark.asyncio
async def test_expired_assignment_can_be_renewed(assignments, make_role) -> None:
    role = await make_role("USUARIO")
    first = await assignments.assign("7", role.id, expires_at=utc_now() - timedelta(seconds=1))
    renewed = await assignments.assign("7", role.id)
    assert renewed.id == first.id
    assert renewed.expires_at is None
    assert await assignments.active_role_codes("7") == ["USUARIO"]


@pytest.mark.asyncio
async def test_active_role_codes_sorted_and_skip_inactive_roles(
    assignments, role_admin, make_role
) -> None:
    b = await make_role("B_ROLE")
    a = await make_role("A_ROLE")
    c = await make_role("C_ROLE")
    for role in (b, a, c):
        await assignments.assign("u1", role.id)
    await assignments.revoke("u1", c.id)
    assert await assignments.active_role_codes("u1") == ["A_ROLE", "B_ROLE"]
    assert await assignments.user_has_role("u1", "A_ROLE")
    assert not await assignments.user_has_role("u1", "C_ROLE")
    assert await assignments.user_has_any_role("u1", ["X", "B_ROLE"])
    assert not await assignments.user_has_any_role("u1", ["X", "C_ROLE"])


@pytest.mark.asyncio
async def test_assign_bulk_is_best_effort(assignments, make_role) -> None:
    a = await make_role("A_ROLE")
    b = await make_role("B_ROLE")
    await assignments.assign("u1", b.id)

    result = await assignments.assign_bulk("u1", [a.id, b.id, "missing", a.id])
    assert [r.role_code for r in result.succeeded] == ["A_ROLE"]
    assert {(e.role_id, e.error_code) for e in result.errors} == {
        (b.id, "CONFLICT"),
        ("missing", "RESOURCE_NOT_FOUND"),
    }


@pytest.mark.asyncio
async def test_assign_bulk_raises_when_nothing_succeeds(assignments) -> None:
    with pytest.raises(ConflictError):
        await assignments.assign_bulk("u1", ["missing-1", "missing-2"])


@pytest.mark.asyncio
async def test_try_assign_returns_error_kind(assignments, make_role) -> None:
    role = await make_role("A_ROLE")
    ok = await assignments.try_assign("u1", role.id)
    assert ok.ok and ok.error is None
    dup = await assignments.try_assign("u1", role.id)
    assert not dup.ok
    assert dup.error.error_code == "CONFLICT"


@pytest.mark.asyncio
async def test_replace_all_swaps_role_set(assignments, make_role) -> None:
    a = await make_role("A_ROLE")
    b = await make_role("B_ROLE")
    c = await make_role("C_ROLE")
    await assignments.assign("u1", a.id)
    await assignments.assign("u1", b.id)

    result = await assignments.replace_all("u1", [b.id, c.id], replaced_by="ops")
    assert sorted(r.role_code for r in result.succeeded) == ["B_ROLE", "C_ROLE"]
    assert await assignments.active_role_codes("u1") == ["B_ROLE", "C_ROLE"]


@pytest.mark.asyncio
async def test_replace_all_rolls_back_when_nothing_assignable(assignments, make_role) -> None:
    a = await make_role("A_ROLE")
    await assignments.assign("u1", a.id)
    with pytest.raises(ConflictError):
        await assignments.replace_all("u1", ["missing"])
    assert await assignments.active_role_codes("u1") == ["A_ROLE"]


@pytest.mark.asyncio
async def test_replace_all_with_empty_list_revokes_everything(assignments, make_role) -> None:
    a = await make_role("A_ROLE")
    await assignments.assign("u1", a.id)
    result = await assignments.replace_all("u1", [])
    assert result.succeeded == [] and result.errors == []
    assert await assignments.active_role_codes("u1") == []


@pytest.mark.asyncio
async def test_change_state(assignments, make_role) -> None:
    role = await make_role("A_ROLE")
    await assignments.assign("u1", role.id)
    inactive = await assignments.change_state("u1", role.id, AssignmentState.INACTIVE)
    assert inactive.state is AssignmentState.INACTIVE
    with pytest.raises(ConflictError):
        await assignments.change_state("u1", role.id, AssignmentState.INACTIVE)
    active = await assignments.change_state("u1", role.id, AssignmentState.ACTIVE)
    assert active.state is AssignmentState.ACTIVE
    with pytest.raises(NotFoundError):
        await assignments.change_state("u2", role.id, AssignmentState.ACTIVE)


@pytest.mark.asyncio
async def test_users_for_role(assignments, make_role) -> None:
    role = await make_role("A_ROLE")
    await assignments.assign("u2", role.id)
    await assignments.assign("u1", role.id)
    await assignments.assign("u3", role.id, expires_at=utc_now() - timedelta(minutes=1))
    users = await assignments.users_for_role(role.id)
    assert [u.user_id for u in users] == ["u1", "u2"]
    with pytest.raises(NotFoundError):
        await assignments.users_for_role("missing")


@pytest.mark.asyncio
async def test_list_assignments_validates_paging(assignments) -> None:
    with pytest.raises(ValidationException):
        await assignments.list_assignments(page=0)
    with pytest.raises(ValidationException):
        await assignments.list_assignments(limit=10_000)


@pytest.mark.asyncio
async def test_stats(assignments, make_role) -> None:
    a = await make_role("A_ROLE")
    b = await make_role("B_ROLE")
    await assignments.assign("u1", a.id)
    await assignments.assign("u1", b.id)
    await assignments.assign("u2", a.id)
    await assignments.revoke("u2", a.id)
    stats = await assignments.stats()
    assert stats.total_assignments == 3
    assert stats.active == 2
    assert stats.inactive == 1
    assert stats.distinct_users_with_roles == 1
    assert stats.avg_roles_per_active_user == 2.0


@pytest.mark.asyncio
async def test_duplicate_assignment_insert_maps_to_conflict(session_factory, make_role) -> None:
    """A concurrent assign of the same pair hits the (user_id, role_id) unique constraint."""
    created = await make_role("A_ROLE")
    with pytest.raises(ConflictError):
        async with transactional_session(session_factory, "assignment.assign") as session:
            role = await RoleRepository(session).get_entity(created.id)
            repo = RoleAssignmentRepository(session)
            await repo.add("u1", role)
            await repo.add("u1", role)
