"""PolicyAdminService tests: duplicate handling and cache maintenance."""

from unittest.mock import AsyncMock

import pytest

from authz.application.dtos.policy import PolicyFilters
from authz.domain.enums import ApplicationType, HttpAction
from authz.domain.exceptions import ConflictError, NotFoundError, ValidationException
from authz.schemas import PolicyBulkCreate, PolicyCreate


def _policy(role: str, resource: str, action: str = "GET", **kw) -> PolicyCreate:
    return PolicyCreate(role=role, resource=resource, action=action, **kw)


@pytest.mark.asyncio
async def test_create_duplicate_policy_conflicts(policy_admin) -> None:
    await policy_admin.create_policy(_policy("ADMIN", "/api/v1/users"))
    with pytest.raises(ConflictError):
        await policy_admin.create_policy(_policy("ADMIN", "/api/v1/users/"))


@pytest.mark.asyncio
async def test_create_policy_records_actor(policy_admin, store) -> None:
    await policy_admin.create_policy(_policy("ADMIN", "/api/v1/users"), created_by="ops")
    assert await store.exists("ADMIN", "/api/v1/users", HttpAction.GET, ApplicationType.BACKEND)


@pytest.mark.asyncio
async def test_create_policy_invalidates_role_entry(store) -> None:
    from authz.application.services.policy_admin_service import PolicyAdminService

    cache = AsyncMock()
    admin = PolicyAdminService(store, cache)
    await admin.create_policy(_policy("ADMIN", "/api/v1/users"))
    cache.invalidate_role.assert_awaited_once_with("ADMIN")


@pytest.mark.asyncio
async def test_bulk_create_skips_existing_and_duplicates(policy_admin) -> None:
    await policy_admin.create_policy(_policy("ADMIN", "/api/v1/users"))
    created = await policy_admin.create_policies(
        PolicyBulkCreate(
            policies=[
                _policy("ADMIN", "/api/v1/users"),
                _policy("ADMIN", "/api/v1/roles/*"),
                _policy("ADMIN", "/api/v1/roles/*"),
                _policy("USER", "/api/v1/me", "get"),
            ]
        )
    )
    assert sorted((p.role, p.resource) for p in created) == [
        ("ADMIN", "/api/v1/roles/*"),
        ("USER", "/api/v1/me"),
    ]


@pytest.mark.asyncio
async def test_bulk_create_all_existing_conflicts(policy_admin) -> None:
    await policy_admin.create_policy(_policy("ADMIN", "/api/v1/users"))
    with pytest.raises(ConflictError):
        await policy_admin.create_policies(
            PolicyBulkCreate(policies=[_policy("ADMIN", "/api/v1/users")])
        )


@pytest.mark.asyncio
async def test_delete_policy_normalizes_and_reports_missing(policy_admin) -> None:
    await policy_admin.create_policy(_policy("ADMIN", "/api/v1/users"))
    await policy_admin.delete_policy("ADMIN", "/api/v1/users/", "get")
    assert await policy_admin.policies_for_role("ADMIN") == []
    with pytest.raises(NotFoundError):
        await policy_admin.delete_policy("ADMIN", "/api/v1/users", HttpAction.GET)


@pytest.mark.asyncio
async def test_deleted_policy_can_be_recreated(policy_admin) -> None:
    await policy_admin.create_policy(_policy("ADMIN", "/api/v1/users"))
    await policy_admin.delete_policy("ADMIN", "/api/v1/users", HttpAction.GET)
    again = await policy_admin.create_policy(_policy("ADMIN", "/api/v1/users"))
    assert again.is_active


@pytest.mark.asyncio
async def test_delete_policies_for_role_rebuilds_cache(store) -> None:
    from authz.application.services.policy_admin_service import PolicyAdminService

    cache = AsyncMock()
    admin = PolicyAdminService(store, cache)
    await admin.create_policy(_policy("ADMIN", "/api/v1/users"))
    await admin.create_policy(_policy("ADMIN", "/api/v1/roles", "POST"))

    assert await admin.delete_policies_for_role("ADMIN") == 2
    cache.invalidate_all.assert_awaited_once()
    with pytest.raises(NotFoundError):
        await admin.delete_policies_for_role("ADMIN")


@pytest.mark.asyncio
async def test_list_policies_and_roles(policy_admin) -> None:
    await policy_admin.create_policy(_policy("ADMIN", "/api/v1/users"))
    await policy_admin.create_policy(_policy("ADMIN", "/api/v1/users", "DELETE"))
    await policy_admin.create_policy(_policy("USER", "/api/v1/me"))

    assert await policy_admin.roles_with_policies() == ["ADMIN", "USER"]
    page = await policy_admin.list_policies(filters=PolicyFilters(role="ADMIN"))
    assert page.total == 2
    with pytest.raises(ValidationException):
        await policy_admin.list_policies(limit=0)


@pytest.mark.asyncio
async def test_sync_cache_and_stats(policy_admin, fake_cache) -> None:
    await policy_admin.create_policy(_policy("ADMIN", "/api/v1/users/*"))
    await policy_admin.create_policy(_policy("USER", "/api/v1/me"))

    stats = await policy_admin.sync_cache()
    assert stats.enabled
    assert stats.role_count_in_cache == 2
    assert stats.last_load_timestamp is not None
    assert "auth:role:ADMIN" in fake_cache.data

    policy_stats = await policy_admin.policy_stats()
    assert policy_stats.total_policies == 2
    assert policy_stats.roles_with_policies == 2
    assert policy_stats.wildcard_policies == 1
    assert (await policy_admin.cache_stats()).role_count_in_cache == 2
