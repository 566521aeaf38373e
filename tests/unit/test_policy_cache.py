"""PolicyCache tests: cache-aside reads, invalidation, warm-up and fallbacks."""

from unittest.mock import AsyncMock

import pytest

from authz.application.dtos.policy import PolicyResult, PolicySpec
from authz.application.services.policy_cache import PolicyCache
from authz.domain.enums import ApplicationType, HttpAction
from authz.domain.exceptions import StoreUnavailableError


async def add(store, role: str, resource: str, action: HttpAction = HttpAction.GET) -> None:
    await store.create(PolicySpec(role=role, resource=resource, action=action))


@pytest.mark.asyncio
async def test_miss_populates_cache_with_ttl(store, policy_cache, fake_cache) -> None:
    await add(store, "ADMIN", "/a")
    policies = await policy_cache.get_policies("ADMIN")
    assert [p.resource for p in policies] == ["/a"]
    assert "auth:role:ADMIN" in fake_cache.data
    assert fake_cache.ttls["auth:role:ADMIN"] == 3600


@pytest.mark.asyncio
async def test_hit_does_not_touch_store(policy_cache, fake_cache) -> None:
    fake_cache.data["auth:role:ADMIN"] = (
        '[{"id":"p1","role":"ADMIN","resource":"/x","action":"GET",'
        '"application":"backend","is_active":true}]'
    )
    policy_cache.store = AsyncMock()
    policies = await policy_cache.get_policies("ADMIN")
    assert policies[0].resource == "/x"
    assert policies[0].action is HttpAction.GET
    policy_cache.store.find_by_role.assert_not_called()


@pytest.mark.asyncio
async def test_malformed_entry_is_a_miss(store, policy_cache, fake_cache) -> None:
    await add(store, "ADMIN", "/a")
    fake_cache.data["auth:role:ADMIN"] = "not json"
    policies = await policy_cache.get_policies("ADMIN")
    assert [p.resource for p in policies] == ["/a"]
    assert fake_cache.data["auth:role:ADMIN"] != "not json"


@pytest.mark.asyncio
async def test_cache_failure_falls_back_to_store(store, policy_cache, fake_cache) -> None:
    await add(store, "ADMIN", "/a")
    fake_cache.fail = True
    assert await policy_cache.is_permitted("ADMIN", "/a", "GET", "backend")


@pytest.mark.asyncio
async def test_works_without_cache(store) -> None:
    await add(store, "ADMIN", "/a/*")
    cache = PolicyCache(store, None)
    assert await cache.is_permitted("ADMIN", "/a/b", "GET", "backend")
    stats = await cache.stats()
    assert not stats.enabled


@pytest.mark.asyncio
async def test_store_failure_propagates(policy_cache, fake_cache) -> None:
    policy_cache.store = AsyncMock()
    policy_cache.store.find_by_role.side_effect = StoreUnavailableError("policy.find_by_role")
    with pytest.raises(StoreUnavailableError):
        await policy_cache.get_policies("ADMIN")


@pytest.mark.asyncio
async def test_is_permitted_exact_and_wildcard(store, policy_cache) -> None:
    await add(store, "ADMIN", "/api/v1/usuarios/*")
    await add(store, "ADMIN", "/dashboard")
    assert await policy_cache.is_permitted("ADMIN", "/api/v1/usuarios/42", "GET", "backend")
    assert await policy_cache.is_permitted("ADMIN", "/api/v1/usuarios", "GET", "backend")
    assert await policy_cache.is_permitted("ADMIN", "/dashboard/", "GET", "backend")
    assert not await policy_cache.is_permitted("ADMIN", "/dashboard/x", "GET", "backend")
    assert not await policy_cache.is_permitted("ADMIN", "/api/v1/usuarios/42", "DELETE", "backend")
    assert not await policy_cache.is_permitted("ADMIN", "/api/v1/usuarios/42", "GET", "frontend")


@pytest.mark.asyncio
async def test_invalidate_role_reloads_fresh_content(store, policy_cache, fake_cache) -> None:
    await add(store, "USER", "/a")
    await policy_cache.get_policies("USER")
    await add(store, "USER", "/b")
    # Stale until invalidated
    assert [p.resource for p in await policy_cache.get_policies("USER")] == ["/a"]

    await policy_cache.invalidate_role("USER")
    assert "auth:role:USER" in fake_cache.data
    assert [p.resource for p in await policy_cache.get_policies("USER")] == ["/a", "/b"]


@pytest.mark.asyncio
async def test_invalidate_role_is_idempotent(store, policy_cache, fake_cache) -> None:
    await add(store, "USER", "/a")
    await policy_cache.invalidate_role("USER")
    once = fake_cache.data["auth:role:USER"]
    await policy_cache.invalidate_role("USER")
    assert fake_cache.data["auth:role:USER"] == once


@pytest.mark.asyncio
async def test_coherence_with_store_after_create_and_delete(store, policy_cache) -> None:
    """After each mutation plus invalidation, the cached decision equals the store's."""
    await add(store, "USER", "/dashboard")
    await policy_cache.invalidate_role("USER")
    direct = await store.exists("USER", "/dashboard", "GET", "backend")
    assert await policy_cache.is_permitted("USER", "/dashboard", "GET", "backend") is direct

    await store.delete("USER", "/dashboard", "GET", "backend")
    await policy_cache.invalidate_role("USER")
    direct = await store.exists("USER", "/dashboard", "GET", "backend")
    assert await policy_cache.is_permitted("USER", "/dashboard", "GET", "backend") is direct


@pytest.mark.asyncio
async def test_warm_all_and_stats(store, policy_cache, fake_cache) -> None:
    await add(store, "ADMIN", "/a")
    await add(store, "USER", "/b")
    assert await policy_cache.warm_all() == 2
    assert set(fake_cache.data) == {"auth:role:ADMIN", "auth:role:USER", "auth:last_load"}

    stats = await policy_cache.stats()
    assert stats.enabled
    assert stats.role_count_in_cache == 2
    assert stats.last_load_timestamp == fake_cache.data["auth:last_load"]


@pytest.mark.asyncio
async def test_invalidate_all_drops_stale_roles(store, policy_cache, fake_cache) -> None:
    await add(store, "ADMIN", "/a")
    fake_cache.data["auth:role:GONE"] = "[]"
    fake_cache.data["other:key"] = "keep"
    await policy_cache.invalidate_all()
    assert "auth:role:GONE" not in fake_cache.data
    assert "auth:role:ADMIN" in fake_cache.data
    assert fake_cache.data["other:key"] == "keep"


@pytest.mark.asyncio
async def test_maintenance_survives_cache_outage(store, policy_cache, fake_cache) -> None:
    await add(store, "ADMIN", "/a")
    fake_cache.fail = True
    await policy_cache.invalidate_role("ADMIN")
    await policy_cache.invalidate_all()
    stats = await policy_cache.stats()
    assert not stats.enabled


@pytest.mark.asyncio
async def test_unavailable_cache_is_skipped(store, policy_cache, fake_cache) -> None:
    await add(store, "ADMIN", "/a")
    fake_cache.available = False
    assert await policy_cache.warm_all() == 0
    assert await policy_cache.is_permitted("ADMIN", "/a", "GET", "backend")
    assert fake_cache.data == {}


@pytest.mark.asyncio
async def test_unexpected_cache_error_falls_back_to_store(store, policy_cache, fake_cache) -> None:
    await add(store, "ADMIN", "/a")
    fake_cache.get = AsyncMock(side_effect=RuntimeError("adapter bug"))
    fake_cache.set = AsyncMock(side_effect=RuntimeError("adapter bug"))
    assert await policy_cache.is_permitted("ADMIN", "/a", "GET", "backend")
    assert [p.resource for p in await policy_cache.get_policies("ADMIN")] == ["/a"]


@pytest.mark.parametrize(
    "resource,url,action,application,expected",
    [
        ("/api/v1/users", "/api/v1/users", "GET", "backend", True),
        ("/api/v1/users", "/api/v1/users/1", "GET", "backend", False),
        ("/api/v1/users/*", "/api/v1/users/1", "GET", "backend", True),
        ("/api/v1/users/*", "/api/v1/users", HttpAction.GET, "backend", True),
        ("/api/v1/users/*", "/api/v1/users/1", "POST", "backend", False),
        ("/api/v1/users/*", "/api/v1/users/1", "GET", "frontend", False),
    ],
)
def test_policy_applies_to(resource, url, action, application, expected) -> None:
    policy = PolicyResult(
        id="p1",
        role="ADMIN",
        resource=resource,
        action=HttpAction.GET,
        application=ApplicationType.BACKEND,
    )
    assert policy.applies_to(url, action, application) is expected
