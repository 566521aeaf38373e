"""Policy cache: cache-aside layer over the policy store, keyed by role.

Entries hold the JSON list of a role's active policies. The cache is an
optimization only: any cache failure (unreachable, timeout, malformed entry)
falls back to a direct store read, while store failures propagate.
"""

from __future__ import annotations

import logging

from pydantic import TypeAdapter, ValidationError

from authz.application.dtos.cache import CacheStats
from authz.application.dtos.policy import PolicyResult
from authz.application.interfaces.repositories import IPolicyStore
from authz.application.interfaces.services import ICacheService
from authz.core.cache_keys import (
    last_load_key,
    namespace_pattern,
    role_keys_pattern,
    role_policies_key,
)
from authz.core.constants import DEFAULT_POLICY_TTL_SECONDS
from authz.domain import wildcard
from authz.domain.enums import ApplicationType, HttpAction
from authz.domain.exceptions import CacheUnavailableError
from authz.shared.telemetry.tracing import add_span_attributes, traced
from authz.shared.utils.datetime import utc_now

logger = logging.getLogger(__name__)

_policies_adapter = TypeAdapter(list[PolicyResult])


class PolicyCache:
    """Role-keyed cache of active policies with explicit invalidation.

    Mutations elsewhere must call invalidate_role / invalidate_all after the
    store write succeeds; the TTL only bounds staleness when they do not.
    """

    def __init__(
        self,
        store: IPolicyStore,
        cache: ICacheService | None = None,
        namespace: str = "auth",
        ttl: int = DEFAULT_POLICY_TTL_SECONDS,
    ) -> None:
        self.store = store
        self.cache = cache
        self.namespace = namespace
        self.ttl = ttl

    def _enabled(self) -> bool:
        return self.cache is not None and self.cache.is_available()

    def _key(self, role: str) -> str | None:
        """Cache key for role, or None when the code cannot be a key component."""
        try:
            return role_policies_key(self.namespace, role)
        except ValueError:
            logger.debug("Role %r bypasses cache (not a valid key component)", role)
            return None

    async def _write(self, key: str, policies: list[PolicyResult]) -> None:
        if not self._enabled():
            return
        try:
            await self.cache.set(
                key, _policies_adapter.dump_json(policies).decode(), self.ttl
            )
        except CacheUnavailableError as e:
            logger.warning("Cache write skipped for %s: %s", key, e.message)
        except Exception:
            logger.exception("Unexpected cache error writing %s; entry skipped", key)

    async def get_policies(self, role: str) -> list[PolicyResult]:
        """Active policies of role, from cache when possible.

        Raises:
            StoreUnavailableError: Cache missed or failed and the store is down.
        """
        key = self._key(role)
        if key is None or not self._enabled():
            return await self.store.find_by_role(role)
        try:
            raw = await self.cache.get(key)
        except CacheUnavailableError as e:
            logger.warning("Cache read failed for role %s, using store: %s", role, e.message)
            return await self.store.find_by_role(role)
        except Exception:
            logger.exception("Unexpected cache error reading role %s, using store", role)
            return await self.store.find_by_role(role)
        if raw is not None:
            try:
                return _policies_adapter.validate_json(raw)
            except ValidationError:
                logger.warning("Malformed cache entry %s, reloading from store", key)
        policies = await self.store.find_by_role(role)
        await self._write(key, policies)
        return policies

    async def is_permitted(
        self,
        role: str,
        resource: str,
        action: HttpAction | str,
        application: ApplicationType | str = ApplicationType.BACKEND,
    ) -> bool:
        """True if role holds an exact or wildcard policy covering resource/action/application."""
        url = wildcard.normalize(resource)
        policies = await self.get_policies(role)
        if any(
            not p.is_wildcard and p.applies_to(url, action, application) for p in policies
        ):
            return True
        return any(p.is_wildcard and p.applies_to(url, action, application) for p in policies)

    @traced("policy_cache.warm_all")
    async def warm_all(self) -> int:
        """Load every role with active policies into the cache. Returns roles loaded."""
        if not self._enabled():
            logger.info("Policy cache disabled; warm-up skipped")
            return 0
        roles = await self.store.list_roles_with_policies()
        for role in roles:
            key = self._key(role)
            if key is not None:
                await self._write(key, await self.store.find_by_role(role))
        try:
            await self.cache.set(
                last_load_key(self.namespace), utc_now().isoformat(), self.ttl
            )
        except CacheUnavailableError as e:
            logger.warning("Could not record cache load time: %s", e.message)
        add_span_attributes(roles_loaded=len(roles))
        logger.info("Policy cache warmed: %s roles", len(roles))
        return len(roles)

    @traced("policy_cache.invalidate_all")
    async def invalidate_all(self) -> None:
        """Drop every key under the namespace, then reload all roles."""
        if self._enabled():
            try:
                keys = await self.cache.keys(namespace_pattern(self.namespace))
                if keys:
                    await self.cache.delete(*keys)
                logger.info("Policy cache cleared: %s keys", len(keys))
            except CacheUnavailableError as e:
                logger.warning("Policy cache clear failed: %s", e.message)
        await self.warm_all()

    @traced("policy_cache.invalidate_role")
    async def invalidate_role(self, role: str) -> None:
        """Drop the role's entry and eagerly reload it from the store."""
        key = self._key(role)
        if key is None or not self._enabled():
            return
        try:
            await self.cache.delete(key)
        except CacheUnavailableError as e:
            logger.warning("Cache invalidation failed for role %s: %s", role, e.message)
            return
        await self._write(key, await self.store.find_by_role(role))
        logger.info("Policy cache invalidated for role %s", role)

    async def stats(self) -> CacheStats:
        """Cache state snapshot; enabled is False when the backend is unreachable."""
        if not self._enabled():
            return CacheStats(enabled=False, role_count_in_cache=0)
        try:
            keys = await self.cache.keys(role_keys_pattern(self.namespace))
            last_load = await self.cache.get(last_load_key(self.namespace))
        except CacheUnavailableError as e:
            logger.warning("Cache stats unavailable: %s", e.message)
            return CacheStats(enabled=False, role_count_in_cache=0)
        return CacheStats(
            enabled=True,
            role_count_in_cache=len(keys),
            last_load_timestamp=last_load,
        )
