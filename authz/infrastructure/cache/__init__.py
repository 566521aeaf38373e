"""Cache: Redis-backed CacheService implementing ICacheService."""

from authz.infrastructure.cache.redis_cache import CacheService

__all__ = ["CacheService"]
