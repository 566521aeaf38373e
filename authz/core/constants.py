"""Core constants: cache key structure and defaults.

Single source of truth for cache key layout. Keys are
"<namespace>:role:<ROLE_CODE>" and "<namespace>:last_load".
"""

CACHE_KEY_SEP = ":"
CACHE_PREFIX_ROLE = "role"
CACHE_LAST_LOAD = "last_load"

# Fixed TTL for per-role policy entries (1 hour)
DEFAULT_POLICY_TTL_SECONDS = 3600

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 500
