"""DTOs for policy cache introspection."""

from dataclasses import dataclass


@dataclass(frozen=True)
class CacheStats:
    enabled: bool
    role_count_in_cache: int
    last_load_timestamp: str | None = None
