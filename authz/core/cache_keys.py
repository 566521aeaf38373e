"""Cache key builders. Single place for key format.

Key components (namespace, role code) must not contain CACHE_KEY_SEP or
glob metacharacters, otherwise namespace-wide KEYS/SCAN patterns could
match unrelated entries.
"""

from authz.core.constants import CACHE_KEY_SEP, CACHE_LAST_LOAD, CACHE_PREFIX_ROLE

_FORBIDDEN = frozenset(CACHE_KEY_SEP + "*?[]")


def _validate_key_component(value: str, name: str) -> None:
    """Raise ValueError if value is empty or contains a reserved character.

    Args:
        value: String component used in a cache key.
        name: Name of the component (for error message).

    Raises:
        ValueError: If value is empty or unsafe.
    """
    if not value or any(c in _FORBIDDEN for c in value):
        raise ValueError(
            f"Cache key component {name!r} must be non-empty and free of "
            f"{''.join(sorted(_FORBIDDEN))!r}: {value!r}"
        )


def role_policies_key(namespace: str, role: str) -> str:
    """Cache key for the serialized policy list of one role."""
    _validate_key_component(namespace, "namespace")
    _validate_key_component(role, "role")
    return f"{namespace}{CACHE_KEY_SEP}{CACHE_PREFIX_ROLE}{CACHE_KEY_SEP}{role}"


def last_load_key(namespace: str) -> str:
    """Cache key for the timestamp of the last full warm-up."""
    _validate_key_component(namespace, "namespace")
    return f"{namespace}{CACHE_KEY_SEP}{CACHE_LAST_LOAD}"


def role_keys_pattern(namespace: str) -> str:
    """Glob matching every per-role policy key."""
    _validate_key_component(namespace, "namespace")
    return f"{namespace}{CACHE_KEY_SEP}{CACHE_PREFIX_ROLE}{CACHE_KEY_SEP}*"


def namespace_pattern(namespace: str) -> str:
    """Glob matching every key owned by the policy cache."""
    _validate_key_component(namespace, "namespace")
    return f"{namespace}{CACHE_KEY_SEP}*"
