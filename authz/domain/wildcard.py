"""Resource path normalization and wildcard matching.

A policy resource ending in "/*" is a wildcard: it matches its base path and
anything below it on a segment boundary. Everything else is matched exactly.
Numeric segments are never turned into wildcards implicitly; a policy for
"/api/v1/usuarios/42" only covers that exact path.
"""

WILDCARD_SUFFIX = "/*"
GLOBAL_WILDCARD = "/*"


def normalize(url: str) -> str:
    """Return the canonical form of a request path.

    Prepends "/", drops query string and fragment, strips a single trailing
    "/" unless the path is the root.

    >>> normalize("api/v1/usuarios/?page=2")
    '/api/v1/usuarios'
    """
    if not url.startswith("/"):
        url = "/" + url
    url = url.split("?", 1)[0].split("#", 1)[0]
    if len(url) > 1 and url.endswith("/"):
        url = url[:-1]
    return url


def is_wildcard(resource: str) -> bool:
    """True iff resource ends with "/*"."""
    return resource.endswith(WILDCARD_SUFFIX)


def base_of(resource: str) -> str:
    """Resource with a trailing "/*" removed (unchanged for exact resources)."""
    if is_wildcard(resource):
        return resource[: -len(WILDCARD_SUFFIX)]
    return resource


def matches(resource: str, url: str) -> bool:
    """Return True if a policy resource covers a normalized url.

    Exact resources compare by equality. A wildcard covers url == base or any
    url under base + "/"; "/api/*" does not match "/apix".
    """
    if not is_wildcard(resource):
        return resource == url
    base = base_of(resource)
    return url == base or url.startswith(base + "/")


def candidate_wildcards(url: str) -> list[str]:
    """All prefix wildcards that could cover url, most specific first.

    "/api/v1/usuarios/42" -> ["/api/v1/usuarios/*", "/api/v1/*", "/api/*", "/*"]
    "/" -> ["/*"]
    """
    segments = [s for s in url.split("/") if s]
    candidates: list[str] = []
    for i in range(len(segments) - 1, 0, -1):
        candidate = "/" + "/".join(segments[:i]) + WILDCARD_SUFFIX
        if candidate not in candidates:
            candidates.append(candidate)
    candidates.append(GLOBAL_WILDCARD)
    return candidates


def lookup_variants(url: str) -> list[str]:
    """Every resource string that can cover url: itself, url + "/*", then prefixes.

    Used for bulk store probes, so a single IN (...) query answers whether any
    exact or wildcard policy applies.
    """
    own_wildcard = GLOBAL_WILDCARD if url == "/" else url + WILDCARD_SUFFIX
    variants = [url]
    for candidate in [own_wildcard, *candidate_wildcards(url)]:
        if candidate not in variants:
            variants.append(candidate)
    return variants
