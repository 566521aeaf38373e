"""Application ports (Protocols) for stores, cache, audit and role resolution."""

from authz.application.interfaces.repositories import IPolicyStore
from authz.application.interfaces.services import (
    IAuditSink,
    ICacheService,
    IRoleResolver,
)

__all__ = [
    "IAuditSink",
    "ICacheService",
    "IPolicyStore",
    "IRoleResolver",
]
