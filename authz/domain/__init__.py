"""Domain layer: enums, exceptions, wildcard matching and assignment rules.

No dependency on persistence or cache infrastructure.
"""

from authz.domain import wildcard
from authz.domain.assignment import is_in_force
from authz.domain.enums import (
    ApplicationType,
    AssignmentState,
    DecisionReason,
    HttpAction,
    RoleState,
)
from authz.domain.exceptions import (
    AuthorizationException,
    AuthzException,
    CacheUnavailableError,
    ConflictError,
    NotFoundError,
    StoreUnavailableError,
    ValidationException,
)

__all__ = [
    "ApplicationType",
    "AssignmentState",
    "AuthorizationException",
    "AuthzException",
    "CacheUnavailableError",
    "ConflictError",
    "DecisionReason",
    "HttpAction",
    "NotFoundError",
    "RoleState",
    "StoreUnavailableError",
    "ValidationException",
    "is_in_force",
    "wildcard",
]
