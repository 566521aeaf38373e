"""Domain enumerations for roles, policies and assignments."""

from enum import Enum


class HttpAction(str, Enum):
    """HTTP method a policy grants."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"


class ApplicationType(str, Enum):
    """Scope tag a policy applies to."""

    BACKEND = "backend"
    FRONTEND = "frontend"


class RoleState(str, Enum):
    """Role lifecycle state."""

    ACTIVE = "active"
    INACTIVE = "inactive"


class AssignmentState(str, Enum):
    """User-role assignment state. Expiry is evaluated separately."""

    ACTIVE = "active"
    INACTIVE = "inactive"


class DecisionReason(str, Enum):
    """Why the engine reached a decision (audit only, never returned to callers)."""

    PERMITTED = "permitted"
    NO_ROLES = "no_roles"
    NO_MATCHING_POLICY = "no_matching_policy"
    ERROR = "error"
