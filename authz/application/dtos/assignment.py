"""DTOs for user-role assignment use cases (no dependency on ORM)."""

from dataclasses import dataclass, field
from datetime import datetime

from authz.domain.assignment import is_in_force
from authz.domain.enums import AssignmentState


@dataclass(frozen=True)
class RoleAssignmentResult:
    """Assignment read-model; role_code is denormalized for convenience."""

    id: str
    user_id: str
    role_id: str
    role_code: str
    state: AssignmentState
    assigned_by: str | None
    assigned_at: datetime
    expires_at: datetime | None = None
    revoked_at: datetime | None = None
    revoked_by: str | None = None

    def is_in_force(self, now: datetime | None = None) -> bool:
        return is_in_force(self.state, self.expires_at, now=now)


@dataclass(frozen=True)
class AssignmentFilters:
    user_id: str | None = None
    role_id: str | None = None
    state: AssignmentState | None = None


@dataclass(frozen=True)
class AssignmentError:
    """One failed role in a bulk assignment (error kind, not an exception)."""

    role_id: str
    error_code: str
    message: str


@dataclass(frozen=True)
class AssignmentOutcome:
    """Result of try_assign: exactly one of assignment / error is set."""

    assignment: RoleAssignmentResult | None = None
    error: AssignmentError | None = None

    @property
    def ok(self) -> bool:
        return self.assignment is not None


@dataclass(frozen=True)
class BulkAssignmentResult:
    succeeded: list[RoleAssignmentResult] = field(default_factory=list)
    errors: list[AssignmentError] = field(default_factory=list)


@dataclass(frozen=True)
class AssignmentStats:
    total_assignments: int
    active: int
    inactive: int
    distinct_users_with_roles: int
    avg_roles_per_active_user: float
