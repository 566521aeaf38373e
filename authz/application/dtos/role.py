"""DTOs for role use cases (no dependency on ORM)."""

from dataclasses import dataclass

from authz.domain.enums import RoleState


@dataclass(frozen=True)
class RoleResult:
    """Role read-model (result of get_by_id, get_by_code, create_role, etc.)."""

    id: str
    code: str
    name: str
    description: str | None
    is_system: bool
    state: RoleState

    @property
    def is_available(self) -> bool:
        """Active roles can be assigned and feed authorization."""
        return self.state is RoleState.ACTIVE


@dataclass(frozen=True)
class RoleStats:
    total: int
    active: int
    inactive: int
    with_users: int
