"""ORM models. Importing this package registers every table on Base.metadata."""

from authz.infrastructure.persistence.models.policy import Policy
from authz.infrastructure.persistence.models.role import Role
from authz.infrastructure.persistence.models.role_assignment import RoleAssignment

__all__ = ["Policy", "Role", "RoleAssignment"]
