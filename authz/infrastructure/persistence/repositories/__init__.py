"""Repositories: one per aggregate, operating on a caller-owned AsyncSession."""

from authz.infrastructure.persistence.repositories.policy_repo import PolicyRepository
from authz.infrastructure.persistence.repositories.role_assignment_repo import (
    RoleAssignmentRepository,
)
from authz.infrastructure.persistence.repositories.role_repo import RoleRepository

__all__ = ["PolicyRepository", "RoleAssignmentRepository", "RoleRepository"]
