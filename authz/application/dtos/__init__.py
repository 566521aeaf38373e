"""Application DTOs (no ORM dependency)."""

from authz.application.dtos.assignment import (
    AssignmentError,
    AssignmentFilters,
    AssignmentOutcome,
    AssignmentStats,
    BulkAssignmentResult,
    RoleAssignmentResult,
)
from authz.application.dtos.cache import CacheStats
from authz.application.dtos.decision import AuthorizationDecision
from authz.application.dtos.page import Page
from authz.application.dtos.policy import (
    PolicyFilters,
    PolicyResult,
    PolicySpec,
    PolicyStats,
)
from authz.application.dtos.role import RoleResult, RoleStats

__all__ = [
    "AssignmentError",
    "AssignmentFilters",
    "AssignmentOutcome",
    "AssignmentStats",
    "AuthorizationDecision",
    "BulkAssignmentResult",
    "CacheStats",
    "Page",
    "PolicyFilters",
    "PolicyResult",
    "PolicySpec",
    "PolicyStats",
    "RoleAssignmentResult",
    "RoleResult",
    "RoleStats",
]
