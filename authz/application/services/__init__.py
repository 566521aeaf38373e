"""Application services: decisions, cache-aside policy access, administration."""

from authz.application.services.access_guard import AccessGuard
from authz.application.services.authorization_engine import AuthorizationEngine
from authz.application.services.policy_admin_service import PolicyAdminService
from authz.application.services.policy_cache import PolicyCache
from authz.application.services.role_admin_service import RoleAdminService
from authz.application.services.role_assignment_service import RoleAssignmentService

__all__ = [
    "AccessGuard",
    "AuthorizationEngine",
    "PolicyAdminService",
    "PolicyCache",
    "RoleAdminService",
    "RoleAssignmentService",
]
