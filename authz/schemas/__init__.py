"""Input schemas (pydantic) for administrative operations."""

from authz.schemas.policy import PolicyBulkCreate, PolicyCreate
from authz.schemas.role import RoleCreate, RoleUpdate

__all__ = ["PolicyBulkCreate", "PolicyCreate", "RoleCreate", "RoleUpdate"]
