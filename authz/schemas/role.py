"""Role input schemas."""

from pydantic import BaseModel, Field

from authz.domain.enums import RoleState
from authz.schemas.policy import ROLE_CODE_PATTERN


class RoleCreate(BaseModel):
    """Request body for creating a role."""

    code: str = Field(..., min_length=1, max_length=50, pattern=ROLE_CODE_PATTERN)
    name: str = Field(..., min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=500)
    is_system: bool = False


class RoleUpdate(BaseModel):
    """Request body for updating a role (partial)."""

    code: str | None = Field(
        default=None, min_length=1, max_length=50, pattern=ROLE_CODE_PATTERN
    )
    name: str | None = Field(default=None, min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=500)
    state: RoleState | None = None
