"""Policy input schemas."""

import re

from pydantic import BaseModel, Field, field_validator

from authz.domain import wildcard
from authz.domain.enums import ApplicationType, HttpAction

ROLE_CODE_PATTERN = r"^[A-Z_]+$"

# Path segments are word characters or dashes; "*" only as a final "/*".
_RESOURCE_RE = re.compile(r"^(/[\w\-.]+)*(/\*)?$")


def validate_resource(value: str) -> str:
    """Normalize and check a policy resource; raises ValueError when malformed."""
    value = value.strip()
    if not value.startswith("/"):
        raise ValueError("resource must start with '/'")
    if not wildcard.is_wildcard(value):
        value = wildcard.normalize(value)
    if value != "/" and not _RESOURCE_RE.fullmatch(value):
        raise ValueError(
            "resource must be a path like /api/v1/users, optionally ending in '/*'"
        )
    return value


class PolicyCreate(BaseModel):
    """Request body for creating one policy."""

    role: str = Field(..., min_length=1, max_length=50, pattern=ROLE_CODE_PATTERN)
    resource: str = Field(..., min_length=1, max_length=255)
    action: HttpAction
    application: ApplicationType = ApplicationType.BACKEND

    @field_validator("action", mode="before")
    @classmethod
    def _upper_action(cls, v: object) -> object:
        return v.upper() if isinstance(v, str) else v

    @field_validator("resource")
    @classmethod
    def _check_resource(cls, v: str) -> str:
        return validate_resource(v)


class PolicyBulkCreate(BaseModel):
    """Request body for creating many policies at once."""

    policies: list[PolicyCreate] = Field(..., min_length=1, max_length=500)
