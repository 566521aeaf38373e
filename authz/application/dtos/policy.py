"""DTOs for policy use cases (no dependency on ORM)."""

from dataclasses import dataclass, field

from authz.domain import wildcard
from authz.domain.enums import ApplicationType, HttpAction


@dataclass(frozen=True)
class PolicyResult:
    """Policy read-model. Also the unit serialized into the policy cache."""

    id: str
    role: str
    resource: str
    action: HttpAction
    application: ApplicationType
    is_active: bool = True

    @property
    def is_wildcard(self) -> bool:
        return wildcard.is_wildcard(self.resource)

    def applies_to(
        self, url: str, action: HttpAction | str, application: ApplicationType | str
    ) -> bool:
        """True if this policy grants action on url for application."""
        return (
            self.action == action
            and self.application == application
            and wildcard.matches(self.resource, url)
        )


@dataclass(frozen=True)
class PolicySpec:
    """Values for a policy about to be written (create / create_many)."""

    role: str
    resource: str
    action: HttpAction
    application: ApplicationType = ApplicationType.BACKEND
    created_by: str | None = None


@dataclass(frozen=True)
class PolicyFilters:
    """Conjunctive filters for paginated policy listing."""

    role: str | None = None
    resource: str | None = None
    action: HttpAction | None = None
    application: ApplicationType | None = None


@dataclass(frozen=True)
class PolicyStats:
    """Aggregate counts over active policies."""

    total_policies: int
    roles_with_policies: int
    by_application: dict[str, int] = field(default_factory=dict)
    by_action: dict[str, int] = field(default_factory=dict)
    wildcard_policies: int = 0
