"""Authorization decision record handed to the audit sink."""

from dataclasses import dataclass

from authz.domain.enums import DecisionReason


@dataclass(frozen=True)
class AuthorizationDecision:
    """One evaluated request. Never returned to the caller being authorized."""

    roles: tuple[str, ...]
    resource: str
    action: str
    application: str
    allowed: bool
    reason: DecisionReason
    matched_role: str | None = None
    principal_id: str | None = None
    error: str | None = None
