"""Role assignment rules evaluated at read time."""

from datetime import datetime

from authz.domain.enums import AssignmentState
from authz.shared.utils.datetime import is_past


def is_in_force(
    state: AssignmentState | str,
    expires_at: datetime | None,
    deleted_at: datetime | None = None,
    now: datetime | None = None,
) -> bool:
    """Return True if an assignment currently grants its role.

    An assignment is in force iff it is active, not soft-deleted, and either
    has no expiry or expires strictly after now. Expiry never changes the
    stored state; it is checked lazily here.
    """
    if AssignmentState(state) is not AssignmentState.ACTIVE:
        return False
    if deleted_at is not None:
        return False
    return expires_at is None or not is_past(expires_at, now)
