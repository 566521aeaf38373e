"""Acting administrator, held in a contextvar.

Services stamp created_by / assigned_by / revoked_by from here when the caller
does not pass one explicitly. None means the change is made by the system.

Usage:
    with acting_as("admin-42"):
        await role_admin.create_role(data)
"""

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar

_current_actor_id: ContextVar[str | None] = ContextVar("authz_actor_id", default=None)


def set_current_actor(actor_id: str | None) -> None:
    """Set the actor for the current task; an empty id counts as the system."""
    _current_actor_id.set(actor_id or None)


def clear_current_actor() -> None:
    _current_actor_id.set(None)


def get_current_actor_id() -> str | None:
    return _current_actor_id.get()


@contextmanager
def acting_as(actor_id: str | None) -> Iterator[None]:
    """Scope the current actor to a block, restoring the previous one after."""
    token = _current_actor_id.set(actor_id or None)
    try:
        yield
    finally:
        _current_actor_id.reset(token)
