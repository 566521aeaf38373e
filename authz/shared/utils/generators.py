"""Primary key generation for roles, policies and assignments."""

from cuid2 import Cuid

# Fits the String(32) primary key columns.
ID_LENGTH = 24

_cuid = Cuid(length=ID_LENGTH)


def generate_cuid() -> str:
    """Return a new CUID2 identifier of ID_LENGTH characters."""
    return _cuid.generate()
