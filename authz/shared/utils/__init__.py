"""Shared utilities: datetime, id generation."""

from authz.shared.utils.datetime import ensure_utc, is_past, utc_now
from authz.shared.utils.generators import generate_cuid

__all__ = [
    "generate_cuid",
    "utc_now",
    "ensure_utc",
    "is_past",
]
