"""Pagination argument checks shared by listing operations."""

from authz.core.constants import MAX_PAGE_SIZE
from authz.domain.exceptions import ValidationException


def check_page(page: int, limit: int) -> None:
    """Raise ValidationException for a non-positive page or an out-of-range limit."""
    if page < 1:
        raise ValidationException("page must be >= 1", field="page")
    if limit < 1 or limit > MAX_PAGE_SIZE:
        raise ValidationException(
            f"limit must be between 1 and {MAX_PAGE_SIZE}", field="limit"
        )
