"""Domain exceptions for the authorization core.

Defines the error taxonomy shared by the store, cache and services. A
presentation layer (out of scope here) maps error_code to a response status.
"""

from typing import Any


class AuthzException(Exception):
    """Base exception for all authorization core errors.

    Attributes:
        message: Human-readable error description.
        error_code: Machine-readable error code.
        details: Additional error context (e.g. resource_type, resource_id).
    """

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error description.
            error_code: Optional machine-readable code; defaults to class name.
            details: Optional dict of extra context.
        """
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Serializable form for API responses and logs."""
        return {
            "error": self.error_code,
            "message": self.message,
            "details": self.details,
        }


class ValidationException(AuthzException):
    """Raised when input validation fails (e.g. invalid format or range)."""

    def __init__(self, message: str, field: str | None = None) -> None:
        details = {"field": field} if field else {}
        super().__init__(message, "VALIDATION_ERROR", details)


class NotFoundError(AuthzException):
    """Raised when a referenced role, policy or assignment does not exist."""

    def __init__(self, resource_type: str, resource_id: str) -> None:
        """Initialize with resource type and id.

        Args:
            resource_type: Type of resource (e.g. 'role', 'policy').
            resource_id: The identifier that was not found.
        """
        super().__init__(
            f"{resource_type} not found: {resource_id}",
            "RESOURCE_NOT_FOUND",
            {"resource_type": resource_type, "resource_id": resource_id},
        )


class ConflictError(AuthzException):
    """Raised on duplicates or when a business invariant blocks the operation."""

    def __init__(self, message: str, **details: Any) -> None:
        super().__init__(message, "CONFLICT", details)


class StoreUnavailableError(AuthzException):
    """Raised when the durable store is unreachable or timed out."""

    def __init__(self, operation: str, reason: str | None = None) -> None:
        details: dict[str, Any] = {"operation": operation}
        if reason:
            details["reason"] = reason
        super().__init__(
            f"Policy store unavailable during {operation}",
            "STORE_UNAVAILABLE",
            details,
        )


class CacheUnavailableError(AuthzException):
    """Raised by cache backends on connection errors or timeouts.

    Never propagates past PolicyCache, which degrades to a store read.
    """

    def __init__(self, operation: str, key: str | None = None) -> None:
        details: dict[str, Any] = {"operation": operation}
        if key is not None:
            details["key"] = key
        super().__init__(
            f"Cache unavailable during {operation}",
            "CACHE_UNAVAILABLE",
            details,
        )


class AuthorizationException(AuthzException):
    """Raised when a principal is denied. The message never names a policy."""

    def __init__(self, message: str = "Permission denied") -> None:
        super().__init__(message, "PERMISSION_DENIED")
