"""
Application Exceptions

Errors surfaced by application services to their callers.
"""

from typing import Any, Dict, Optional


class DispatchApplicationError(Exception):
    """Base exception for application-level failures."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)


class NotFoundError(DispatchApplicationError):
    """Raised when a referenced entity does not exist."""

    def __init__(self, entity_name: str, entity_id: Any):
        super().__init__(
            message=f'{entity_name} with id "{entity_id}" was not found.',
            error_code="NOT_FOUND",
            details={"entity": entity_name, "id": str(entity_id)},
        )


class BusinessRuleError(DispatchApplicationError):
    """Raised when a request breaks a business rule."""

    def __init__(
        self,
        message: str,
        error_code: str = "BUSINESS_RULE_VIOLATION",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, error_code=error_code, details=details)

    @classmethod
    def from_domain(cls, error: Exception) -> "BusinessRuleError":
        """Wrap a DomainException, keeping its code and details."""
        return cls(
            message=getattr(error, "message", str(error)),
            error_code=getattr(error, "error_code", "BUSINESS_RULE_VIOLATION"),
            details=getattr(error, "details", None),
        )
