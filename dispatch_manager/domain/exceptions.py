"""
Domain Exceptions

Raised when a value object or entity would be created or mutated into a
state that breaks a business rule. The offending object is never changed.
"""

from typing import Any, Dict, Optional


class DomainException(Exception):
    """Business rule violation inside the dispatch domain."""

    def __init__(
        self,
        message: str,
        error_code: str = "DOMAIN_RULE_VIOLATION",
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)


class InvalidStatusTransitionException(DomainException):
    """Raised when an order status change is not in the transition table."""

    def __init__(self, current_status: Any, new_status: Any):
        super().__init__(
            message=f"Cannot transition from {current_status} to {new_status}",
            error_code="INVALID_STATUS_TRANSITION",
            details={
                "current_status": str(current_status),
                "new_status": str(new_status),
            },
        )
