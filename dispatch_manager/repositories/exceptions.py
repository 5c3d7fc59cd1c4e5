"""
Persistence Exceptions

Errors raised by repositories and the unit of work. Concurrency conflicts
are retryable; transaction state errors are programmer errors.
"""

from typing import Any, Dict, Optional


class PersistenceError(Exception):
    """Base exception for durable-store failures."""

    def __init__(
        self,
        message: str = "An error occurred while saving to the database.",
        error_code: Optional[str] = "PERSISTENCE_ERROR",
        details: Optional[Dict[str, Any]] = None,
        original_error: Optional[Exception] = None,
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        if original_error:
            self.details["original_error"] = str(original_error)
            self.details["original_error_type"] = type(original_error).__name__
        super().__init__(self.message)
        if original_error:
            self.__cause__ = original_error


class ConcurrencyConflictError(PersistenceError):
    """Raised when a row changed underneath an update; safe to retry."""

    retryable = True

    def __init__(
        self,
        message: str = (
            "The record you attempted to edit was modified by another user "
            "after you got the original value."
        ),
        original_error: Optional[Exception] = None,
    ):
        super().__init__(
            message=message,
            error_code="CONCURRENCY_CONFLICT",
            original_error=original_error,
        )


class TransactionStateError(PersistenceError):
    """Raised when the transaction protocol is used out of order."""

    def __init__(self, message: str):
        super().__init__(message=message, error_code="INVALID_TRANSACTION_STATE")
