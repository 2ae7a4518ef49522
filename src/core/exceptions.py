"""
Exception hierarchy for Vigil.

Provides a standardized exception hierarchy for consistent error handling
across the pipeline. All exceptions inherit from VigilException, and the
class name of each is what a failed unit reports as its error type.
"""

from typing import Optional


class VigilException(Exception):
    """Base exception for all Vigil errors."""
    pass


class LookupMiss(VigilException):
    """A repository or build could not be found in the catalog."""

    def __init__(self, subject: str, reason: str):
        """
        Initialize lookup miss.

        Args:
            subject: What was looked up (repository path or coordinate label)
            reason: Why nothing matched
        """
        self.subject = subject
        self.reason = reason
        super().__init__(f"{subject}: {reason}")


class CatalogException(VigilException):
    """Catalog query failed."""
    pass


class CatalogUnavailable(CatalogException):
    """Transient catalog failures persisted through every attempt."""

    def __init__(self, attempts: int, last_error: str):
        """
        Initialize catalog unavailable exception.

        Args:
            attempts: Number of attempts made
            last_error: Description of the final underlying failure
        """
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            f"Catalog request failed after {attempts} attempts: {last_error}"
        )


class InvalidQuery(CatalogException):
    """The catalog rejected the query (4xx response or GraphQL errors)."""

    def __init__(self, reason: str, status_code: Optional[int] = None):
        """
        Initialize invalid query exception.

        Args:
            reason: Error text returned by the catalog
            status_code: HTTP status code, if the rejection was HTTP-level
        """
        self.reason = reason
        self.status_code = status_code
        if status_code is not None:
            super().__init__(f"Catalog rejected query ({status_code}): {reason}")
        else:
            super().__init__(f"Catalog rejected query: {reason}")


class PersistenceException(VigilException):
    """Reading from or writing to the store failed."""

    def __init__(self, operation: str, reason: str):
        self.operation = operation
        self.reason = reason
        super().__init__(f"Store operation '{operation}' failed: {reason}")


class NotificationException(VigilException):
    """A notification channel could not deliver a message."""

    def __init__(self, channel: str, reason: str):
        self.channel = channel
        self.reason = reason
        super().__init__(f"{channel} delivery failed: {reason}")


class ValidationException(VigilException):
    """Input validation failed."""

    def __init__(self, message: str, field: str = None):
        """
        Initialize validation exception.

        Args:
            message: Validation error message
            field: Field that failed validation (optional)
        """
        self.field = field
        if field:
            super().__init__(f"Validation failed for {field}: {message}")
        else:
            super().__init__(f"Validation failed: {message}")


class ConfigurationException(VigilException):
    """Configuration is invalid or missing."""
    pass


__all__ = [
    "VigilException",
    "LookupMiss",
    "CatalogException",
    "CatalogUnavailable",
    "InvalidQuery",
    "PersistenceException",
    "NotificationException",
    "ValidationException",
    "ConfigurationException",
]
