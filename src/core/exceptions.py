"""
Core Exceptions
================

Error hierarchy for the SLA engine.

Calendar and calculator code raise the domain errors, the repositories
raise ``RepositoryException``, and the policy loader raises
``ConfigurationException``. The HTTP handlers map each family to a status
code; the sweep logs them per ticket and keeps going.
"""

from typing import Any, Optional


class ApplicationException(Exception):
    """Root of every error the engine raises on purpose.

    ``details`` carries structured context that ends up in the log record
    and the JSON error body.
    """

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class DomainException(ApplicationException):
    """Business-time arithmetic could not produce an answer."""


class InvalidTimeRangeException(DomainException):
    """A business-time span ends before it starts."""

    def __init__(self, start: Any, end: Any):
        self.start = start
        self.end = end
        super().__init__(
            f"Time range ends before it starts: {end} < {start}",
            {"start": str(start), "end": str(end)}
        )


class CalendarException(DomainException):
    """No business hour is reachable, e.g. every working day is a holiday."""


class ValidationException(ApplicationException):
    """Caller supplied an SLA type, priority or payload the engine rejects."""


class ResourceNotFoundException(ApplicationException):
    """A ticket (or other record) named by the caller does not exist."""

    def __init__(
        self,
        resource_type: str,
        resource_id: Optional[str] = None,
        details: Optional[dict] = None
    ):
        self.resource_type = resource_type
        self.resource_id = resource_id
        label = f"{resource_type} with id '{resource_id}'" if resource_id else resource_type
        super().__init__(f"{label} not found", details)


class RepositoryException(ApplicationException):
    """Reading or writing tickets, holidays or notifications failed."""


class ConfigurationException(ApplicationException):
    """The SLA policy or runtime settings are unusable."""
