"""
Core Module
============

Framework-agnostic pieces shared by every layer of the SLA engine.
At the moment that is the exception hierarchy.
"""

from core.exceptions import (
    ApplicationException,
    CalendarException,
    ConfigurationException,
    DomainException,
    InvalidTimeRangeException,
    RepositoryException,
    ResourceNotFoundException,
    ValidationException,
)

__all__ = [
    "ApplicationException",
    "DomainException",
    "InvalidTimeRangeException",
    "CalendarException",
    "ValidationException",
    "ResourceNotFoundException",
    "RepositoryException",
    "ConfigurationException",
]
