"""
SLA Domain Layer
================

Domain layer for the SLA business-hours engine.

Contains:
- Entities: TicketSLARecord, Holiday, SLANotification, SweepResult
- Value Objects: BusinessHours, SLATargetTable, SLAThresholds, SLAPolicy, HolidayCache
- Domain Services: BusinessCalendar, DeadlineCalculator, ElapsedTimeMeter, StatusClassifier

This layer has no dependencies on infrastructure - pure Python business logic.
"""

from sla.domain.entities import Holiday, TicketSLARecord, SLANotification, SweepResult
from sla.domain.value_objects import (
    BusinessHours,
    SLATarget,
    SLATargetTable,
    SLAThresholds,
    SLAPolicy,
    HolidayCache,
    DEFAULT_SLA_TARGETS,
    Clock,
    utc_now,
)
from sla.domain.calendar import BusinessCalendar, MAX_LOOKAHEAD_DAYS
from sla.domain.calculator import (
    DeadlineCalculator,
    ElapsedTimeMeter,
    StatusClassifier,
    STATUS_RANK,
    format_minutes,
    should_notify,
)

__all__ = [
    # Entities
    "Holiday",
    "TicketSLARecord",
    "SLANotification",
    "SweepResult",
    # Value Objects
    "BusinessHours",
    "SLATarget",
    "SLATargetTable",
    "SLAThresholds",
    "SLAPolicy",
    "HolidayCache",
    "DEFAULT_SLA_TARGETS",
    "Clock",
    "utc_now",
    # Domain Services
    "BusinessCalendar",
    "MAX_LOOKAHEAD_DAYS",
    "DeadlineCalculator",
    "ElapsedTimeMeter",
    "StatusClassifier",
    "STATUS_RANK",
    "format_minutes",
    "should_notify",
]
