"""
SLA Application Layer
======================

Application layer for the SLA engine.

Contains:
- Services: holiday cache, per-ticket SLA operations, periodic sweep
- DTOs: Data transfer objects for API serialization

This layer depends on the domain layer and repository interfaces,
but not on concrete infrastructure implementations.
"""

from sla.application.dto import (
    PauseSLARequest,
    SLATargetResponse,
    SLATargetsResponse,
    TicketSLAResponse,
    ResumeSLAResponse,
    SweepResponse,
)
from sla.application.services import (
    HolidayCalendarService,
    SLAService,
    SLASweepService,
    TicketLockRegistry,
    ITicketRepository,
    IHolidayRepository,
    IAdminDirectory,
    INotificationSink,
    most_urgent_sla,
)

__all__ = [
    # DTOs
    "PauseSLARequest",
    "SLATargetResponse",
    "SLATargetsResponse",
    "TicketSLAResponse",
    "ResumeSLAResponse",
    "SweepResponse",
    # Services
    "HolidayCalendarService",
    "SLAService",
    "SLASweepService",
    "TicketLockRegistry",
    "most_urgent_sla",
    # Repository Interfaces
    "ITicketRepository",
    "IHolidayRepository",
    "IAdminDirectory",
    "INotificationSink",
]
