"""
SLA Infrastructure Layer
=========================

Infrastructure implementations for the SLA engine:
- Models: SQLAlchemy ORM models
- Repositories: Data access layer
- External: Policy loading and the sweep scheduler
"""

from sla.infrastructure.models import TicketModel, HolidayModel, UserModel, NotificationModel
from sla.infrastructure.repositories import (
    SQLAlchemyTicketRepository,
    SQLAlchemyHolidayRepository,
    SQLAlchemyAdminDirectory,
    SQLAlchemyNotificationSink,
)
from sla.infrastructure.external import SLAPolicyLoader, SLAScheduler

__all__ = [
    "TicketModel",
    "HolidayModel",
    "UserModel",
    "NotificationModel",
    "SQLAlchemyTicketRepository",
    "SQLAlchemyHolidayRepository",
    "SQLAlchemyAdminDirectory",
    "SQLAlchemyNotificationSink",
    "SLAPolicyLoader",
    "SLAScheduler",
]
