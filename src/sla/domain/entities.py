"""
SLA Domain Entities
====================

Pure Python domain entities for SLA tracking.

Following Domain-Driven Design principles, these entities contain
business logic and are free of infrastructure concerns.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional, List

from config import SLAStatus, SLAType, TicketStatus, ACTIVE_TICKET_STATUSES, NotificationCategory


@dataclass(frozen=True)
class Holiday:
    """
    A day on which the SLA clock does not run.

    Recurring holidays match on month and day every year; the stored
    year is ignored. Non-recurring holidays match the exact date.
    """
    date: date
    name: str
    is_recurring: bool = False


@dataclass
class TicketSLARecord:
    """
    SLA-relevant view of a support ticket.

    The ticket store owns the record; the engine only rewrites the
    deadline, status and pause fields.
    """

    id: str
    created_at: datetime
    priority: str
    status: str = TicketStatus.OPEN

    response_deadline: Optional[datetime] = None
    resolution_deadline: Optional[datetime] = None
    response_status: str = SLAStatus.ON_TRACK
    resolution_status: str = SLAStatus.ON_TRACK

    paused_at: Optional[datetime] = None
    paused_reason: Optional[str] = None

    # Read-only, used for notifications
    title: str = ""
    assigned_to_id: Optional[str] = None

    @property
    def is_paused(self) -> bool:
        return self.paused_at is not None

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_TICKET_STATUSES

    def deadline_for(self, sla_type: str) -> Optional[datetime]:
        if sla_type == SLAType.RESPONSE:
            return self.response_deadline
        return self.resolution_deadline


@dataclass
class SLANotification:
    """An SLA alert for one ticket, fanned out to every recipient."""

    ticket_id: str
    recipient_ids: List[str]
    title: str
    message: str
    link_to: str
    category: str = NotificationCategory.SLA_WARNING


@dataclass
class SweepResult:
    """Aggregate outcome of one sweep over the active tickets."""

    sweep_id: str
    tickets_evaluated: int = 0
    updated_count: int = 0
    notification_count: int = 0
    failed_count: int = 0
    failed_ticket_ids: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "sweep_id": self.sweep_id,
            "tickets_evaluated": self.tickets_evaluated,
            "updated_count": self.updated_count,
            "notification_count": self.notification_count,
            "failed_count": self.failed_count,
        }
