# ==== SHARED TEST FIXTURES AND CONFIGURATION ==== #

"""
Shared test fixtures for the SLA engine.

Provides a controllable clock, in-memory stand-ins for the ticket,
holiday, admin and notification stores, and ready-wired services.
All dates are in June 2025: Friday the 13th, Monday the 16th and
Juneteenth on Thursday the 19th. New York is on EDT (UTC-4).
"""

import os
from contextlib import asynccontextmanager
from dataclasses import replace
from datetime import date, datetime, timedelta, timezone
from typing import Dict, List, Optional
from zoneinfo import ZoneInfo

import pytest

# Set environment variables BEFORE importing any app modules
os.environ.update({
    "ENVIRONMENT": "test",
    "LOG_LEVEL": "WARNING",
    "SLA_SCHEDULER_ENABLED": "false",
})

from config import Priority, TicketStatus
from sla.application import (
    HolidayCalendarService,
    IAdminDirectory,
    IHolidayRepository,
    INotificationSink,
    ITicketRepository,
    SLAService,
    SLASweepService,
)
from sla.domain import BusinessHours, Holiday, SLAPolicy, TicketSLARecord


NEW_YORK = ZoneInfo("America/New_York")


def ny_time(year: int, month: int, day: int, hour: int = 0, minute: int = 0) -> datetime:
    """New York wall-clock time as an aware UTC instant."""
    return datetime(year, month, day, hour, minute, tzinfo=NEW_YORK).astimezone(timezone.utc)


# ==== FAKES ==== #


class FixedClock:
    """Clock that only moves when told to."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class InMemoryTicketRepository(ITicketRepository):
    """Ticket store keeping records in a dict."""

    def __init__(self, records=()):
        self.records: Dict[str, TicketSLARecord] = {r.id: r for r in records}
        self.updates: List[tuple] = []
        self.failing_ids: set = set()

    def add(self, record: TicketSLARecord) -> TicketSLARecord:
        self.records[record.id] = record
        return record

    async def list_active_tickets(self) -> List[TicketSLARecord]:
        return [replace(r) for r in self.records.values() if r.is_active]

    async def get_by_id(self, ticket_id: str) -> Optional[TicketSLARecord]:
        record = self.records.get(ticket_id)
        return replace(record) if record else None

    @asynccontextmanager
    async def lock(self, ticket_id: str):
        if ticket_id in self.failing_ids:
            raise RuntimeError("database unavailable")
        record = self.records.get(ticket_id)
        yield replace(record) if record else None

    async def update_sla_fields(self, ticket_id: str, fields: Dict) -> None:
        self.updates.append((ticket_id, dict(fields)))
        record = self.records[ticket_id]
        for name, value in fields.items():
            setattr(record, name, value)


class InMemoryHolidayRepository(IHolidayRepository):
    """Holiday store that counts loads and can be told to fail."""

    def __init__(self, holidays=()):
        self.holidays: List[Holiday] = list(holidays)
        self.calls = 0
        self.fail = False

    async def list_holidays(self) -> List[Holiday]:
        self.calls += 1
        if self.fail:
            raise ConnectionError("holiday store unavailable")
        return list(self.holidays)


class StaticAdminDirectory(IAdminDirectory):
    def __init__(self, admin_ids=()):
        self.admin_ids = list(admin_ids)

    async def list_platform_admins(self) -> List[str]:
        return list(self.admin_ids)


class RecordingNotificationSink(INotificationSink):
    """Collects notifications; recipients in failing_recipients raise."""

    def __init__(self):
        self.sent: List[dict] = []
        self.failing_recipients: set = set()

    async def create_notification(self, recipient_id, category, title, message, link_to) -> None:
        if recipient_id in self.failing_recipients:
            raise ConnectionError("notification store unavailable")
        self.sent.append({
            "recipient_id": recipient_id,
            "category": category,
            "title": title,
            "message": message,
            "link_to": link_to,
        })


# ==== FIXTURES ==== #


@pytest.fixture
def ny():
    """Build UTC instants from New York wall-clock times."""
    return ny_time


@pytest.fixture
def business_hours():
    return BusinessHours(timezone="America/New_York", start_hour=10, end_hour=22, weekdays=(0, 1, 2, 3, 4))


@pytest.fixture
def policy(business_hours):
    return SLAPolicy(business_hours=business_hours)


@pytest.fixture
def juneteenth():
    return Holiday(date=date(2025, 6, 19), name="Juneteenth")


@pytest.fixture
def clock():
    """Monday 2025-06-16 18:00 in New York."""
    return FixedClock(ny_time(2025, 6, 16, 18))


@pytest.fixture
def ticket_repository():
    return InMemoryTicketRepository()


@pytest.fixture
def holiday_repository():
    return InMemoryHolidayRepository()


@pytest.fixture
def admin_directory():
    return StaticAdminDirectory(["admin-1", "admin-2"])


@pytest.fixture
def notification_sink():
    return RecordingNotificationSink()


@pytest.fixture
def holiday_service(holiday_repository, business_hours, clock):
    return HolidayCalendarService(holiday_repository, business_hours, clock=clock)


@pytest.fixture
def sla_service(policy, holiday_service, ticket_repository, clock):
    return SLAService(policy, holiday_service, ticket_repository, clock=clock)


@pytest.fixture
def sweep_service(sla_service, holiday_service, ticket_repository, admin_directory, notification_sink):
    return SLASweepService(
        sla_service,
        holiday_service,
        ticket_repository,
        admin_directory,
        notification_sink,
        concurrency=3,
    )


@pytest.fixture
def make_ticket(ticket_repository):
    """Add a ticket to the in-memory store."""

    def _make(ticket_id: str = "3f2b9c1e-0000-4000-8000-000000000001", **overrides) -> TicketSLARecord:
        fields = {
            "id": ticket_id,
            "created_at": ny_time(2025, 6, 16, 10),
            "priority": Priority.URGENT,
            "status": TicketStatus.OPEN,
            "title": "Printer on fire",
        }
        fields.update(overrides)
        return ticket_repository.add(TicketSLARecord(**fields))

    return _make
