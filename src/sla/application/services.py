"""
SLA Application Services
=========================

Application services orchestrate the pure SLA calculators and
coordinate them with the ticket, holiday, admin and notification stores.

Following SOLID principles:
- Single Responsibility: holiday caching, SLA operations and the sweep are separate services
- Dependency Inversion: Depend on abstractions (repositories), not concrete implementations
"""

import asyncio
import uuid
import weakref
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from datetime import datetime, timedelta
from typing import Any, AsyncContextManager, AsyncIterator, Dict, List, Optional, Tuple

from config import SLAStatus, SLAType, VALID_SLA_TYPES
from core import ResourceNotFoundException, ValidationException
from shared.infrastructure.logging import get_logger, log_latency
from sla.domain import (
    BusinessCalendar,
    BusinessHours,
    Clock,
    DeadlineCalculator,
    ElapsedTimeMeter,
    Holiday,
    HolidayCache,
    SLANotification,
    SLAPolicy,
    STATUS_RANK,
    StatusClassifier,
    SweepResult,
    TicketSLARecord,
    format_minutes,
    should_notify,
    utc_now,
)

logger = get_logger(__name__)


# ========== Repository Interfaces (Dependency Inversion) ==========

class ITicketRepository(ABC):
    """Interface for the ticket store's SLA fields."""

    @abstractmethod
    async def list_active_tickets(self) -> List[TicketSLARecord]:
        """Tickets whose lifecycle status is open, in progress or waiting."""

    @abstractmethod
    async def get_by_id(self, ticket_id: str) -> Optional[TicketSLARecord]:
        """Get ticket by ID."""

    @abstractmethod
    def lock(self, ticket_id: str) -> AsyncContextManager[Optional[TicketSLARecord]]:
        """
        Read a ticket for update.

        Writes made through update_sla_fields inside the block commit
        together when the block exits cleanly.
        """

    @abstractmethod
    async def update_sla_fields(self, ticket_id: str, fields: Dict[str, Any]) -> None:
        """Partially update SLA fields of a ticket."""


class IHolidayRepository(ABC):
    """Interface for the holiday calendar store."""

    @abstractmethod
    async def list_holidays(self) -> List[Holiday]:
        """All holidays, ordered by date."""


class IAdminDirectory(ABC):
    """Interface for looking up platform administrators."""

    @abstractmethod
    async def list_platform_admins(self) -> List[str]:
        """IDs of every platform-wide administrator."""


class INotificationSink(ABC):
    """Interface for in-app notifications."""

    @abstractmethod
    async def create_notification(
        self,
        recipient_id: str,
        category: str,
        title: str,
        message: str,
        link_to: str
    ) -> None:
        """Store one notification for one recipient."""


# ========== Per-ticket critical section ==========

class TicketLockRegistry:
    """
    One asyncio.Lock per ticket ID.

    Serialises pause, resume and sweep updates of the same ticket within
    this process. Locks disappear once nobody holds or waits on them.
    """

    def __init__(self):
        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()

    def lock_for(self, ticket_id: str) -> asyncio.Lock:
        lock = self._locks.get(ticket_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[ticket_id] = lock
        return lock

    @asynccontextmanager
    async def hold(self, ticket_id: str) -> AsyncIterator[None]:
        lock = self.lock_for(ticket_id)
        async with lock:
            yield


# ========== Application Services ==========

class HolidayCalendarService:
    """
    Holiday cache with lazy refresh.

    The cache is reloaded when stale; a failed reload keeps serving the
    previous holidays and retries after ``retry_after``.
    """

    def __init__(
        self,
        holiday_repository: IHolidayRepository,
        business_hours: BusinessHours,
        ttl: timedelta = timedelta(hours=24),
        retry_after: timedelta = timedelta(minutes=15),
        clock: Clock = utc_now
    ):
        self._repository = holiday_repository
        self._business_hours = business_hours
        self._ttl = ttl
        self._retry_after = retry_after
        self._clock = clock
        self._cache = HolidayCache.empty()
        self._calendar = BusinessCalendar(business_hours)
        self._calendar_cache = self._cache

    @property
    def cache(self) -> HolidayCache:
        return self._cache

    @property
    def calendar(self) -> BusinessCalendar:
        """Calendar over the current cache contents. Never performs I/O."""
        if self._calendar_cache is not self._cache:
            self._calendar = BusinessCalendar(self._business_hours, self._cache.items)
            self._calendar_cache = self._cache
        return self._calendar

    async def get_holidays(self) -> List[Holiday]:
        now = self._clock()
        if not self._cache.is_stale(now):
            return list(self._cache.items)

        try:
            with log_latency(logger, "holiday_reload"):
                holidays = await self._repository.list_holidays()
        except Exception as e:
            self._cache = self._cache.extend(now + self._retry_after)
            logger.warning(
                "Holiday reload failed, serving cached holidays",
                extra={
                    "error": str(e),
                    "cached_count": len(self._cache.items),
                    "retry_at": self._cache.expires_at.isoformat()
                }
            )
            return list(self._cache.items)

        self._cache = self._cache.replace_items(holidays, now + self._ttl)
        logger.debug(
            "Holiday cache refreshed",
            extra={"holiday_count": len(holidays)}
        )
        return list(self._cache.items)

    async def refresh(self) -> BusinessCalendar:
        """Refresh if stale and return the calendar to compute with."""
        await self.get_holidays()
        return self.calendar


class SLAService:
    """
    Public surface of the SLA engine for a single ticket or instant.

    Pure calculations use whatever holidays are cached; operations that
    already touch a store refresh the holiday cache first.
    """

    def __init__(
        self,
        policy: SLAPolicy,
        holiday_service: HolidayCalendarService,
        ticket_repository: ITicketRepository,
        lock_registry: Optional[TicketLockRegistry] = None,
        clock: Clock = utc_now
    ):
        self.policy = policy
        self._holidays = holiday_service
        self._tickets = ticket_repository
        self.locks = lock_registry or TicketLockRegistry()
        self._clock = clock

    def now(self) -> datetime:
        return self._clock()

    # ========== Calculations ==========

    async def calculate_deadline(
        self,
        start_time: datetime,
        target_hours: Optional[float]
    ) -> Optional[datetime]:
        """Deadline ``target_hours`` business hours after ``start_time``."""
        if target_hours is None:
            return None
        calendar = await self._holidays.refresh()
        return DeadlineCalculator(calendar).calculate_deadline(start_time, target_hours)

    async def calculate_ticket_deadlines(
        self,
        created_at: datetime,
        priority: str
    ) -> Tuple[Optional[datetime], Optional[datetime]]:
        """Response and resolution deadlines for a new ticket."""
        response = await self.calculate_deadline(
            created_at, self.get_sla_hours(priority, SLAType.RESPONSE)
        )
        resolution = await self.calculate_deadline(
            created_at, self.get_sla_hours(priority, SLAType.RESOLUTION)
        )
        return response, resolution

    def calculate_business_minutes(self, start: datetime, end: datetime) -> int:
        """Business minutes in [start, end); raises if end < start."""
        return ElapsedTimeMeter(self._holidays.calendar).calculate_business_minutes(start, end)

    def business_minutes_since(self, instant: datetime, now: Optional[datetime] = None) -> int:
        """Business minutes from ``instant`` to now, 0 if ``instant`` is in the future."""
        now = now or self._clock()
        if instant >= now:
            return 0
        return self.calculate_business_minutes(instant, now)

    def classifier(self) -> StatusClassifier:
        meter = ElapsedTimeMeter(self._holidays.calendar)
        return StatusClassifier(meter, self.policy.thresholds)

    def calculate_sla_status(
        self,
        created_at: datetime,
        deadline: Optional[datetime],
        paused_minutes: int = 0,
        now: Optional[datetime] = None
    ) -> str:
        return self.classifier().calculate_sla_status(
            created_at, deadline, now or self._clock(), paused_minutes
        )

    def get_sla_hours(self, priority: str, sla_type: str) -> Optional[float]:
        """Target hours for a priority; unknown priorities fall back to medium."""
        if sla_type not in VALID_SLA_TYPES:
            raise ValidationException(
                f"Unknown SLA type: {sla_type}",
                {"sla_type": sla_type}
            )

        target = self.policy.targets.get(priority)
        if target is None:
            logger.warning(
                f"Unknown priority: {priority}, defaulting to medium",
                extra={"priority": priority}
            )
            target = self.policy.targets.fallback
        return target.hours_for(sla_type)

    # ========== Ticket operations ==========

    async def initialize_ticket_sla(self, ticket_id: str) -> TicketSLARecord:
        """Compute and store both deadlines for a freshly created ticket."""
        async with self.locks.hold(ticket_id):
            async with self._tickets.lock(ticket_id) as record:
                if record is None:
                    raise ResourceNotFoundException("Ticket", ticket_id)

                response, resolution = await self.calculate_ticket_deadlines(
                    record.created_at, record.priority
                )
                fields = {
                    "response_deadline": response,
                    "resolution_deadline": resolution,
                    "response_status": SLAStatus.ON_TRACK,
                    "resolution_status": SLAStatus.ON_TRACK,
                }
                await self._tickets.update_sla_fields(ticket_id, fields)

        logger.info(
            "SLA deadlines set",
            extra={
                "ticket_id": ticket_id,
                "priority": record.priority,
                "response_deadline": response.isoformat() if response else None,
                "resolution_deadline": resolution.isoformat() if resolution else None
            }
        )
        for name, value in fields.items():
            setattr(record, name, value)
        return record

    async def pause_sla(self, ticket_id: str, reason: str) -> None:
        """
        Freeze the SLA clock.

        Pausing an already paused ticket restarts the pause window;
        the earlier pause start is lost.
        """
        now = self._clock()
        async with self.locks.hold(ticket_id):
            async with self._tickets.lock(ticket_id) as record:
                if record is None:
                    raise ResourceNotFoundException("Ticket", ticket_id)
                if record.is_paused:
                    logger.warning(
                        "SLA already paused, overwriting pause start",
                        extra={
                            "ticket_id": ticket_id,
                            "previous_paused_at": record.paused_at.isoformat()
                        }
                    )
                await self._tickets.update_sla_fields(
                    ticket_id, {"paused_at": now, "paused_reason": reason}
                )

        logger.info(f"SLA paused for ticket {ticket_id}: {reason}", extra={"ticket_id": ticket_id})

    async def resume_sla(self, ticket_id: str) -> Optional[int]:
        """
        Unfreeze the SLA clock and push deadlines out by the pause.

        Returns the pause length in business minutes, which is 0 for a pause
        that spanned no business time, or None when the ticket was not paused.
        """
        await self._holidays.get_holidays()
        now = self._clock()

        async with self.locks.hold(ticket_id):
            async with self._tickets.lock(ticket_id) as record:
                if record is None:
                    raise ResourceNotFoundException("Ticket", ticket_id)
                if not record.is_paused:
                    return None

                pause_minutes = self.business_minutes_since(record.paused_at, now)
                extension = timedelta(minutes=pause_minutes)
                await self._tickets.update_sla_fields(ticket_id, {
                    "response_deadline": (
                        record.response_deadline + extension if record.response_deadline else None
                    ),
                    "resolution_deadline": (
                        record.resolution_deadline + extension if record.resolution_deadline else None
                    ),
                    "paused_at": None,
                    "paused_reason": None,
                })

        logger.info(
            f"SLA resumed for ticket {ticket_id}, extended by {pause_minutes} minutes",
            extra={"ticket_id": ticket_id, "pause_minutes": pause_minutes}
        )
        return pause_minutes


class SLASweepService:
    """
    Periodic re-evaluation of every active ticket.

    Run by the scheduler; safe to call directly. One ticket failing
    never stops the others.
    """

    def __init__(
        self,
        sla_service: SLAService,
        holiday_service: HolidayCalendarService,
        ticket_repository: ITicketRepository,
        admin_directory: IAdminDirectory,
        notification_sink: INotificationSink,
        concurrency: int = 5
    ):
        self._sla = sla_service
        self._holidays = holiday_service
        self._tickets = ticket_repository
        self._admins = admin_directory
        self._notifications = notification_sink
        self._concurrency = max(1, concurrency)

    async def run_sweep(self) -> SweepResult:
        result = SweepResult(sweep_id=uuid.uuid4().hex[:12])
        logger.info("Starting SLA status update job", extra={"sweep_id": result.sweep_id})

        await self._holidays.get_holidays()
        now = self._sla.now()

        tickets = await self._tickets.list_active_tickets()
        ticket_ids = list(dict.fromkeys(ticket.id for ticket in tickets))
        result.tickets_evaluated = len(ticket_ids)

        semaphore = asyncio.Semaphore(self._concurrency)

        async def worker(ticket_id: str) -> None:
            async with semaphore:
                await self._evaluate_safely(ticket_id, now, result)

        with log_latency(logger, "sla_sweep", sweep_id=result.sweep_id):
            await asyncio.gather(*(worker(ticket_id) for ticket_id in ticket_ids))

        logger.info(
            f"SLA status update complete: {result.updated_count} tickets updated, "
            f"{result.notification_count} notifications sent",
            extra=result.to_dict()
        )
        return result

    async def _evaluate_safely(self, ticket_id: str, now: datetime, result: SweepResult) -> None:
        try:
            notification = await self._evaluate_ticket(ticket_id, now, result)
            if notification is not None:
                await self._send(notification)
                result.notification_count += 1
        except Exception:
            result.failed_count += 1
            result.failed_ticket_ids.append(ticket_id)
            logger.exception(
                f"Failed to update SLA for ticket {ticket_id}",
                extra={"ticket_id": ticket_id, "sweep_id": result.sweep_id}
            )

    async def _evaluate_ticket(
        self,
        ticket_id: str,
        now: datetime,
        result: SweepResult
    ) -> Optional[SLANotification]:
        """Recompute both statuses; returns the notification to send, if any."""
        async with self._sla.locks.hold(ticket_id):
            async with self._tickets.lock(ticket_id) as record:
                if record is None or not record.is_active:
                    return None

                paused_minutes = (
                    self._sla.business_minutes_since(record.paused_at, now)
                    if record.paused_at else 0
                )
                response_status = self._sla.calculate_sla_status(
                    record.created_at, record.response_deadline, paused_minutes, now
                )
                resolution_status = self._sla.calculate_sla_status(
                    record.created_at, record.resolution_deadline, paused_minutes, now
                )

                if (response_status == record.response_status
                        and resolution_status == record.resolution_status):
                    return None

                await self._tickets.update_sla_fields(ticket_id, {
                    "response_status": response_status,
                    "resolution_status": resolution_status,
                })

        result.updated_count += 1

        if not (should_notify(record.response_status, response_status)
                or should_notify(record.resolution_status, resolution_status)):
            return None

        recipients = await self._recipients_for(record)
        if not recipients:
            return None
        return self.build_notification(record, response_status, resolution_status, now, recipients)

    async def _recipients_for(self, record: TicketSLARecord) -> List[str]:
        """Assignee if any, else every platform admin; empty when the lookup fails."""
        if record.assigned_to_id:
            return [record.assigned_to_id]
        try:
            return await self._admins.list_platform_admins()
        except Exception as e:
            logger.error(
                "Admin lookup failed, SLA notification skipped",
                extra={"ticket_id": record.id, "error": str(e)}
            )
            return []


    def build_notification(
        self,
        record: TicketSLARecord,
        response_status: str,
        resolution_status: str,
        now: datetime,
        recipient_ids: List[str]
    ) -> SLANotification:
        sla_type = most_urgent_sla(record, response_status, resolution_status)
        deadline = record.deadline_for(sla_type)

        label = "Breached" if SLAStatus.BREACHED in (response_status, resolution_status) else "Critical"
        if deadline is None:
            time_text = "has no deadline"
        elif deadline > now:
            time_text = f"due in {format_minutes(self._sla.calculate_business_minutes(now, deadline))}"
        else:
            time_text = f"overdue by {format_minutes(self._sla.calculate_business_minutes(deadline, now))}"

        return SLANotification(
            ticket_id=record.id,
            recipient_ids=recipient_ids,
            title=f"SLA {label}",
            message=(
                f'Ticket #{record.id[:8]}: "{record.title}" - '
                f"{sla_type.capitalize()} SLA {time_text}"
            ),
            link_to=f"/support/tickets/{record.id}",
        )

    async def _send(self, notification: SLANotification) -> int:
        sent = 0
        for recipient_id in notification.recipient_ids:
            try:
                await self._notifications.create_notification(
                    recipient_id,
                    notification.category,
                    notification.title,
                    notification.message,
                    notification.link_to,
                )
                sent += 1
            except Exception as e:
                logger.error(
                    "SLA notification failed",
                    extra={
                        "ticket_id": notification.ticket_id,
                        "recipient_id": recipient_id,
                        "error": str(e)
                    }
                )

        logger.info(
            f"SLA notification sent for ticket {notification.ticket_id} "
            f"to {sent} recipient(s)",
            extra={"ticket_id": notification.ticket_id}
        )
        return sent


def most_urgent_sla(record: TicketSLARecord, response_status: str, resolution_status: str) -> str:
    """
    Which SLA a notification should talk about.

    Higher tier wins; on a tie the SLA with the earlier deadline wins,
    and response wins if that is undecided.
    """
    response_rank = STATUS_RANK.get(response_status, 0)
    resolution_rank = STATUS_RANK.get(resolution_status, 0)
    if response_rank != resolution_rank:
        return SLAType.RESPONSE if response_rank > resolution_rank else SLAType.RESOLUTION

    if record.response_deadline and record.resolution_deadline:
        if record.resolution_deadline < record.response_deadline:
            return SLAType.RESOLUTION
        return SLAType.RESPONSE
    if record.response_deadline is None and record.resolution_deadline is not None:
        return SLAType.RESOLUTION
    return SLAType.RESPONSE
