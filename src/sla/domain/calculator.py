"""
SLA Calculators
===============

Pure functions for SLA time arithmetic: deadlines, elapsed business
minutes and status tiers. Nothing here performs I/O; the holiday list
arrives through the BusinessCalendar.
"""

from datetime import datetime, timedelta
from typing import Optional

from config import SLAStatus, ALERTING_SLA_STATUSES
from core import InvalidTimeRangeException
from sla.domain.calendar import BusinessCalendar
from sla.domain.value_objects import SLAThresholds


ONE_HOUR = timedelta(hours=1)
ONE_MINUTE = timedelta(minutes=1)
ONE_DAY = timedelta(days=1)


class DeadlineCalculator:
    """Projects a start time forward by a number of business hours."""

    def __init__(self, calendar: BusinessCalendar):
        self._calendar = calendar

    def calculate_deadline(
        self,
        start_time: datetime,
        target_hours: Optional[float]
    ) -> Optional[datetime]:
        """
        Add ``target_hours`` business hours to ``start_time``.

        Hours are counted one at a time: an hour is credited whenever the
        clock sits inside business hours, otherwise the clock jumps to the
        next business hour. Returns None when there is no target.
        """
        if target_hours is None:
            return None

        calendar = self._calendar
        current = calendar.next_business_wall_time(calendar.to_local(start_time))
        hours_added = 0

        while hours_added < target_hours:
            if calendar.is_business_wall_time(current):
                hours_added += 1
                current += ONE_HOUR
            else:
                current = calendar.next_business_wall_time(current)

        return calendar.to_utc(current)


class ElapsedTimeMeter:
    """
    Counts business minutes between two instants.

    Minutes are sampled on a one-minute grid anchored at ``start``; a
    sample counts when it falls inside business hours. Spans longer
    than a day are walked a whole day at a time once the grid reaches
    local midnight, which yields the same count as sampling every minute.
    """

    def __init__(self, calendar: BusinessCalendar):
        self._calendar = calendar

    def calculate_business_minutes(self, start: datetime, end: datetime) -> int:
        if end < start:
            raise InvalidTimeRangeException(start, end)

        calendar = self._calendar
        current = calendar.to_local(start)
        stop = calendar.to_local(end)
        minutes = 0

        if stop - current > ONE_DAY:
            # Partial first day, sampled until the grid crosses midnight
            midnight = datetime.combine(current.date() + ONE_DAY, datetime.min.time())
            while current < midnight:
                if calendar.is_business_wall_time(current):
                    minutes += 1
                current += ONE_MINUTE

            per_day = calendar.business_hours.minutes_per_day
            while stop - current > ONE_DAY:
                if calendar.is_business_day(current.date()):
                    minutes += per_day
                current += ONE_DAY

        while current < stop:
            if calendar.is_business_wall_time(current):
                minutes += 1
            current += ONE_MINUTE

        return minutes


class StatusClassifier:
    """Maps elapsed business time to an SLA tier."""

    def __init__(self, meter: ElapsedTimeMeter, thresholds: SLAThresholds):
        self._meter = meter
        self._thresholds = thresholds

    def percent_elapsed(
        self,
        created_at: datetime,
        deadline: datetime,
        now: datetime,
        paused_minutes: int = 0
    ) -> float:
        total_minutes = self._meter.calculate_business_minutes(created_at, deadline)
        if total_minutes == 0:
            return 100.0

        elapsed_minutes = (
            self._meter.calculate_business_minutes(created_at, max(created_at, now))
            - paused_minutes
        )
        return elapsed_minutes / total_minutes * 100

    def calculate_sla_status(
        self,
        created_at: datetime,
        deadline: Optional[datetime],
        now: datetime,
        paused_minutes: int = 0
    ) -> str:
        if deadline is None:
            return SLAStatus.ON_TRACK

        percent = self.percent_elapsed(created_at, deadline, now, paused_minutes)
        thresholds = self._thresholds

        if percent >= thresholds.breached:
            return SLAStatus.BREACHED
        if percent >= thresholds.critical:
            return SLAStatus.CRITICAL
        if percent >= thresholds.approaching:
            return SLAStatus.APPROACHING
        return SLAStatus.ON_TRACK


def format_minutes(minutes: int) -> str:
    """Human-readable duration: 45m, 3h 20m, 2d 4h."""
    if minutes < 60:
        return f"{minutes}m"
    if minutes < 1440:
        return f"{minutes // 60}h {minutes % 60}m"
    return f"{minutes // 1440}d {(minutes % 1440) // 60}h"


STATUS_RANK = {
    SLAStatus.ON_TRACK: 0,
    SLAStatus.APPROACHING: 1,
    SLAStatus.CRITICAL: 2,
    SLAStatus.BREACHED: 3,
}


def should_notify(previous_status: Optional[str], new_status: str) -> bool:
    """True when a status has just moved into critical or breached."""
    return (
        new_status in ALERTING_SLA_STATUSES
        and previous_status != new_status
    )
