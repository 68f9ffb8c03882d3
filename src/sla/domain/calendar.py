"""
Business Calendar
=================

Answers "does this instant count towards an SLA?".

All arithmetic happens on naive local wall-clock datetimes in the
business timezone; public methods accept aware instants (naive ones are
taken as UTC) and return aware UTC instants.
"""

from datetime import date, datetime, time, timedelta, timezone
from typing import Iterable, Tuple

from core import CalendarException
from sla.domain.entities import Holiday
from sla.domain.value_objects import BusinessHours


# A calendar with no business day inside a year is misconfigured.
MAX_LOOKAHEAD_DAYS = 366


class BusinessCalendar:
    """
    Business-hours predicate over a fixed holiday list.

    Instances are immutable; build a new one when the holiday list
    changes (see with_holidays).
    """

    def __init__(self, business_hours: BusinessHours, holidays: Iterable[Holiday] = ()):
        self.business_hours = business_hours
        self.holidays: Tuple[Holiday, ...] = tuple(holidays)
        self._tz = business_hours.tzinfo
        self._weekdays = frozenset(business_hours.weekdays)
        self._exact_dates = frozenset(h.date for h in self.holidays if not h.is_recurring)
        self._recurring_days = frozenset(
            (h.date.month, h.date.day) for h in self.holidays if h.is_recurring
        )

    def with_holidays(self, holidays: Iterable[Holiday]) -> "BusinessCalendar":
        return BusinessCalendar(self.business_hours, holidays)

    # ========== Timezone conversion ==========

    def to_local(self, instant: datetime) -> datetime:
        """Aware instant -> naive wall-clock time in the business timezone."""
        if instant.tzinfo is None:
            instant = instant.replace(tzinfo=timezone.utc)
        return instant.astimezone(self._tz).replace(tzinfo=None)

    def to_utc(self, local: datetime) -> datetime:
        """Naive business-timezone wall-clock time -> aware UTC instant."""
        return local.replace(tzinfo=self._tz).astimezone(timezone.utc)

    # ========== Predicates ==========

    def is_holiday_date(self, day: date) -> bool:
        return day in self._exact_dates or (day.month, day.day) in self._recurring_days

    def is_business_day(self, day: date) -> bool:
        return day.weekday() in self._weekdays and not self.is_holiday_date(day)

    def is_business_wall_time(self, local: datetime) -> bool:
        hours = self.business_hours
        return (
            self.is_business_day(local.date())
            and hours.start_hour <= local.hour < hours.end_hour
        )

    def is_holiday(self, instant: datetime) -> bool:
        """Day-level check on the local calendar date."""
        return self.is_holiday_date(self.to_local(instant).date())

    def is_business_hour(self, instant: datetime) -> bool:
        return self.is_business_wall_time(self.to_local(instant))

    # ========== Navigation ==========

    def next_business_wall_time(self, local: datetime) -> datetime:
        """
        First wall-clock time at or after ``local`` that counts.

        Outside the ``[start_hour, end_hour)`` window (before opening as well
        as after closing) jumps to opening time on the next calendar day.
        Then whole days are skipped until a business day is found.
        """
        if self.is_business_wall_time(local):
            return local

        hours = self.business_hours
        start_of_business = time(hours.start_hour)
        if hours.start_hour <= local.hour < hours.end_hour:
            candidate = local
        else:
            candidate = datetime.combine(local.date() + timedelta(days=1), start_of_business)

        skipped = 0
        while not self.is_business_wall_time(candidate):
            skipped += 1
            if skipped > MAX_LOOKAHEAD_DAYS:
                raise CalendarException(
                    f"No business day within {MAX_LOOKAHEAD_DAYS} days of {local.isoformat()}",
                    {"start": local.isoformat()}
                )
            candidate = datetime.combine(candidate.date() + timedelta(days=1), start_of_business)

        return candidate

    def advance_to_next_business_hour(self, instant: datetime) -> datetime:
        """Returns the instant unchanged when it already counts (in UTC)."""
        local = self.to_local(instant)
        return self.to_utc(self.next_business_wall_time(local))
