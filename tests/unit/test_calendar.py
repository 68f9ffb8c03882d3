"""Unit tests for the business calendar."""

from datetime import date, datetime, timedelta, timezone

import pytest

from core import CalendarException
from sla.domain import BusinessCalendar, BusinessHours, Holiday


@pytest.mark.unit
class TestBusinessHourPredicate:
    """Which instants count towards an SLA."""

    @pytest.fixture
    def calendar(self, business_hours, juneteenth):
        return BusinessCalendar(business_hours, [juneteenth])

    @pytest.mark.parametrize("hour, minute, expected", [
        (9, 59, False),
        (10, 0, True),
        (15, 30, True),
        (21, 59, True),
        (22, 0, False),
        (23, 30, False),
    ])
    def test_window_is_half_open(self, calendar, ny, hour, minute, expected):
        assert calendar.is_business_hour(ny(2025, 6, 16, hour, minute)) is expected

    def test_weekend_is_not_business_time(self, calendar, ny):
        assert calendar.is_business_hour(ny(2025, 6, 14, 12)) is False
        assert calendar.is_business_hour(ny(2025, 6, 15, 12)) is False

    def test_holiday_is_not_business_time(self, calendar, ny):
        assert calendar.is_holiday(ny(2025, 6, 19, 12)) is True
        assert calendar.is_business_hour(ny(2025, 6, 19, 12)) is False

    def test_holiday_uses_local_date(self, calendar):
        # 02:00 UTC on the 20th is still the 19th in New York
        assert calendar.is_holiday(datetime(2025, 6, 20, 2, 0, tzinfo=timezone.utc)) is True
        assert calendar.is_holiday(datetime(2025, 6, 20, 5, 0, tzinfo=timezone.utc)) is False

    def test_naive_datetime_is_treated_as_utc(self, calendar):
        # 14:00 UTC is 10:00 in New York
        assert calendar.is_business_hour(datetime(2025, 6, 16, 14, 0)) is True
        assert calendar.is_business_hour(datetime(2025, 6, 16, 13, 59)) is False

    def test_recurring_holiday_matches_every_year(self, business_hours, ny):
        calendar = BusinessCalendar(
            business_hours,
            [Holiday(date=date(2000, 7, 4), name="Independence Day", is_recurring=True)]
        )
        assert calendar.is_holiday(ny(2025, 7, 4, 12)) is True
        assert calendar.is_holiday(ny(2026, 7, 4, 12)) is True

    def test_one_off_holiday_matches_only_its_year(self, business_hours, ny):
        calendar = BusinessCalendar(business_hours, [Holiday(date=date(2000, 7, 4), name="Once")])
        assert calendar.is_holiday(ny(2025, 7, 4, 12)) is False

    def test_with_holidays_returns_new_calendar(self, business_hours, juneteenth, ny):
        calendar = BusinessCalendar(business_hours)
        updated = calendar.with_holidays([juneteenth])

        assert calendar.is_holiday(ny(2025, 6, 19, 12)) is False
        assert updated.is_holiday(ny(2025, 6, 19, 12)) is True


@pytest.mark.unit
class TestAdvanceToNextBusinessHour:
    """Jumping forward to the next instant that counts."""

    @pytest.fixture
    def calendar(self, business_hours):
        return BusinessCalendar(business_hours)

    def test_business_time_is_unchanged(self, calendar, ny):
        instant = ny(2025, 6, 16, 15, 30)
        assert calendar.advance_to_next_business_hour(instant) == instant

    def test_before_opening_moves_to_next_day(self, calendar, ny):
        assert calendar.advance_to_next_business_hour(ny(2025, 6, 16, 8)) == ny(2025, 6, 17, 10)
        assert calendar.advance_to_next_business_hour(ny(2025, 6, 17, 0, 30)) == ny(2025, 6, 18, 10)

    def test_friday_before_opening_moves_to_monday(self, calendar, ny):
        assert calendar.advance_to_next_business_hour(ny(2025, 6, 13, 9)) == ny(2025, 6, 16, 10)

    def test_after_closing_moves_to_next_business_day(self, calendar, ny):
        assert calendar.advance_to_next_business_hour(ny(2025, 6, 17, 22, 30)) == ny(2025, 6, 18, 10)

    def test_friday_evening_moves_to_monday(self, calendar, ny):
        assert calendar.advance_to_next_business_hour(ny(2025, 6, 13, 22)) == ny(2025, 6, 16, 10)

    def test_weekend_moves_to_monday(self, calendar, ny):
        assert calendar.advance_to_next_business_hour(ny(2025, 6, 14, 12)) == ny(2025, 6, 16, 10)

    def test_holiday_is_skipped(self, business_hours, ny):
        calendar = BusinessCalendar(business_hours, [Holiday(date=date(2025, 6, 16), name="Closed")])
        assert calendar.advance_to_next_business_hour(ny(2025, 6, 14, 12)) == ny(2025, 6, 17, 10)

    def test_result_is_utc(self, calendar, ny):
        result = calendar.advance_to_next_business_hour(ny(2025, 6, 14, 12))
        assert result.utcoffset() == timedelta(0)
        assert result == datetime(2025, 6, 16, 14, 0, tzinfo=timezone.utc)

    def test_no_business_day_within_a_year_raises(self):
        hours = BusinessHours(timezone="UTC", start_hour=9, end_hour=17, weekdays=(0,))
        first_monday = date(2025, 6, 16)
        holidays = [
            Holiday(date=first_monday + timedelta(weeks=week), name=f"Closed {week}")
            for week in range(60)
        ]
        calendar = BusinessCalendar(hours, holidays)

        with pytest.raises(CalendarException):
            calendar.advance_to_next_business_hour(datetime(2025, 6, 16, 12, tzinfo=timezone.utc))


@pytest.mark.unit
class TestBusinessHoursValidation:

    def test_unknown_timezone_is_rejected(self):
        with pytest.raises(ValueError):
            BusinessHours(timezone="Mars/Olympus_Mons")

    def test_start_must_precede_end(self):
        with pytest.raises(ValueError):
            BusinessHours(start_hour=18, end_hour=9)

    def test_weekdays_are_normalised(self):
        hours = BusinessHours(weekdays=(4, 0, 2, 0))
        assert hours.weekdays == (0, 2, 4)

    def test_minutes_per_day(self, business_hours):
        assert business_hours.minutes_per_day == 720
